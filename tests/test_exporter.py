import fitz
import pytest

from form_designer import pdf_exporter
from form_designer.errors import ExportFailure
from form_designer.models import Document, TextField
from form_designer.pdf_exporter import (
    PdfRect, export_document, export_fillable_pdf, fillable_filename, from_pdf_rect,
    to_pdf_rect, unique_field_names,
)

LETTER = Document("d1", "form.pdf", "application/pdf", 1, 612, 792)


def _field(name="Field 1", x=100, y=100, width=150, height=35, **kw):
    return TextField(f"id-{name}-{x}", "d1", name, x, y, width, height, **kw)


def _raw_rect(doc, widget):
    kind, value = doc.xref_get_key(widget.xref, "Rect")
    assert kind == "array"
    return [float(v) for v in value.strip("[]").split()]


def _open(pdf):
    return fitz.open(stream=pdf, filetype="pdf")


def test_to_pdf_rect_letter_default_field():
    assert to_pdf_rect(_field(), 792) == PdfRect(100, 657, 150, 35)


@pytest.mark.parametrize("y, h, page_h", [(0, 20, 792), (100, 35, 792), (12.5, 40.25, 600)])
def test_pdf_rect_round_trip(y, h, page_h):
    field = _field(y=y, height=h)
    back = from_pdf_rect(to_pdf_rect(field, page_h), page_h)
    assert back.y == y
    assert (back.x, back.width, back.height) == (field.x, field.width, field.height)


def test_fillable_filename():
    assert fillable_filename("contract.pdf") == "contract_fillable.pdf"
    assert fillable_filename("scan.final.png") == "scan.final_fillable.pdf"
    assert fillable_filename("noext") == "noext_fillable.pdf"


def test_unique_field_names():
    fields = [_field("Name"), _field("Name", x=1), _field("Date"), _field("Name", x=2)]
    assert unique_field_names(fields) == ["Name", "Name_2", "Date", "Name_3"]


def test_export_places_widget_in_pdf_space(pdf_bytes, fonts_dir):
    pdf = export_fillable_pdf(LETTER, pdf_bytes, [_field()], fonts_dir=str(fonts_dir))
    doc = _open(pdf)
    widgets = list(doc[0].widgets())
    assert len(widgets) == 1
    w = widgets[0]
    assert w.field_name == "Field 1"
    assert w.field_type == fitz.PDF_WIDGET_TYPE_TEXT
    assert _raw_rect(doc, w) == pytest.approx([100, 657, 250, 692])
    # PyMuPDF reports the same rect back in its own top-left space
    assert tuple(w.rect) == pytest.approx((100, 100, 250, 135))
    kind, value = doc.xref_get_key(doc.pdf_catalog(), "AcroForm/NeedAppearances")
    assert value == "true"


def test_export_required_flag(pdf_bytes):
    pdf = export_fillable_pdf(LETTER, pdf_bytes,
                              [_field("A", required=True), _field("B", x=300)])
    widgets = {w.field_name: w for w in _open(pdf)[0].widgets()}
    assert widgets["A"].field_flags & fitz.PDF_FIELD_IS_REQUIRED
    assert not widgets["B"].field_flags & fitz.PDF_FIELD_IS_REQUIRED


def test_export_keeps_all_pages(make_pdf):
    pdf = export_fillable_pdf(LETTER, make_pdf(pages=3), [_field()])
    doc = _open(pdf)
    assert doc.page_count == 3
    assert len(list(doc[0].widgets())) == 1
    assert list(doc[1].widgets()) == []


def test_export_image_document(png_bytes):
    image = Document("d2", "scan.png", "image/png", len(png_bytes), 40, 30)
    field = TextField("f", "d2", "Sig", 5, 5, 30, 20)
    doc = _open(export_fillable_pdf(image, png_bytes, [field]))
    page = doc[0]
    assert (page.rect.width, page.rect.height) == (40, 30)
    assert _raw_rect(doc, next(page.widgets())) == pytest.approx([5, 5, 35, 25])
    assert page.get_images()


def test_export_without_fields_has_no_widgets(pdf_bytes):
    doc = _open(export_fillable_pdf(LETTER, pdf_bytes, []))
    assert list(doc[0].widgets()) == []


def test_corrupt_document_raises(fonts_dir):
    with pytest.raises(ExportFailure):
        export_fillable_pdf(LETTER, b"%PDF-1.4 this is not really a pdf", [_field()],
                            fonts_dir=str(fonts_dir))


def test_missing_font_falls_back_to_helvetica(pdf_bytes, fonts_dir):
    fields = [_field("Sig", font_family="Allura"), _field("Other", x=300)]
    doc = _open(export_fillable_pdf(LETTER, pdf_bytes, fields, fonts_dir=str(fonts_dir)))
    widgets = list(doc[0].widgets())
    assert len(widgets) == 2
    for w in widgets:
        kind, da = doc.xref_get_key(w.xref, "DA")
        assert "Helv" in da


def test_custom_font_is_embedded(pdf_bytes, fonts_dir):
    (fonts_dir / "Allura-Regular.ttf").write_bytes(fitz.Font("helv").buffer)
    fields = [_field("Sig", font_family="Allura")]
    doc = _open(export_fillable_pdf(LETTER, pdf_bytes, fields, fonts_dir=str(fonts_dir),
                                    font_size=14))
    w = next(doc[0].widgets())
    kind, da = doc.xref_get_key(w.xref, "DA")
    assert "/Allura 14 Tf" in da
    kind, ref = doc.xref_get_key(doc.pdf_catalog(), "AcroForm/DR/Font/Allura")
    assert kind == "xref"


def test_export_document_from_store(store, settings, pdf_document):
    store.create_field(pdf_document.id, name="Name", x=100, y=100, width=150, height=35)
    filename, pdf = export_document(store, pdf_document.id, settings)
    assert filename == "form_fillable.pdf"
    assert pdf.startswith(b"%PDF")
    assert [w.field_name for w in _open(pdf)[0].widgets()] == ["Name"]


def test_one_failing_field_does_not_abort_export(pdf_bytes, monkeypatch):
    real_add = pdf_exporter._add_text_widget

    def flaky_add(page, name, field, pdf_rect, font_size):
        if name == "Broken":
            raise RuntimeError("widget creation failed")
        return real_add(page, name, field, pdf_rect, font_size)

    monkeypatch.setattr(pdf_exporter, "_add_text_widget", flaky_add)
    fields = [_field("Before"), _field("Broken", x=200), _field("After", x=300)]
    doc = _open(export_fillable_pdf(LETTER, pdf_bytes, fields))
    assert [w.field_name for w in doc[0].widgets()] == ["Before", "After"]
