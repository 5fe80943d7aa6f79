import pytest

from form_designer.documents import (
    add_default_field, default_field_data, ingest_upload, normalise_mime_type,
)
from form_designer.errors import ValidationError
from form_designer.settings import DesignerSettings


@pytest.mark.parametrize("content_type, filename, expected", [
    ("application/pdf", "a.pdf", "application/pdf"),
    ("image/jpg", "a.jpg", "image/jpeg"),
    ("IMAGE/PNG; charset=binary", "a.png", "image/png"),
    (None, "scan.JPEG", "image/jpeg"),
    ("application/octet-stream", "form.pdf", "application/pdf"),
    ("text/plain", "notes.pdf", "text/plain"),
])
def test_normalise_mime_type(content_type, filename, expected):
    assert normalise_mime_type(content_type, filename) == expected


def test_ingest_pdf_probes_page_size(store, settings, make_pdf):
    doc = ingest_upload(store, "a4.pdf", "application/pdf", make_pdf(595, 842), settings)
    assert (doc.width, doc.height) == (595, 842)
    assert store.get_document(doc.id) == doc


def test_ingest_image(store, settings, png_bytes):
    doc = ingest_upload(store, "scan.png", "image/png", png_bytes, settings)
    assert (doc.mime_type, doc.width, doc.height) == ("image/png", 40, 30)


def test_ingest_rejects_type(store, settings):
    with pytest.raises(ValidationError, match="Invalid file type"):
        ingest_upload(store, "a.gif", "image/gif", b"GIF89a", settings)


def test_ingest_rejects_empty(store, settings):
    with pytest.raises(ValidationError, match="No file uploaded"):
        ingest_upload(store, "a.pdf", "application/pdf", b"", settings)


def test_ingest_rejects_large_file(store, pdf_bytes):
    settings = DesignerSettings(max_upload_bytes=len(pdf_bytes) - 1)
    with pytest.raises(ValidationError, match="too large"):
        ingest_upload(store, "a.pdf", "application/pdf", pdf_bytes, settings)
    assert store.list_documents() == []


def test_ingest_rejects_unreadable(store, settings):
    with pytest.raises(ValidationError, match="Unreadable"):
        ingest_upload(store, "a.png", "image/png", b"definitely not a png", settings)


def test_default_field_data():
    assert default_field_data(2) == {
        "name": "Field 3", "x": 100, "y": 100, "width": 150, "height": 35,
        "required": False, "font_family": "Arial",
    }


def test_add_default_field_numbers_fields(store, pdf_document):
    first = add_default_field(store, pdf_document.id)
    second = add_default_field(store, pdf_document.id)
    assert (first.name, second.name) == ("Field 1", "Field 2")
    assert (second.x, second.y, second.width, second.height) == (100, 100, 150, 35)
