"""Export fillable PDFs by embedding text fields as AcroForm widgets.

Coordinate notes
----------------
Fields are stored top-left / y-down in document space (points for PDFs,
pixels for images, which are used directly as points).  PDF user space is
bottom-left / y-up, so a field becomes::

    pdf_x = x
    pdf_y = page_height - y - height

PyMuPDF's own page coordinates are y-down again.  We keep the PDF-space
rect as the source of truth and hand it to PyMuPDF through
``page.transformation_matrix`` (PDF space → MuPDF space), so the ``/Rect``
written into the file is exactly ``(pdf_x, pdf_y, pdf_x + w, pdf_y + h)``.

Widgets are transparent (no border, no fill): invisible in the delivered
PDF but fillable.  Custom fonts are embedded once per export and
registered in the AcroForm ``/DR``; if a font cannot be embedded the field
falls back to Helvetica and the export carries on.
"""
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import fitz  # pymupdf

from form_designer.errors import ExportFailure, RenderFailure
from form_designer.geometry import Rect
from form_designer.models import (
    FONT_ALLURA, FONT_DANCING_SCRIPT, Document, TextField,
)
from form_designer.settings import DesignerSettings
from form_designer.storage import FieldStore

logger = logging.getLogger(__name__)

BUILTIN_FONT = "Helv"   # Helvetica, always available to form fields

FONT_FILES = {
    FONT_ALLURA: "Allura-Regular.ttf",
    FONT_DANCING_SCRIPT: "DancingScript-VariableFont_wght.ttf",
}
# PDF resource names may not contain spaces
_FONT_RESOURCE_NAMES = {
    FONT_ALLURA: "Allura",
    FONT_DANCING_SCRIPT: "DancingScript",
}


@dataclass(frozen=True)
class PdfRect:
    """A rectangle in PDF user space: origin bottom-left, y up, points."""
    x: float
    y: float
    width: float
    height: float


def to_pdf_rect(field: TextField, page_height: float) -> PdfRect:
    return PdfRect(field.x, page_height - field.y - field.height,
                   field.width, field.height)


def from_pdf_rect(rect: PdfRect, page_height: float) -> Rect:
    """Inverse of ``to_pdf_rect``: back to top-left document space."""
    return Rect(rect.x, page_height - rect.y - rect.height, rect.width, rect.height)


def fillable_filename(original_name: str) -> str:
    """``form.pdf`` → ``form_fillable.pdf``."""
    stem = os.path.splitext(os.path.basename(original_name))[0] or "document"
    return f"{stem}_fillable.pdf"


def unique_field_names(fields: Sequence[TextField]) -> List[str]:
    """AcroForm names must be unique: suffix repeats with ``_2``, ``_3``…"""
    taken = set()
    names = []
    for field in fields:
        base = field.name.strip() or "Field"
        name = base
        n = 1
        while name in taken:
            n += 1
            name = f"{base}_{n}"
        taken.add(name)
        names.append(name)
    return names


class FontEmbedder:
    """Resolve a field's font family to a form-field font resource name."""

    def __init__(self, doc: fitz.Document, fonts_dir: Optional[str]):
        self._doc = doc
        self._fonts_dir = fonts_dir
        self._resolved: Dict[str, str] = {}

    def resolve(self, page: fitz.Page, family: str) -> str:
        if family not in FONT_FILES:
            return BUILTIN_FONT
        if family not in self._resolved:
            try:
                self._resolved[family] = self._embed(page, family)
            except RenderFailure as exc:
                logger.warning("Font embedding failed for %s, using Helvetica: %s",
                               family, exc)
                self._resolved[family] = BUILTIN_FONT
        return self._resolved[family]

    def _embed(self, page: fitz.Page, family: str) -> str:
        if not self._fonts_dir:
            raise RenderFailure("no fonts directory configured")
        path = os.path.join(self._fonts_dir, FONT_FILES[family])
        name = _FONT_RESOURCE_NAMES[family]
        try:
            with open(path, "rb") as f:
                buf = f.read()
            xref = page.insert_font(fontname=name, fontbuffer=buf)
            self._doc.xref_set_key(self._doc.pdf_catalog(),
                                   f"AcroForm/DR/Font/{name}", f"{xref} 0 R")
        except Exception as exc:
            raise RenderFailure(f"{path}: {exc}") from exc
        logger.debug("Embedded font %s from %s (xref %d)", name, path, xref)
        return name


def open_output_document(document: Document, data: bytes) -> fitz.Document:
    """Open the PDF, or build a one-page PDF around an image at its pixel size."""
    try:
        if document.is_pdf:
            doc = fitz.open(stream=data, filetype="pdf")
            if doc.page_count == 0:
                doc.close()
                raise ExportFailure("PDF has no pages")
            return doc
        doc = fitz.open()
        page = doc.new_page(width=document.width, height=document.height)
        page.insert_image(page.rect, stream=data)
        return doc
    except ExportFailure:
        raise
    except Exception as exc:
        raise ExportFailure(f"Cannot read {document.original_name}: {exc}") from exc


def _add_text_widget(page: fitz.Page, name: str, field: TextField,
                     pdf_rect: PdfRect, font_size: float) -> fitz.Annot:
    rect = fitz.Rect(pdf_rect.x, pdf_rect.y,
                     pdf_rect.x + pdf_rect.width, pdf_rect.y + pdf_rect.height)
    widget = fitz.Widget()
    widget.field_type = fitz.PDF_WIDGET_TYPE_TEXT
    widget.field_name = name
    widget.rect = rect * page.transformation_matrix
    widget.text_font = BUILTIN_FONT
    widget.text_fontsize = font_size
    widget.border_width = 0
    widget.border_color = None
    widget.fill_color = None
    widget.field_flags = fitz.PDF_FIELD_IS_REQUIRED if field.required else 0
    return page.add_widget(widget)


def _serialise(doc: fitz.Document) -> bytes:
    # Plain save first; a full garbage collection pass only if that fails.
    last_exc: Optional[Exception] = None
    for garbage_level in (0, 4):
        try:
            return doc.tobytes(garbage=garbage_level, deflate=True)
        except Exception as exc:
            logger.warning("Serialising PDF failed (garbage=%d): %s", garbage_level, exc)
            last_exc = exc
    raise ExportFailure(f"PDF could not be saved: {last_exc}")


def export_fillable_pdf(document: Document, data: bytes, fields: Sequence[TextField],
                        fonts_dir: Optional[str] = None,
                        font_size: float = 12.0) -> bytes:
    """Return PDF bytes with one invisible fillable text field per *fields* entry.

    Fields are placed on the first page in list order.  A field whose
    widget cannot be created is logged and left out; the rest still export.
    """
    doc = open_output_document(document, data)
    try:
        page = doc[0]
        if page.rotation:
            page.remove_rotation()
        page_height = page.rect.height
        fonts = FontEmbedder(doc, fonts_dir)
        logger.info("Exporting %s: %d field(s) on a %gx%g page",
                    document.id, len(fields), page.rect.width, page_height)

        placed = False
        for name, field in zip(unique_field_names(fields), fields):
            pdf_rect = to_pdf_rect(field, page_height)
            logger.debug("  %s: doc (%g,%g,%g,%g) -> pdf (%g,%g,%g,%g)", name,
                         field.x, field.y, field.width, field.height,
                         pdf_rect.x, pdf_rect.y, pdf_rect.width, pdf_rect.height)
            try:
                widget = _add_text_widget(page, name, field, pdf_rect, font_size)
            except Exception as exc:
                logger.error("Skipping field %r of %s: %s", name, document.id, exc)
                continue
            placed = True
            font_name = fonts.resolve(page, field.font_family)
            if font_name != BUILTIN_FONT:
                doc.xref_set_key(widget.xref, "DA", f"(/{font_name} {font_size:g} Tf 0 g)")

        if placed:
            doc.xref_set_key(doc.pdf_catalog(), "AcroForm/NeedAppearances", "true")
        return _serialise(doc)
    finally:
        doc.close()


def export_document(store: FieldStore, document_id: str,
                    settings: DesignerSettings) -> Tuple[str, bytes]:
    """Export a stored document.  Returns *(attachment filename, pdf bytes)*."""
    document = store.get_document(document_id)
    fields = store.list_fields_by_document(document_id)
    data = store.get_document_bytes(document_id)
    try:
        pdf = export_fillable_pdf(document, data, fields,
                                  fonts_dir=settings.fonts_dir,
                                  font_size=settings.export_font_size)
    except ExportFailure as exc:
        logger.error("Export failed for %s: %s", document_id, exc)
        raise
    return fillable_filename(document.original_name), pdf
