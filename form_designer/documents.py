"""Document ingest: upload validation, dimension probing, default fields."""
import logging
import os
from typing import Optional

from form_designer.errors import RenderFailure, ValidationError
from form_designer.models import (
    DEFAULT_FIELD_HEIGHT, DEFAULT_FIELD_WIDTH, DEFAULT_FIELD_X, DEFAULT_FIELD_Y,
    FONT_ARIAL, MIME_JPEG, MIME_PDF, MIME_PNG, SUPPORTED_MIME_TYPES, Document, TextField,
)
from form_designer.rasterize import probe_dimensions
from form_designer.settings import DesignerSettings
from form_designer.storage import FieldStore

logger = logging.getLogger(__name__)

_EXTENSION_MIME = {
    ".pdf": MIME_PDF,
    ".png": MIME_PNG,
    ".jpg": MIME_JPEG,
    ".jpeg": MIME_JPEG,
}
_MIME_ALIASES = {"image/jpg": MIME_JPEG, "image/pjpeg": MIME_JPEG}


def normalise_mime_type(content_type: Optional[str], filename: str) -> str:
    """Return the canonical MIME type, sniffing the extension if none was sent."""
    mime = (content_type or "").split(";")[0].strip().lower()
    mime = _MIME_ALIASES.get(mime, mime)
    if not mime or mime == "application/octet-stream":
        ext = os.path.splitext(filename)[1].lower()
        mime = _EXTENSION_MIME.get(ext, mime)
    return mime


def ingest_upload(store: FieldStore, filename: str, content_type: Optional[str],
                  data: bytes, settings: DesignerSettings) -> Document:
    """Validate an uploaded file and register it as a Document."""
    mime = normalise_mime_type(content_type, filename)
    if mime not in SUPPORTED_MIME_TYPES:
        raise ValidationError(
            "Invalid file type. Only PDF, PNG, and JPG files are allowed."
        )
    if not data:
        raise ValidationError("No file uploaded")
    if len(data) > settings.max_upload_bytes:
        raise ValidationError(
            f"File too large: {len(data)} bytes "
            f"(maximum is {settings.max_upload_bytes} bytes)"
        )
    try:
        width, height = probe_dimensions(data, mime)
    except RenderFailure as exc:
        raise ValidationError(f"Unreadable {mime} file: {exc}") from exc
    logger.info("Upload accepted: %s (%s, %d bytes, %gx%g)",
                filename, mime, len(data), width, height)
    return store.create_document(filename, mime, data, width, height)


def default_field_data(existing_count: int) -> dict:
    """Properties of the field created by the "Add field" action."""
    return {
        "name": f"Field {existing_count + 1}",
        "x": DEFAULT_FIELD_X,
        "y": DEFAULT_FIELD_Y,
        "width": DEFAULT_FIELD_WIDTH,
        "height": DEFAULT_FIELD_HEIGHT,
        "required": False,
        "font_family": FONT_ARIAL,
    }


def add_default_field(store: FieldStore, document_id: str) -> TextField:
    existing = store.list_fields_by_document(document_id)
    return store.create_field(document_id, **default_field_data(len(existing)))
