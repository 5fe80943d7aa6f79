"""In-memory storage: documents, their bytes, and their text fields.

One ``FieldStore`` owns everything for a process (or a test) and is passed
explicitly to whoever needs it.  Nothing survives the process.
"""
import logging
import math
import threading
import uuid
from typing import Dict, List, Optional

from form_designer.errors import NotFoundError, ValidationError
from form_designer.geometry import MIN_FIELD_HEIGHT, MIN_FIELD_WIDTH
from form_designer.models import (
    FONT_ARIAL, FONT_FAMILIES, SUPPORTED_MIME_TYPES, Document, TextField,
)

logger = logging.getLogger(__name__)

_EDITABLE_FIELD_KEYS = {"name", "x", "y", "width", "height", "required", "font_family"}


def _new_id() -> str:
    return uuid.uuid4().hex


def _number(key: str, value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ValidationError(f"{key} must be finite, got {value!r}")
    return number


def _check_field_values(values: dict) -> None:
    """Raise ValidationError if any value in *values* breaks a field invariant."""
    unknown = set(values) - _EDITABLE_FIELD_KEYS
    if unknown:
        raise ValidationError(f"Unknown field properties: {', '.join(sorted(unknown))}")
    if "name" in values and not str(values["name"]).strip():
        raise ValidationError("Field name is required")
    for key in ("x", "y"):
        if key in values and _number(key, values[key]) < 0:
            raise ValidationError(f"{key} must be >= 0, got {values[key]}")
    if "width" in values and _number("width", values["width"]) < MIN_FIELD_WIDTH:
        raise ValidationError(
            f"width must be >= {MIN_FIELD_WIDTH:g}, got {values['width']}"
        )
    if "height" in values and _number("height", values["height"]) < MIN_FIELD_HEIGHT:
        raise ValidationError(
            f"height must be >= {MIN_FIELD_HEIGHT:g}, got {values['height']}"
        )
    if "font_family" in values and values["font_family"] not in FONT_FAMILIES:
        raise ValidationError(f"Unknown font family: {values['font_family']!r}")


def _normalise(values: dict) -> dict:
    out = dict(values)
    for key in ("x", "y", "width", "height"):
        if key in out:
            out[key] = float(out[key])
    if "required" in out:
        out["required"] = bool(out["required"])
    if "name" in out:
        out["name"] = str(out["name"])
    return out


class FieldStore:
    """Arena for documents and text fields, accessed only through CRUD calls."""

    def __init__(self):
        self._lock = threading.RLock()
        self._documents: Dict[str, Document] = {}
        self._bytes: Dict[str, bytes] = {}
        # dicts keep insertion order, which is the field creation order
        self._fields: Dict[str, TextField] = {}

    # ── Documents ─────────────────────────────────────────────────────────────

    def create_document(self, original_name: str, mime_type: str, data: bytes,
                        width: float, height: float) -> Document:
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise ValidationError(f"Unsupported document type: {mime_type}")
        if width <= 0 or height <= 0:
            raise ValidationError(f"Document size must be positive, got {width}x{height}")
        doc = Document(
            id=_new_id(),
            original_name=original_name,
            mime_type=mime_type,
            size=len(data),
            width=float(width),
            height=float(height),
        )
        with self._lock:
            self._documents[doc.id] = doc
            self._bytes[doc.id] = data
        logger.info("Document created: %s (%s, %d bytes, %gx%g)",
                    doc.id, mime_type, doc.size, doc.width, doc.height)
        return doc

    def get_document(self, document_id: str) -> Document:
        with self._lock:
            doc = self._documents.get(document_id)
        if doc is None:
            raise NotFoundError(f"Document not found: {document_id}")
        return doc

    def list_documents(self) -> List[Document]:
        with self._lock:
            return list(self._documents.values())

    def delete_document(self, document_id: str) -> None:
        """Delete a document together with all of its text fields."""
        with self._lock:
            if self._documents.pop(document_id, None) is None:
                raise NotFoundError(f"Document not found: {document_id}")
            self._bytes.pop(document_id, None)
            doomed = [fid for fid, f in self._fields.items() if f.document_id == document_id]
            for fid in doomed:
                del self._fields[fid]
        logger.info("Document deleted: %s (%d field(s) removed)", document_id, len(doomed))

    def get_document_bytes(self, document_id: str) -> bytes:
        with self._lock:
            data = self._bytes.get(document_id)
        if data is None:
            raise NotFoundError(f"Document not found: {document_id}")
        return data

    def get_document_mime_type(self, document_id: str) -> str:
        return self.get_document(document_id).mime_type

    # ── Text fields ───────────────────────────────────────────────────────────

    def create_field(self, document_id: str, **data) -> TextField:
        data.setdefault("required", False)
        data.setdefault("font_family", FONT_ARIAL)
        missing = {"name", "x", "y", "width", "height"} - set(data)
        if missing:
            raise ValidationError(f"Missing field properties: {', '.join(sorted(missing))}")
        _check_field_values(data)
        with self._lock:
            if document_id not in self._documents:
                raise NotFoundError(f"Document not found: {document_id}")
            field = TextField(id=_new_id(), document_id=document_id, **_normalise(data))
            self._fields[field.id] = field
        logger.debug("Field created: %s on document %s", field.id, document_id)
        return field

    def get_field(self, field_id: str) -> TextField:
        with self._lock:
            field = self._fields.get(field_id)
        if field is None:
            raise NotFoundError(f"Text field not found: {field_id}")
        return field

    def list_fields_by_document(self, document_id: str) -> List[TextField]:
        with self._lock:
            return [f for f in self._fields.values() if f.document_id == document_id]

    def update_field(self, field_id: str, **changes) -> TextField:
        """Apply *changes* atomically; on ValidationError nothing is modified."""
        _check_field_values(changes)
        with self._lock:
            existing = self._fields.get(field_id)
            if existing is None:
                raise NotFoundError(f"Text field not found: {field_id}")
            updated = existing.with_changes(**_normalise(changes))
            self._fields[field_id] = updated
        logger.debug("Field updated: %s %s", field_id, changes)
        return updated

    def delete_field(self, field_id: str) -> None:
        with self._lock:
            self._fields.pop(field_id, None)

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()
            self._bytes.clear()
            self._fields.clear()
