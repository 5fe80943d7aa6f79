"""Data models for the form designer."""
from dataclasses import dataclass, replace
from typing import Tuple

MIME_PDF = "application/pdf"
MIME_PNG = "image/png"
MIME_JPEG = "image/jpeg"
SUPPORTED_MIME_TYPES = (MIME_PDF, MIME_PNG, MIME_JPEG)

FONT_ARIAL = "Arial"
FONT_ALLURA = "Allura"
FONT_DANCING_SCRIPT = "Dancing Script"
FONT_FAMILIES: Tuple[str, ...] = (FONT_ARIAL, FONT_ALLURA, FONT_DANCING_SCRIPT)

# Rect given to a field created with "Add field"
DEFAULT_FIELD_X = 100.0
DEFAULT_FIELD_Y = 100.0
DEFAULT_FIELD_WIDTH = 150.0
DEFAULT_FIELD_HEIGHT = 35.0


@dataclass(frozen=True)
class Document:
    id: str
    original_name: str
    mime_type: str     # one of SUPPORTED_MIME_TYPES
    size: int          # bytes
    width: float       # page/image size at 1:1 (points for PDFs)
    height: float

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == MIME_PDF


@dataclass(frozen=True)
class TextField:
    id: str
    document_id: str
    name: str
    x: float           # top-left, document space, y grows downward
    y: float
    width: float
    height: float
    required: bool = False
    font_family: str = FONT_ARIAL

    def with_changes(self, **changes) -> "TextField":
        return replace(self, **changes)
