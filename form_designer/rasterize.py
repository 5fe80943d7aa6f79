"""Page rendering collaborator and asynchronous background loader.

Rendering uses **PyMuPDF (fitz)** for both PDFs (first page rasterised
through a zoom matrix) and bitmap images (decoded into a pixmap).  Results
are plain RGB sample buffers so the Qt layer can wrap them in a ``QImage``
the same way for either source.

``BackgroundLoader`` runs a render off the caller's thread and tags each
request with a generation number.  Loading another document bumps the
generation, and any result that arrives for an older generation is
dropped, so a slow render never paints over a newer document.
"""
import logging
import threading
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import fitz  # pymupdf

from form_designer.errors import RenderFailure
from form_designer.models import MIME_PDF, Document

logger = logging.getLogger(__name__)

BACKGROUND_EMPTY = "empty"
BACKGROUND_LOADING = "loading"
BACKGROUND_READY = "ready"
BACKGROUND_FAILED = "failed"

# US Letter, used when a PDF has no page to measure
FALLBACK_PDF_SIZE = (612.0, 792.0)
FALLBACK_IMAGE_SIZE = (800.0, 600.0)


@dataclass(frozen=True)
class RasterPage:
    samples: bytes   # packed RGB888
    width: int
    height: int
    stride: int


def _open_pdf(data: bytes) -> fitz.Document:
    try:
        return fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise RenderFailure(f"Cannot open PDF: {exc}") from exc


def _rgb_pixmap(pix: fitz.Pixmap) -> fitz.Pixmap:
    """Return *pix* as an alpha-free RGB pixmap."""
    if pix.colorspace is None or pix.colorspace.n != 3:
        pix = fitz.Pixmap(fitz.csRGB, pix)
    if pix.alpha:
        pix = fitz.Pixmap(pix, 0)
    return pix


def probe_dimensions(data: bytes, mime_type: str) -> Tuple[float, float]:
    """Return the 1:1 *(width, height)* of a document.

    PDFs report their first page in points; images their pixel size.
    """
    if mime_type == MIME_PDF:
        doc = _open_pdf(data)
        try:
            if doc.page_count == 0:
                logger.warning("PDF has no pages, assuming %sx%s", *FALLBACK_PDF_SIZE)
                return FALLBACK_PDF_SIZE
            rect = doc[0].rect
            return float(rect.width), float(rect.height)
        finally:
            doc.close()
    try:
        pix = fitz.Pixmap(data)
    except Exception as exc:
        raise RenderFailure(f"Cannot decode image: {exc}") from exc
    if pix.width <= 0 or pix.height <= 0:
        return FALLBACK_IMAGE_SIZE
    return float(pix.width), float(pix.height)


def rasterize_first_page(data: bytes, zoom: float = 1.0) -> RasterPage:
    """Rasterise page 1 of a PDF at *zoom* (1.0 = 72 dpi)."""
    doc = _open_pdf(data)
    try:
        if doc.page_count == 0:
            raise RenderFailure("PDF has no pages")
        try:
            pix = doc[0].get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        except Exception as exc:
            raise RenderFailure(f"Cannot render page 1: {exc}") from exc
        return RasterPage(bytes(pix.samples), pix.width, pix.height, pix.stride)
    finally:
        doc.close()


def decode_image(data: bytes) -> RasterPage:
    """Decode a PNG/JPEG into an RGB sample buffer at its native size."""
    try:
        pix = _rgb_pixmap(fitz.Pixmap(data))
    except Exception as exc:
        raise RenderFailure(f"Cannot decode image: {exc}") from exc
    return RasterPage(bytes(pix.samples), pix.width, pix.height, pix.stride)


def render_background(data: bytes, mime_type: str, zoom: float = 1.0) -> RasterPage:
    if mime_type == MIME_PDF:
        return rasterize_first_page(data, zoom)
    return decode_image(data)


@dataclass(frozen=True)
class BackgroundState:
    status: str = BACKGROUND_EMPTY
    document_id: Optional[str] = None
    page: Optional[RasterPage] = None
    error: Optional[str] = None


class BackgroundLoader:
    """Load a document's background, discarding results for stale requests.

    *fetch_bytes* maps a document id to its raw bytes.  With no *executor*
    the render runs inline; otherwise it is submitted to the executor and
    *on_change* fires from the worker thread when it settles.
    """

    def __init__(self, fetch_bytes: Callable[[str], bytes],
                 render_scale: float = 2.0,
                 executor: Optional[Executor] = None,
                 on_change: Optional[Callable[[BackgroundState], None]] = None):
        self._fetch_bytes = fetch_bytes
        self._render_scale = render_scale
        self._executor = executor
        self._on_change = on_change
        self._lock = threading.Lock()
        self._generation = 0
        self._state = BackgroundState()

    @property
    def state(self) -> BackgroundState:
        with self._lock:
            return self._state

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def load(self, document: Optional[Document]) -> int:
        """Start loading *document* (``None`` clears).  Returns the generation."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            if document is None:
                self._state = BackgroundState()
            else:
                self._state = BackgroundState(BACKGROUND_LOADING, document.id)
            state = self._state
        self._notify(state)
        if document is None:
            return generation

        if self._executor is None:
            self._run(generation, document)
        else:
            self._executor.submit(self._run, generation, document)
        return generation

    def _run(self, generation: int, document: Document) -> None:
        try:
            data = self._fetch_bytes(document.id)
            page = render_background(data, document.mime_type, self._render_scale)
        except Exception as exc:
            logger.warning("Background render failed for %s: %s", document.id, exc)
            self._finish(generation, document.id, error=str(exc))
            return
        self._finish(generation, document.id, page=page)

    def _finish(self, generation: int, document_id: str,
                page: Optional[RasterPage] = None, error: Optional[str] = None) -> bool:
        with self._lock:
            if generation != self._generation or self._state.document_id != document_id:
                logger.debug("Discarding stale background for %s (gen %d, current %d)",
                             document_id, generation, self._generation)
                return False
            if error is not None:
                self._state = BackgroundState(BACKGROUND_FAILED, document_id, error=error)
            else:
                self._state = BackgroundState(BACKGROUND_READY, document_id, page=page)
            state = self._state
        self._notify(state)
        return True

    def _notify(self, state: BackgroundState) -> None:
        if self._on_change is not None:
            self._on_change(state)
