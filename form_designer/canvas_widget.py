"""Center panel: the document canvas with draggable, resizable text fields.

Mouse and touch events are converted into input samples for the
``InteractionController``.  Once a gesture starts, move/release tracking
moves to an application-level event filter, so a release outside the
canvas (or the window losing focus) still ends the gesture and restores the
cursor.

Commits and background rendering run on a small thread pool; their results
come back to the GUI thread through queued signals.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from PySide6.QtCore import QEvent, QObject, Qt, QTimer, Signal
from PySide6.QtGui import QPainter, QPixmap
from PySide6.QtWidgets import QApplication, QWidget

from form_designer import field_overlay
from form_designer.commits import FieldCommitter
from form_designer.compositor import CanvasCompositor, Frame
from form_designer.geometry import RESIZE_E, RESIZE_S, RESIZE_SE, Point
from form_designer.interaction import (
    CURSOR_MOVE, MODE_RESIZING, InteractionController, cursor_for,
)
from form_designer.models import Document, TextField
from form_designer.rasterize import (
    BACKGROUND_FAILED, BACKGROUND_LOADING, BACKGROUND_READY, BackgroundLoader,
    BackgroundState,
)
from form_designer.settings import DesignerSettings, zoom_scale
from form_designer.storage import FieldStore

logger = logging.getLogger(__name__)

_SPINNER_INTERVAL_MS = 50
_SPINNER_STEP = 30   # degrees per tick

_GESTURE_CURSORS = {
    CURSOR_MOVE: Qt.CursorShape.SizeAllCursor,
    cursor_for(MODE_RESIZING, RESIZE_SE): Qt.CursorShape.SizeFDiagCursor,
    cursor_for(MODE_RESIZING, RESIZE_E): Qt.CursorShape.SizeHorCursor,
    cursor_for(MODE_RESIZING, RESIZE_S): Qt.CursorShape.SizeVerCursor,
}


def _global_point(event) -> Point:
    p = event.globalPosition()
    return Point(p.x(), p.y())


class _GestureFilter(QObject):
    """App-level event filter, installed only while a gesture is active."""

    def __init__(self, canvas: "DocumentCanvas", parent=None):
        super().__init__(parent)
        self._canvas = canvas

    def eventFilter(self, obj, event):
        controller = self._canvas.controller
        if not controller.is_active:
            return False
        t = event.type()
        if t == QEvent.Type.MouseMove:
            controller.pointer_move(_global_point(event))
            return True
        if t == QEvent.Type.MouseButtonRelease:
            if event.button() == Qt.MouseButton.LeftButton:
                controller.pointer_up()
                return True
            return False
        if t == QEvent.Type.TouchUpdate:
            points = event.points()
            if points:
                p = points[0].globalPosition()
                controller.pointer_move(Point(p.x(), p.y()), touches=len(points))
            return True
        if t == QEvent.Type.TouchEnd:
            controller.pointer_up()
            return True
        if t == QEvent.Type.TouchCancel:
            controller.cancel()
            return True
        if t == QEvent.Type.ApplicationDeactivate:
            # Focus left the app mid-gesture: the release will never reach us.
            controller.pointer_up()
        return False


class DocumentCanvas(QWidget):
    selection_changed = Signal(object)   # field id or None
    fields_changed    = Signal()
    commit_failed     = Signal(str)

    # Worker-thread results hop to the GUI thread through these
    _background_changed = Signal(object)
    _field_committed    = Signal(object)
    _field_failed       = Signal(str, str)

    def __init__(self, store: FieldStore, settings: DesignerSettings, parent=None):
        super().__init__(parent)
        self._store = store
        self._settings = settings
        self._document: Optional[Document] = None
        self._fields: List[TextField] = []
        self._zoom: int = settings.default_zoom
        self._hover_id: Optional[str] = None
        self._background_pixmap: Optional[QPixmap] = None
        self._background_state = BackgroundState()
        self._spinner_angle = 0

        self._pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="canvas")
        self._committer = FieldCommitter(
            store,
            executor=self._pool,
            on_committed=self._field_committed.emit,
            on_failed=lambda fid, exc: self._field_failed.emit(fid, str(exc)),
        )
        self._loader = BackgroundLoader(
            store.get_document_bytes,
            render_scale=settings.preview_render_scale,
            executor=self._pool,
            on_change=self._background_changed.emit,
        )
        self.controller = InteractionController(
            commit=self._committer.submit,
            on_selection_changed=self._on_selection_changed,
            on_gesture_start=self._begin_gesture,
            on_gesture_end=self._end_gesture,
            on_live_change=lambda fid, rect: self._refresh(),
        )
        self._compositor = CanvasCompositor(self.controller, self._committer.tracker)
        self._gesture_filter = _GestureFilter(self, self)

        self._background_changed.connect(self._on_background_changed)
        self._field_committed.connect(self._on_field_committed)
        self._field_failed.connect(self._on_field_failed)

        self._spinner = QTimer(self)
        self._spinner.setInterval(_SPINNER_INTERVAL_MS)
        self._spinner.timeout.connect(self._tick_spinner)

        self.setMouseTracking(True)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents)
        self.setFocusPolicy(Qt.FocusPolicy.ClickFocus)
        self._resize_surface()

    # ── Public API ────────────────────────────────────────────────────────────

    def document(self) -> Optional[Document]:
        return self._document

    def fields(self) -> List[TextField]:
        return list(self._fields)

    def zoom(self) -> int:
        return self._zoom

    def set_document(self, document: Optional[Document]):
        self.controller.reset()
        self._document = document
        self._background_pixmap = None
        self._hover_id = None
        self._loader.load(document)
        self.reload_fields()
        self._resize_surface()

    def set_zoom(self, percent: int):
        if percent == self._zoom:
            return
        # A zoom change mid-gesture would change the delta scale under the pointer.
        self.controller.pointer_up()
        self._zoom = percent
        self._resize_surface()
        self._refresh()

    def reload_fields(self):
        previous = {f.id for f in self._fields}
        if self._document is None:
            self._fields = []
        else:
            self._fields = self._store.list_fields_by_document(self._document.id)
        # Deleted fields, or every field of a document we left
        for field_id in previous - {f.id for f in self._fields}:
            self._committer.forget(field_id)
        selected = self.controller.selected_id
        if selected is not None and selected not in {f.id for f in self._fields}:
            self.controller.field_removed(selected)
        self._refresh()

    def select_field(self, field_id: Optional[str]):
        self.controller.select(field_id)
        self._refresh()

    def shutdown(self):
        self.controller.cancel()
        self._pool.shutdown(wait=False, cancel_futures=True)

    # ── Rendering ─────────────────────────────────────────────────────────────

    def _scale(self) -> float:
        return zoom_scale(self._zoom)

    def _frame(self) -> Optional[Frame]:
        if self._document is None:
            return None
        return self._compositor.compose(self._document, self._fields, self._scale(),
                                        self._background_state, self._hover_id)

    def _refresh(self):
        """Schedule a repaint if anything the frame depends on has changed."""
        if self._document is None:
            self.update()
        elif self._compositor.needs_repaint(self._document, self._fields, self._scale(),
                                             self._background_state, self._hover_id):
            self.update()

    def _resize_surface(self):
        if self._document is None:
            self.setFixedSize(400, 300)
            return
        s = self._scale()
        self.setFixedSize(int(round(self._document.width * s)),
                          int(round(self._document.height * s)))

    def paintEvent(self, event):
        frame = self._frame()
        painter = QPainter(self)
        try:
            if frame is None:
                painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter,
                                 "No document loaded.\nUse File › Open Document…")
                return
            field_overlay.paint_frame(painter, frame, self._background_pixmap,
                                      self._spinner_angle)
        finally:
            painter.end()

    def _on_background_changed(self, state: BackgroundState):
        if self._document is None or state.document_id not in (None, self._document.id):
            return  # a late signal for a document we already left
        self._background_state = state
        if state.status == BACKGROUND_READY and state.page is not None:
            self._background_pixmap = field_overlay.raster_to_pixmap(state.page)
        elif state.status == BACKGROUND_FAILED:
            logger.warning("Preview unavailable for %s: %s", state.document_id, state.error)
            self._background_pixmap = None
        if state.status == BACKGROUND_LOADING:
            self._spinner.start()
        else:
            self._spinner.stop()
        self._refresh()

    def _tick_spinner(self):
        self._spinner_angle = (self._spinner_angle + _SPINNER_STEP) % 360
        self.update()

    # ── Commits ───────────────────────────────────────────────────────────────

    def _on_field_committed(self, field: TextField):
        self._fields = [field if f.id == field.id else f for f in self._fields]
        self.fields_changed.emit()
        self._refresh()

    def _on_field_failed(self, field_id: str, message: str):
        if all(f.id != field_id for f in self._fields):
            logger.debug("Ignoring failed commit for removed field %s", field_id)
            return
        self.reload_fields()
        self.commit_failed.emit(message)

    # ── Gesture affordances ───────────────────────────────────────────────────

    def _begin_gesture(self, cursor: str):
        QApplication.instance().installEventFilter(self._gesture_filter)
        QApplication.setOverrideCursor(
            _GESTURE_CURSORS.get(cursor, Qt.CursorShape.SizeAllCursor))
        # Keeps drag-selection out of every other widget until release.
        self.grabMouse()

    def _end_gesture(self):
        self.releaseMouse()
        QApplication.restoreOverrideCursor()
        QApplication.instance().removeEventFilter(self._gesture_filter)
        self._refresh()

    def _on_selection_changed(self, field_id: Optional[str]):
        self.selection_changed.emit(field_id)
        self._refresh()

    # ── Pointer input ─────────────────────────────────────────────────────────

    def _press(self, local: Point, global_point: Point, touches: int = 1):
        frame = self._frame()
        if frame is None:
            return
        hit = self._compositor.hit_test(frame, local)
        if hit is None:
            self.controller.background_click()
            return
        field = next((f for f in self._fields if f.id == hit.field_id), None)
        if field is None:
            self.controller.reset()
            return
        self.controller.pointer_down(field.id, self._compositor.display_rect(field),
                                     global_point, self._scale(),
                                     handle=hit.handle, touches=touches)
        self._refresh()

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            p = event.position()
            self._press(Point(p.x(), p.y()), _global_point(event))
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self.controller.is_active:
            self.controller.pointer_move(_global_point(event))
            return
        p = event.position()
        self._update_hover(Point(p.x(), p.y()))

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton and self.controller.is_active:
            self.controller.pointer_up()
            return
        super().mouseReleaseEvent(event)

    def event(self, event):
        if event.type() == QEvent.Type.TouchBegin:
            points = event.points()
            if len(points) == 1:
                pos, gpos = points[0].position(), points[0].globalPosition()
                self._press(Point(pos.x(), pos.y()), Point(gpos.x(), gpos.y()))
            event.accept()
            return True
        return super().event(event)

    def leaveEvent(self, event):
        if self._hover_id is not None:
            self._hover_id = None
            self._refresh()
        super().leaveEvent(event)

    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Escape and self.controller.is_active:
            self.controller.cancel()
            return
        super().keyPressEvent(event)

    def _update_hover(self, local: Point):
        frame = self._frame()
        hit = self._compositor.hit_test(frame, local) if frame else None
        hover_id = hit.field_id if hit else None
        if hit is None:
            self.setCursor(Qt.CursorShape.ArrowCursor)
        elif hit.handle is not None:
            self.setCursor(_GESTURE_CURSORS[cursor_for(MODE_RESIZING, hit.handle)])
        elif hit.field_id == self.controller.selected_id:
            self.setCursor(Qt.CursorShape.SizeAllCursor)
        else:
            self.setCursor(Qt.CursorShape.PointingHandCursor)
        if hover_id != self._hover_id:
            self._hover_id = hover_id
            self._refresh()
