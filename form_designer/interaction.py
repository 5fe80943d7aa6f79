"""Drag/resize controller: the per-field interaction state machine.

States, per field::

    Idle ──press──▶ Selected ──press body──▶ Dragging ──release──▶ Selected
                        │                                              │
                        └──press handle──▶ Resizing ──release──────────┘
    Selected ──background click / other field──▶ Idle

At most one field is selected and at most one gesture is active.  Input
arrives as samples (pointer position in screen pixels plus the number of
touch points) so the controller does not depend on any toolkit.  Samples
with more than one touch point are ignored.

While a gesture is active the field's *live* rect is session-local; it is
handed to the commit callback only on release.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from form_designer import geometry
from form_designer.geometry import Point, Rect

logger = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_SELECTED = "selected"
STATE_DRAGGING = "dragging"
STATE_RESIZING = "resizing"

MODE_DRAGGING = "dragging"
MODE_RESIZING = "resizing"

CURSOR_MOVE = "move"


def cursor_for(mode: str, direction: Optional[str]) -> str:
    if mode == MODE_RESIZING and direction:
        return f"{direction}-resize"
    return CURSOR_MOVE


@dataclass
class InteractionSession:
    field_id: str
    mode: str                       # MODE_DRAGGING | MODE_RESIZING
    resize_direction: Optional[str]
    pointer_origin: Point           # screen pixels
    origin_rect: Rect               # field rect at gesture start, document space
    scale: float                    # zoom scale at gesture start
    live_rect: Rect
    moved: bool = False

    def changes(self) -> dict:
        r = self.live_rect
        if self.mode == MODE_DRAGGING:
            return {"x": r.x, "y": r.y}
        return {"width": r.width, "height": r.height}


class InteractionController:
    """Turns pointer/touch samples into live rects and committed updates.

    *commit(field_id, changes)* is called once per finished gesture that
    moved the field.  *on_gesture_start(cursor)* / *on_gesture_end()*
    bracket every gesture (cursor affordance, text-selection suppression);
    the end hook fires however the gesture finishes.
    """

    def __init__(self,
                 commit: Callable[[str, dict], None],
                 on_selection_changed: Optional[Callable[[Optional[str]], None]] = None,
                 on_gesture_start: Optional[Callable[[str], None]] = None,
                 on_gesture_end: Optional[Callable[[], None]] = None,
                 on_live_change: Optional[Callable[[str, Rect], None]] = None):
        self._commit = commit
        self._on_selection_changed = on_selection_changed
        self._on_gesture_start = on_gesture_start
        self._on_gesture_end = on_gesture_end
        self._on_live_change = on_live_change
        self._selected_id: Optional[str] = None
        self._session: Optional[InteractionSession] = None

    # ── Queries ───────────────────────────────────────────────────────────────

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def session(self) -> Optional[InteractionSession]:
        return self._session

    @property
    def is_active(self) -> bool:
        return self._session is not None

    def state_of(self, field_id: str) -> str:
        s = self._session
        if s is not None and s.field_id == field_id:
            return STATE_DRAGGING if s.mode == MODE_DRAGGING else STATE_RESIZING
        if field_id == self._selected_id:
            return STATE_SELECTED
        return STATE_IDLE

    def live_rect(self, field_id: str) -> Optional[Rect]:
        """The provisional rect of *field_id* if it is being manipulated."""
        s = self._session
        if s is not None and s.field_id == field_id:
            return s.live_rect
        return None

    # ── Selection ─────────────────────────────────────────────────────────────

    def select(self, field_id: Optional[str]) -> None:
        """Select *field_id* (or nothing).  Finishes any active gesture first."""
        if self._session is not None and self._session.field_id != field_id:
            self._finish(commit=True)
        if field_id != self._selected_id:
            self._selected_id = field_id
            logger.debug("Selection changed: %s", field_id)
            if self._on_selection_changed:
                self._on_selection_changed(field_id)

    def background_click(self) -> None:
        self.select(None)

    # ── Input samples ─────────────────────────────────────────────────────────

    def pointer_down(self, field_id: str, rect: Rect, point: Point, scale: float,
                     handle: Optional[str] = None, touches: int = 1) -> str:
        """Press on *field_id* (body, or one of its resize *handle*\\ s).

        Returns the field's state after the press.
        """
        if touches != 1:
            return self.state_of(field_id)
        if self._session is not None:
            # A press without a release in between: close out the old gesture.
            self._finish(commit=True)
        if field_id != self._selected_id:
            self.select(field_id)
            return STATE_SELECTED

        if handle is not None:
            if handle not in geometry.RESIZE_DIRECTIONS:
                logger.debug("Ignoring press on unknown handle %r", handle)
                return STATE_SELECTED
            mode = MODE_RESIZING
        else:
            mode = MODE_DRAGGING
        self._session = InteractionSession(
            field_id=field_id,
            mode=mode,
            resize_direction=handle,
            pointer_origin=point,
            origin_rect=rect,
            scale=scale,
            live_rect=rect,
        )
        if self._on_gesture_start:
            self._on_gesture_start(cursor_for(mode, handle))
        return self.state_of(field_id)

    def pointer_move(self, point: Point, touches: int = 1) -> Optional[Rect]:
        """Feed a move sample.  Returns the new live rect, or None if ignored."""
        s = self._session
        if s is None or touches != 1:
            return None
        if s.mode == MODE_DRAGGING:
            rect = geometry.drag_rect(s.origin_rect, s.pointer_origin, point, s.scale)
        else:
            rect = geometry.resize_rect(s.origin_rect, s.resize_direction,
                                        s.pointer_origin, point, s.scale)
        if rect != s.live_rect:
            s.live_rect = rect
            s.moved = True
            if self._on_live_change:
                self._on_live_change(s.field_id, rect)
        return rect

    def pointer_up(self) -> Optional[Rect]:
        """Release: commit the live rect and return to Selected."""
        if self._session is None:
            return None
        return self._finish(commit=True)

    def cancel(self) -> None:
        """Abandon the active gesture without committing; keep the selection."""
        if self._session is not None:
            self._finish(commit=False)

    def reset(self) -> None:
        """Recover from inconsistent input: drop the gesture and deselect."""
        if self._session is not None:
            logger.debug("Resetting interaction for %s", self._session.field_id)
            self._finish(commit=False)
        self.select(None)

    def field_removed(self, field_id: str) -> None:
        s = self._session
        if (s is not None and s.field_id == field_id) or self._selected_id == field_id:
            self.reset()

    # ── Internals ─────────────────────────────────────────────────────────────

    def _finish(self, commit: bool) -> Rect:
        s = self._session
        self._session = None
        try:
            if commit and s.moved:
                logger.debug("Committing %s for %s: %s", s.mode, s.field_id, s.changes())
                self._commit(s.field_id, s.changes())
        finally:
            if self._on_gesture_end:
                self._on_gesture_end()
        return s.live_rect
