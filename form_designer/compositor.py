"""Canvas compositor: lay out the document surface and its field overlays.

The compositor is toolkit-free.  ``compose`` produces a ``Frame``: the
surface size at the current zoom, what to paint as background, and one
``FieldOverlay`` per field in screen pixels.  Background and overlays share
the same scale, so a field at document (100, 100) stays anchored to the same
spot on the page at every zoom level.  The Qt painter in ``field_overlay``
only draws what the frame says.

Field rects come from three tiers, highest first: the controller's live
rect during a gesture, the pending value of an in-flight commit, and the
stored value.
"""
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from form_designer.commits import CommitTracker
from form_designer.geometry import (
    RESIZE_E, RESIZE_S, RESIZE_SE, Point, Rect, to_screen,
)
from form_designer.interaction import STATE_IDLE, InteractionController
from form_designer.models import Document, TextField
from form_designer.rasterize import (
    BACKGROUND_LOADING, BackgroundState,
)

# Handle sizes in screen pixels (constant at every zoom level)
HANDLE_CORNER = 8
HANDLE_LONG = 20
HANDLE_SHORT = 6
HANDLE_OVERHANG = 4      # how far a handle sticks out past the field border
HANDLE_HIT_SLOP = 4      # extra grab tolerance around each handle

LOADING_LABEL = "Loading PDF..."


@dataclass(frozen=True)
class Handle:
    direction: str
    rect: Rect


@dataclass(frozen=True)
class FieldOverlay:
    field_id: str
    label: str
    font_family: str
    required: bool
    rect: Rect               # screen pixels
    state: str               # interaction state from the controller
    hovered: bool = False
    handles: Tuple[Handle, ...] = ()

    @property
    def selected(self) -> bool:
        return self.state != STATE_IDLE


@dataclass(frozen=True)
class Frame:
    width: float
    height: float
    scale: float
    background: BackgroundState
    placeholder: Optional[str]
    overlays: Tuple[FieldOverlay, ...]


@dataclass(frozen=True)
class Hit:
    field_id: str
    handle: Optional[str] = None


def handle_rects(r: Rect) -> Tuple[Handle, ...]:
    """The three resize handles of a selected field, in screen pixels."""
    mid_x = r.x + r.width / 2
    mid_y = r.y + r.height / 2
    inset = HANDLE_CORNER - HANDLE_OVERHANG
    return (
        Handle(RESIZE_SE, Rect(r.right - inset, r.bottom - inset,
                               HANDLE_CORNER, HANDLE_CORNER)),
        Handle(RESIZE_E, Rect(r.right - (HANDLE_SHORT - HANDLE_OVERHANG),
                              mid_y - HANDLE_LONG / 2, HANDLE_SHORT, HANDLE_LONG)),
        Handle(RESIZE_S, Rect(mid_x - HANDLE_LONG / 2,
                              r.bottom - (HANDLE_SHORT - HANDLE_OVERHANG),
                              HANDLE_LONG, HANDLE_SHORT)),
    )


def _grow(r: Rect, d: float) -> Rect:
    return Rect(r.x - d, r.y - d, r.width + 2 * d, r.height + 2 * d)


def field_rect(field: TextField) -> Rect:
    return Rect(field.x, field.y, field.width, field.height)


class CanvasCompositor:
    """Builds frames and remembers what the last painted frame depended on."""

    def __init__(self, controller: InteractionController,
                 tracker: Optional[CommitTracker] = None):
        self._controller = controller
        self._tracker = tracker
        self._last_key = None

    def display_rect(self, field: TextField) -> Rect:
        live = self._controller.live_rect(field.id)
        if live is not None:
            return live
        if self._tracker is not None:
            field = self._tracker.overlay(field)
        return field_rect(field)

    def compose(self, document: Document, fields: Iterable[TextField], scale: float,
                background: BackgroundState, hover_id: Optional[str] = None) -> Frame:
        overlays = []
        for field in fields:
            screen = to_screen(self.display_rect(field), scale)
            state = self._controller.state_of(field.id)
            overlays.append(FieldOverlay(
                field_id=field.id,
                label=field.name,
                font_family=field.font_family,
                required=field.required,
                rect=screen,
                state=state,
                hovered=(field.id == hover_id),
                handles=handle_rects(screen) if state != STATE_IDLE else (),
            ))
        placeholder = None
        if background.status == BACKGROUND_LOADING and document.is_pdf:
            placeholder = LOADING_LABEL
        return Frame(
            width=document.width * scale,
            height=document.height * scale,
            scale=scale,
            background=background,
            placeholder=placeholder,
            overlays=tuple(overlays),
        )

    def needs_repaint(self, document: Optional[Document], fields: Iterable[TextField],
                      scale: float, background: BackgroundState,
                      hover_id: Optional[str] = None) -> bool:
        """True when zoom, fields, selection, gesture or background changed."""
        fields = tuple(fields)
        key = (
            document.id if document else None,
            scale,
            fields,
            tuple(self.display_rect(f) for f in fields),
            self._controller.selected_id,
            background.status,
            background.document_id,
            hover_id,
        )
        if key == self._last_key:
            return False
        self._last_key = key
        return True

    @staticmethod
    def hit_test(frame: Frame, point: Point) -> Optional[Hit]:
        """Return what lies under screen *point*; topmost (last painted) wins."""
        for overlay in reversed(frame.overlays):
            for handle in overlay.handles:
                if _grow(handle.rect, HANDLE_HIT_SLOP).contains(point):
                    return Hit(overlay.field_id, handle.direction)
        for overlay in reversed(frame.overlays):
            if overlay.rect.contains(point):
                return Hit(overlay.field_id)
        return None
