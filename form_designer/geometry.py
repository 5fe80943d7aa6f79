"""Geometry engine: pointer deltas to document-space field rectangles.

Every function here is pure.  Inputs are the pointer position at gesture
start, the current pointer position, the zoom scale (displayed pixels per
document pixel) and the field rectangle snapshot taken at gesture start.
The result is a *candidate* rectangle; callers decide when to commit it.

Positions are clamped to be non-negative but have no upper bound: a field
may be dragged past the right or bottom edge of the document.
"""
from dataclasses import dataclass
from typing import Tuple

MIN_FIELD_WIDTH = 50.0
MIN_FIELD_HEIGHT = 20.0

RESIZE_SE = "se"
RESIZE_E = "e"
RESIZE_S = "s"
RESIZE_DIRECTIONS = (RESIZE_SE, RESIZE_E, RESIZE_S)

_WIDTH_DIRECTIONS = (RESIZE_SE, RESIZE_E)
_HEIGHT_DIRECTIONS = (RESIZE_SE, RESIZE_S)


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, p: Point) -> bool:
        return self.x <= p.x <= self.right and self.y <= p.y <= self.bottom

    def moved_to(self, x: float, y: float) -> "Rect":
        return Rect(x, y, self.width, self.height)

    def resized_to(self, width: float, height: float) -> "Rect":
        return Rect(self.x, self.y, width, height)


def document_delta(p0: Point, p1: Point, scale: float) -> Tuple[float, float]:
    """Convert an on-screen pointer delta to a document-space delta."""
    if scale <= 0:
        raise ValueError(f"zoom scale must be positive, got {scale!r}")
    return (p1.x - p0.x) / scale, (p1.y - p0.y) / scale


def drag_rect(r0: Rect, p0: Point, p1: Point, scale: float) -> Rect:
    """Return *r0* moved by the pointer travel from *p0* to *p1*."""
    dx, dy = document_delta(p0, p1, scale)
    return r0.moved_to(max(0.0, r0.x + dx), max(0.0, r0.y + dy))


def resize_rect(r0: Rect, direction: str, p0: Point, p1: Point, scale: float) -> Rect:
    """Return *r0* resized from its *direction* handle.

    ``se`` changes both axes, ``e`` only the width and ``s`` only the height.
    The minimum field size is a hard floor.
    """
    if direction not in RESIZE_DIRECTIONS:
        raise ValueError(f"unknown resize direction {direction!r}")
    dx, dy = document_delta(p0, p1, scale)
    width, height = r0.width, r0.height
    if direction in _WIDTH_DIRECTIONS:
        width = max(MIN_FIELD_WIDTH, r0.width + dx)
    if direction in _HEIGHT_DIRECTIONS:
        height = max(MIN_FIELD_HEIGHT, r0.height + dy)
    return r0.resized_to(width, height)


def to_screen(r: Rect, scale: float) -> Rect:
    """Document-space rect → displayed pixels at *scale*."""
    return Rect(r.x * scale, r.y * scale, r.width * scale, r.height * scale)


def to_document(p: Point, scale: float) -> Point:
    """Displayed pixel position → document space at *scale*."""
    return Point(p.x / scale, p.y / scale)
