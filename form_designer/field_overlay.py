"""Field overlay: paint a compositor ``Frame`` with QPainter.

Everything here works in screen pixels; the frame has already applied the
zoom scale to the background size and every field rect.
"""
from typing import Optional

from PySide6.QtCore import QRectF, Qt
from PySide6.QtGui import QColor, QFont, QImage, QPainter, QPen, QPixmap

from form_designer.compositor import FieldOverlay, Frame
from form_designer.models import FONT_ALLURA, FONT_DANCING_SCRIPT
from form_designer.rasterize import RasterPage

_PRIMARY     = QColor(37, 99, 235)          # selection / hover / handles
_BORDER      = QColor(0, 0, 0)
_FIELD_FILL  = QColor(255, 255, 255, 204)   # 80 % white so the page shows through
_LABEL       = QColor(75, 85, 99)
_SURFACE     = QColor(255, 255, 255)
_LOADING_BG  = QColor(245, 245, 245)
_SPINNER_R   = 16
_LABEL_PAD   = 8
_LABEL_PT    = 10

_CURSIVE = {FONT_ALLURA, FONT_DANCING_SCRIPT}


def raster_to_pixmap(page: RasterPage) -> QPixmap:
    """Wrap an RGB sample buffer in a QPixmap (copied, so *page* may go away)."""
    img = QImage(page.samples, page.width, page.height, page.stride,
                 QImage.Format.Format_RGB888)
    return QPixmap.fromImage(img.copy())


def paint_frame(painter: QPainter, frame: Frame, background: Optional[QPixmap],
                spinner_angle: int = 0) -> None:
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    surface = QRectF(0, 0, frame.width, frame.height)
    painter.fillRect(surface, _SURFACE)
    if background is not None and not background.isNull():
        painter.drawPixmap(_contain(background, surface), background,
                           QRectF(background.rect()))
    if frame.placeholder:
        _draw_placeholder(painter, surface, frame.placeholder, spinner_angle)
    for overlay in frame.overlays:
        _draw_field(painter, overlay)


# ── Internal helpers ──────────────────────────────────────────────────────────

def _contain(pm: QPixmap, surface: QRectF) -> QRectF:
    """Largest rect with *pm*'s aspect ratio centred in *surface*."""
    pw, ph = pm.width(), pm.height()
    if pw <= 0 or ph <= 0:
        return surface
    s = min(surface.width() / pw, surface.height() / ph)
    w, h = pw * s, ph * s
    return QRectF(surface.x() + (surface.width() - w) / 2,
                  surface.y() + (surface.height() - h) / 2, w, h)


def _draw_placeholder(painter: QPainter, surface: QRectF, text: str, angle: int):
    painter.fillRect(surface, _LOADING_BG)
    cx, cy = surface.center().x(), surface.center().y()
    painter.setPen(QPen(_PRIMARY, 3))
    painter.setBrush(Qt.BrushStyle.NoBrush)
    # QPainter angles are in 1/16 degree
    painter.drawArc(QRectF(cx - _SPINNER_R, cy - _SPINNER_R - 12,
                           _SPINNER_R * 2, _SPINNER_R * 2),
                    -angle * 16, 270 * 16)
    font = QFont()
    font.setPointSize(_LABEL_PT)
    painter.setFont(font)
    painter.setPen(_LABEL)
    painter.drawText(QRectF(surface.x(), cy + _SPINNER_R, surface.width(), 24),
                     Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop, text)


def _draw_field(painter: QPainter, overlay: FieldOverlay):
    r = overlay.rect
    box = QRectF(r.x, r.y, r.width, r.height)
    painter.fillRect(box, _FIELD_FILL)
    colour = _PRIMARY if (overlay.selected or overlay.hovered) else _BORDER
    painter.setPen(QPen(colour, 2))
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.drawRect(box)

    font = QFont(overlay.font_family)
    if overlay.font_family in _CURSIVE:
        font.setStyleHint(QFont.StyleHint.Cursive)
    font.setPointSize(_LABEL_PT)
    painter.setFont(font)
    painter.setPen(_LABEL)
    label = overlay.label + (" *" if overlay.required else "")
    painter.save()
    painter.setClipRect(box)
    painter.drawText(box.adjusted(_LABEL_PAD, 0, -_LABEL_PAD, 0),
                     Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignLeft, label)
    painter.restore()

    for handle in overlay.handles:
        h = handle.rect
        painter.setPen(QPen(QColor("white"), 1))
        painter.setBrush(_PRIMARY)
        painter.drawRect(QRectF(h.x, h.y, h.width, h.height))
