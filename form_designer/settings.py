"""Designer settings: load/save the JSON config and set up logging."""
import json
import logging
import os
from dataclasses import asdict, dataclass
from typing import Optional

CONFIG_ENV_VAR = "FORM_DESIGNER_CONFIG"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_FONTS_DIR = os.path.join(_PACKAGE_DIR, "fonts")   # shipped as package data


@dataclass
class DesignerSettings:
    fonts_dir: str = DEFAULT_FONTS_DIR
    max_upload_bytes: int = 10 * 1024 * 1024  # 10 MiB
    default_zoom: int = 100        # percent
    zoom_step: int = 25            # percent per zoom-in / zoom-out click
    min_zoom: int = 25
    max_zoom: int = 200
    export_font_size: float = 12.0
    preview_render_scale: float = 2.0  # rasterize PDF previews at 2x for crisp zoom
    debug_mode: bool = False


def load_settings(path: Optional[str] = None) -> DesignerSettings:
    """Read settings from *path* (or ``$FORM_DESIGNER_CONFIG``).

    Missing files and missing keys fall back to the defaults.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path or not os.path.exists(path):
        return DesignerSettings()
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    defaults = DesignerSettings()
    return DesignerSettings(
        fonts_dir=str(data.get("fonts_dir", defaults.fonts_dir)),
        max_upload_bytes=int(data.get("max_upload_bytes", defaults.max_upload_bytes)),
        default_zoom=int(data.get("default_zoom", defaults.default_zoom)),
        zoom_step=int(data.get("zoom_step", defaults.zoom_step)),
        min_zoom=int(data.get("min_zoom", defaults.min_zoom)),
        max_zoom=int(data.get("max_zoom", defaults.max_zoom)),
        export_font_size=float(data.get("export_font_size", defaults.export_font_size)),
        preview_render_scale=float(
            data.get("preview_render_scale", defaults.preview_render_scale)
        ),
        debug_mode=bool(data.get("debug_mode", defaults.debug_mode)),
    )


def save_settings(settings: DesignerSettings, path: str) -> None:
    """Write *settings* to *path* as JSON."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(asdict(settings), f, indent=2)
        f.write("\n")


def clamp_zoom(percent: int, settings: DesignerSettings) -> int:
    return max(settings.min_zoom, min(settings.max_zoom, percent))


def zoom_scale(percent: int) -> float:
    """Displayed pixels per document pixel for a UI zoom percentage."""
    return percent / 100.0


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.INFO)
