"""Font registration for the offscreen renderer.

Fonts are registered once by an explicit startup step. Registration is keyed
by font id, so calling ``register_fonts`` again is a no-op. DejaVu Sans ships
with matplotlib and is located through its font manager; Pillow's bundled
default font is used when it cannot be found.
"""

from __future__ import annotations

import threading

from PIL import ImageFont

from ..core.logging_config import get_logger

logger = get_logger(__name__)

REGULAR = "regular"
BOLD = "bold"

_lock = threading.Lock()
_font_paths: dict[str, str | None] = {}
_font_cache: dict[tuple[str, int], ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}


def _find_font_path(weight: str) -> str | None:
    try:
        from matplotlib import font_manager
    except ImportError:
        return None
    try:
        return font_manager.findfont(
            font_manager.FontProperties(family="DejaVu Sans", weight=weight),
            fallback_to_default=True,
        )
    except ValueError:
        return None


def register_fonts() -> None:
    """Resolve font files for every font id not yet registered."""
    with _lock:
        for font_id, weight in ((REGULAR, "normal"), (BOLD, "bold")):
            if font_id in _font_paths:
                continue
            path = _find_font_path(weight)
            _font_paths[font_id] = path
            if path is None:
                logger.warning(
                    "Font not found, using Pillow default", extra={"font_id": font_id}
                )
            else:
                logger.debug("Registered font", extra={"font_id": font_id, "path": path})


def registered_fonts() -> dict[str, str | None]:
    with _lock:
        return dict(_font_paths)


def get_font(bold: bool, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Return a cached font of the given weight and pixel size."""
    font_id = BOLD if bold else REGULAR
    if font_id not in _font_paths:
        register_fonts()
    key = (font_id, size)
    with _lock:
        font = _font_cache.get(key)
        if font is not None:
            return font
        path = _font_paths.get(font_id)
        if path is not None:
            try:
                font = ImageFont.truetype(path, size)
            except OSError:
                logger.warning("Failed to load font file", extra={"path": path})
                font = ImageFont.load_default(size)
        else:
            font = ImageFont.load_default(size)
        _font_cache[key] = font
        return font
