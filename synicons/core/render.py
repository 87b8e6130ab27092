"""
Pillow stand-in for the host render primitive, plus an image load probe.
"""
from __future__ import annotations

import logging
import os

from PIL import Image

logger = logging.getLogger(__name__)

MIN_SIZE = 36
MAX_SIZE = 300


def clamp_size(size: int) -> int:
    return max(MIN_SIZE, min(MAX_SIZE, int(size)))


def render_image(source: str, target: str, size: int) -> None:
    """
    Fit ``source`` into a ``size`` x ``size`` box and write it to ``target`` as PNG.
    """
    os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
    with Image.open(source) as im:
        im = im.convert("RGBA")
        im.thumbnail((size, size), Image.LANCZOS)
        im.save(target, "PNG", optimize=True)


def probe_image(path: str) -> bool:
    try:
        with Image.open(path) as im:
            im.verify()
        ok = True
    except (OSError, SyntaxError, ValueError):
        ok = False
    logger.debug("ImageLoadTest path=%s ok=%s", path, ok)
    return ok
