"""
render.py

Blits animation frames onto an RGBA pixel surface.

A surface is a plain (H, W, 4) uint8 array passed in by the caller. It is
written in place and must have a single writer at a time (live playback or
export, never both); that is the caller's responsibility.
"""

from __future__ import annotations
import math
from typing import Tuple

import numpy as np

from cellmorph.core.animation import Frame
from cellmorph.core.errors import SurfaceAcquisitionError

BACKGROUND = (255, 255, 255, 255)

# frames with more placements than this are blitted in two interleaved passes
THINNING_THRESHOLD = 10000


def acquire_surface(width: int, height: int) -> np.ndarray:
    if width <= 0 or height <= 0:
        raise SurfaceAcquisitionError(f"invalid surface size {width}x{height}")
    try:
        return np.empty((height, width, 4), dtype=np.uint8)
    except MemoryError as e:
        raise SurfaceAcquisitionError(f"could not allocate a {width}x{height} surface") from e


def _round(v: float) -> int:
    # half-up, matching canvas pixel snapping
    return int(math.floor(v + 0.5))


def _blit(surface: np.ndarray, pixels: np.ndarray, x: int, y: int, width: int, height: int):
    h, w = pixels.shape[0], pixels.shape[1]
    x0, y0 = max(x, 0), max(y, 0)
    x1, y1 = min(x + w, width), min(y + h, height)
    if x0 >= x1 or y0 >= y1:
        return
    surface[y0:y1, x0:x1] = pixels[y0 - y:y1 - y, x0 - x:x1 - x]


def _check_surface(surface: np.ndarray, width: int, height: int):
    if not isinstance(surface, np.ndarray) or surface.ndim != 3 or surface.shape[2] != 4:
        raise SurfaceAcquisitionError("surface must be an (H, W, 4) array")
    if surface.shape[0] < height or surface.shape[1] < width:
        raise SurfaceAcquisitionError(
            f"surface {surface.shape[1]}x{surface.shape[0]} is smaller than {width}x{height}"
        )
    if not surface.flags.writeable:
        raise SurfaceAcquisitionError("surface is read-only")


def blit_order(frame: Frame, thinning: bool = True) -> Tuple[int, ...]:
    """
    Placement indices in the order they are drawn.

    Thinning only applies to intermediate frames of very large grids; the
    first and last frames are always drawn in placement order.
    """
    n = len(frame.placements)
    if thinning and n > THINNING_THRESHOLD and 0.0 < frame.progress < 1.0:
        return tuple(range(0, n, 2)) + tuple(range(1, n, 2))
    return tuple(range(n))


def render_frame(surface: np.ndarray, frame: Frame, width: int, height: int, thinning: bool = True) -> np.ndarray:
    """Clear `surface` to white and draw every placement of `frame` on it."""
    _check_surface(surface, width, height)
    surface[:height, :width] = BACKGROUND

    placements = frame.placements
    for i in blit_order(frame, thinning=thinning):
        p = placements[i]
        _blit(surface, p.cell.pixels, _round(p.x), _round(p.y), width, height)
    return surface
