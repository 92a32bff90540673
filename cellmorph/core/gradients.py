"""
gradients.py

Per-cell visual signatures.

A signature reduces a cell to three numbers that the cost model compares:
- mean Sobel gradient magnitude
- dominant gradient direction (angle of the mean gradient vector)
- mean RGB color
"""

from __future__ import annotations
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy import ndimage

logger = logging.getLogger(__name__)

SOBEL_X = np.array(
    [
        [-1.0, 0.0, 1.0],
        [-2.0, 0.0, 2.0],
        [-1.0, 0.0, 1.0],
    ]
)
SOBEL_Y = SOBEL_X.T.copy()


@dataclass(frozen=True)
class Signature:
    magnitude: float
    direction: float
    avg_color: Tuple[float, float, float]


def luminance(pixels: np.ndarray) -> np.ndarray:
    rgb = np.asarray(pixels)[..., :3].astype(np.float64)
    return 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]


def apply_sobel(gray: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Horizontal and vertical gradients of a 2D luminance field.

    Border pixels are replicated, so edges of the cell never see zeros.
    """
    gray = np.asarray(gray, dtype=np.float64)
    gx = ndimage.correlate(gray, SOBEL_X, mode="nearest")
    gy = ndimage.correlate(gray, SOBEL_Y, mode="nearest")
    return gx, gy


def compute_signature(pixels: np.ndarray) -> Signature:
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[2] < 3 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ValueError("cell pixels must be a non-empty HxWx3 or HxWx4 array")

    gx, gy = apply_sobel(luminance(pixels))
    magnitude = float(np.mean(np.hypot(gx, gy)))

    # angle of the mean vector, not the mean of per-pixel angles
    direction = math.atan2(float(np.mean(gy)), float(np.mean(gx)))
    if direction <= -math.pi:
        direction = math.pi

    rgb = pixels[..., :3].astype(np.float64)
    avg_color = (
        float(np.mean(rgb[..., 0])),
        float(np.mean(rgb[..., 1])),
        float(np.mean(rgb[..., 2])),
    )
    return Signature(magnitude=magnitude, direction=direction, avg_color=avg_color)


def extract_signatures(blocks: Sequence[np.ndarray], workers: Optional[int] = None) -> List[Signature]:
    """
    Signatures for a list of cell pixel buffers, in input order.

    With `workers` > 1 the cells are processed on a thread pool; cells share
    no state, so the result is identical to the sequential path.
    """
    if workers is None or workers <= 1 or len(blocks) < 2:
        return [compute_signature(b) for b in blocks]

    logger.debug("extracting %d signatures on %d threads", len(blocks), workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(compute_signature, blocks))
