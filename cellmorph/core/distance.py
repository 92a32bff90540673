from __future__ import annotations
import math
from typing import Sequence, Tuple

import numpy as np

from .gradients import Signature

# scale applied to the angular term so it is comparable to magnitude differences
ANGLE_WEIGHT = 10.0


# angle util
def angular_distance(a: float, b: float) -> float:
    """
    Circular distance between two angles in radians, always in [0, pi].
    """
    d = abs(a - b)
    if d > math.pi:
        d = 2 * math.pi - d
    return d


# color dist metrics
def color_distance(a: Tuple[float, float, float], b: Tuple[float, float, float]) -> float:
    """
    Euclidean distance in RGB space.
    """
    dr = a[0] - b[0]
    dg = a[1] - b[1]
    db = a[2] - b[2]
    return math.sqrt(dr * dr + dg * dg + db * db)


def gradient_distance(src: Signature, tgt: Signature) -> float:
    mag = abs(src.magnitude - tgt.magnitude)
    return mag + angular_distance(src.direction, tgt.direction) * ANGLE_WEIGHT


# combined
def pair_cost(src: Signature, tgt: Signature, gradient_weight: float) -> float:
    """
    Weighted sum of edge dissimilarity and color distance.

    C = w * (|dmag| + 10 * dtheta) + (1 - w) * ||dcolor||
    """
    color_weight = 1.0 - gradient_weight
    return gradient_weight * gradient_distance(src, tgt) + color_weight * color_distance(src.avg_color, tgt.avg_color)


# vector versoin
def signature_arrays(signatures: Sequence[Signature]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Stack signatures into (magnitudes (N,), directions (N,), colors (N,3)) float64 arrays.
    """
    n = len(signatures)
    mags = np.empty(n, dtype=np.float64)
    dirs = np.empty(n, dtype=np.float64)
    colors = np.empty((n, 3), dtype=np.float64)
    for i, sig in enumerate(signatures):
        mags[i] = sig.magnitude
        dirs[i] = sig.direction
        colors[i] = sig.avg_color
    return mags, dirs, colors


def batch_pair_cost(
    src_mags: np.ndarray,
    src_dirs: np.ndarray,
    src_colors: np.ndarray,
    tgt: Signature,
    gradient_weight: float,
) -> np.ndarray:
    """
    Cost of every source against a single target. Element i equals
    pair_cost(sources[i], tgt, gradient_weight).
    """
    mag = np.abs(src_mags - tgt.magnitude)
    d = np.abs(src_dirs - tgt.direction)
    d = np.where(d > math.pi, 2 * math.pi - d, d)
    grad = mag + d * ANGLE_WEIGHT

    dr = src_colors[:, 0] - tgt.avg_color[0]
    dg = src_colors[:, 1] - tgt.avg_color[1]
    db = src_colors[:, 2] - tgt.avg_color[2]
    color = np.sqrt(dr * dr + dg * dg + db * db)

    color_weight = 1.0 - gradient_weight
    return gradient_weight * grad + color_weight * color
