from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from . import utils
from .gradients import Signature, extract_signatures

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Cell:
    """
    One SxS block of a normalized image.

    `pixels` is a read-only RGBA view owned by the cell; `x`, `y` are the
    top-left pixel coordinates of the block in its source image.
    """

    x: int
    y: int
    size: int
    pixels: np.ndarray
    signature: Signature

    @property
    def position(self) -> Tuple[int, int]:
        return (self.x, self.y)


def grid_shape(width: int, height: int, cell_size: int) -> Tuple[int, int]:
    return (width // cell_size, height // cell_size)


def divide_into_cells(pixels: np.ndarray, cell_size: int, workers: Optional[int] = None) -> List[Cell]:
    """
    Slice an image into row-major SxS cells and compute their signatures.

    Both images of a pair must go through this function so that their cell
    orders agree (y outer, x inner).
    """
    if cell_size <= 0:
        raise ValueError(f"cell_size must be positive, got {cell_size}")

    arr = utils.to_rgba_array(pixels)
    height, width = arr.shape[0], arr.shape[1]
    blocks_x, blocks_y = grid_shape(width, height, cell_size)

    positions = []
    buffers = []
    for by in range(blocks_y):
        for bx in range(blocks_x):
            x = bx * cell_size
            y = by * cell_size
            buf = arr[y:y + cell_size, x:x + cell_size].copy()
            buf.setflags(write=False)
            positions.append((x, y))
            buffers.append(buf)

    signatures = extract_signatures(buffers, workers=workers)
    logger.debug("divided %dx%d image into %d cells", width, height, len(buffers))

    return [
        Cell(x=x, y=y, size=cell_size, pixels=buf, signature=sig)
        for (x, y), buf, sig in zip(positions, buffers, signatures)
    ]
