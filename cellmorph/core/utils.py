from __future__ import annotations
import logging
from typing import Tuple, Union

from PIL import Image
import numpy as np

from .errors import DegenerateGridError

logger = logging.getLogger(__name__)

ImageLike = Union[Image.Image, np.ndarray]


def load_image(path: str) -> Image.Image:
    img = Image.open(path)
    img.load()
    return img.convert("RGBA")


def image_size(img: ImageLike) -> Tuple[int, int]:
    """(width, height) of a PIL image or an HxW[xC] array."""
    if isinstance(img, Image.Image):
        return img.size
    arr = np.asarray(img)
    return int(arr.shape[1]), int(arr.shape[0])


def normalize_dimensions(size_a: Tuple[int, int], size_b: Tuple[int, int], cell_size: int) -> Tuple[int, int]:
    """
    Shared canvas size giving both images the same integer cell grid.

    Each axis is floored to a multiple of `cell_size`, keeping the smaller
    grid of the two images.
    """
    if cell_size <= 0:
        raise ValueError(f"cell_size must be positive, got {cell_size}")

    blocks_x = min(size_a[0] // cell_size, size_b[0] // cell_size)
    blocks_y = min(size_a[1] // cell_size, size_b[1] // cell_size)
    if blocks_x == 0 or blocks_y == 0:
        raise DegenerateGridError(
            f"images {size_a} and {size_b} are smaller than one {cell_size}px cell"
        )
    return blocks_x * cell_size, blocks_y * cell_size


def to_rgba_array(img: ImageLike) -> np.ndarray:
    if isinstance(img, Image.Image):
        return np.asarray(img.convert("RGBA"), dtype=np.uint8)
    arr = np.asarray(img)
    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError("Unsupported image array shape; expected HxW, HxWx3 or HxWx4.")
    arr = arr.astype(np.uint8, copy=False)
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=2)
    return arr


def resize_to(img: ImageLike, size: Tuple[int, int]) -> np.ndarray:
    """Resample an image to exactly `size` and return it as an HxWx4 uint8 array."""
    if image_size(img) == tuple(size):
        return to_rgba_array(img).copy()
    if not isinstance(img, Image.Image):
        img = Image.fromarray(to_rgba_array(img), "RGBA")
    logger.debug("resizing %s -> %s", img.size, size)
    img = img.convert("RGBA").resize(tuple(size), Image.LANCZOS)
    return np.asarray(img, dtype=np.uint8).copy()


def save_image(array: np.ndarray, path: str):
    Image.fromarray(np.asarray(array, dtype=np.uint8)).save(path)
