"""Single entry point: two images in, a frame sequence out."""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from . import utils
from .animation import FrameSequence, synthesize_frames
from .blocks import Cell, divide_into_cells
from .errors import MismatchedCellCountError
from .rearrange import Assignment, is_bijection, rearrange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Run settings. Validated on construction."""

    cell_size: int = 32
    gradient_weight: float = 0.5
    target_duration_ms: int = 2000
    nominal_fps: int = 30
    mode: str = "greedy"
    workers: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.cell_size, int) or self.cell_size <= 0:
            raise ValueError(f"cell_size must be a positive integer, got {self.cell_size!r}")
        if not 0.0 <= self.gradient_weight <= 1.0:
            raise ValueError(f"gradient_weight must be in [0, 1], got {self.gradient_weight!r}")
        if self.target_duration_ms <= 0:
            raise ValueError(f"target_duration_ms must be positive, got {self.target_duration_ms!r}")
        if self.nominal_fps <= 0:
            raise ValueError(f"nominal_fps must be positive, got {self.nominal_fps!r}")
        if self.mode not in ("greedy", "optimal"):
            raise ValueError(f"Unknown mode '{self.mode}'. Expected 'greedy' or 'optimal'.")


@dataclass(frozen=True)
class MorphRun:
    width: int
    height: int
    source_cells: List[Cell]
    target_cells: List[Cell]
    assignment: Assignment
    frames: FrameSequence
    stats: Dict[str, float]


def prepare(source: utils.ImageLike, target: utils.ImageLike, cell_size: int) -> Tuple[np.ndarray, np.ndarray]:
    """Resample both images onto the shared normalized canvas."""
    width, height = utils.normalize_dimensions(utils.image_size(source), utils.image_size(target), cell_size)
    return utils.resize_to(source, (width, height)), utils.resize_to(target, (width, height))


def run(source: utils.ImageLike, target: utils.ImageLike, settings: Optional[Settings] = None) -> MorphRun:
    settings = settings if settings is not None else Settings()
    t0 = time.time()

    src_px, tgt_px = prepare(source, target, settings.cell_size)
    height, width = src_px.shape[0], src_px.shape[1]

    source_cells = divide_into_cells(src_px, settings.cell_size, workers=settings.workers)
    target_cells = divide_into_cells(tgt_px, settings.cell_size, workers=settings.workers)
    if len(source_cells) != len(target_cells):
        raise MismatchedCellCountError(
            f"source has {len(source_cells)} cells but target has {len(target_cells)}"
        )
    t1 = time.time()
    logger.info("%dx%d canvas, %d cells of %dpx", width, height, len(source_cells), settings.cell_size)

    assignment = rearrange(source_cells, target_cells, settings.gradient_weight, mode=settings.mode)
    if not is_bijection(assignment, len(source_cells)):
        raise RuntimeError(f"{settings.mode} matcher did not return a bijection")
    t2 = time.time()
    logger.info("%s matching done in %.2fs", settings.mode, t2 - t1)

    frames = synthesize_frames(
        source_cells,
        target_cells,
        assignment,
        duration_ms=settings.target_duration_ms,
        fps=settings.nominal_fps,
        width=width,
        height=height,
    )
    t3 = time.time()

    stats = {
        "cells": float(len(source_cells)),
        "frames": float(len(frames)),
        "total_cost": float(sum(m.cost for m in assignment)),
        "decompose_s": t1 - t0,
        "match_s": t2 - t1,
        "animate_s": t3 - t2,
        "duration_s": t3 - t0,
    }
    return MorphRun(
        width=width,
        height=height,
        source_cells=source_cells,
        target_cells=target_cells,
        assignment=assignment,
        frames=frames,
        stats=stats,
    )
