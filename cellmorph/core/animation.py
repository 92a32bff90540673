"""
animation.py

Turns an assignment into a fully materialized sequence of interpolated frames.

Frame counts are bounded by `frame_budget`, a single step function of the
cell count shared by synthesis, playback and export. Every cell moves at the
same time along a straight line, eased with a cubic in/out curve.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Iterator, NamedTuple, Optional, Sequence, Tuple

from .blocks import Cell
from .rearrange import MatchResult

logger = logging.getLogger(__name__)

MIN_FRAMES = 6

# (cell count strictly above, fps cap); checked from the largest threshold down
_FPS_STEPS = ((10000, 10), (4000, 15), (1000, 20))
_FRAME_CEILINGS = ((8000, 8), (4000, 10), (2000, 14), (1000, 18))

# (cell count strictly above, playback duration in ms)
_PLAYBACK_DURATIONS = ((8000, 2400), (4000, 2000), (1500, 1800))
_BASE_PLAYBACK_MS = 1600


class FrameBudget(NamedTuple):
    fps: int
    ceiling: Optional[int]


def frame_budget(cell_count: int, nominal_fps: int = 30) -> FrameBudget:
    """
    Adjusted fps and hard frame ceiling for a grid of `cell_count` cells.

    Both values are non-increasing in `cell_count`. Grids of 1000 cells or
    fewer run at the nominal fps with no ceiling.
    """
    fps = nominal_fps
    for threshold, cap in _FPS_STEPS:
        if cell_count > threshold:
            fps = min(nominal_fps, cap)
            break

    ceiling = None
    for threshold, cap in _FRAME_CEILINGS:
        if cell_count > threshold:
            ceiling = cap
            break
    return FrameBudget(fps=fps, ceiling=ceiling)


def total_frames(cell_count: int, duration_ms: float, nominal_fps: int = 30) -> int:
    """Number of frame intervals; the sequence holds total_frames + 1 frames."""
    budget = frame_budget(cell_count, nominal_fps)
    frames = int(math.floor(duration_ms / 1000 * budget.fps))
    if budget.ceiling is not None:
        frames = min(frames, budget.ceiling)
    return max(MIN_FRAMES, frames)


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


def lerp(start: float, end: float, t: float) -> float:
    # exact at t == 0 and t == 1
    return start * (1 - t) + end * t


@dataclass(frozen=True)
class Placement:
    cell: Cell
    x: float
    y: float


@dataclass(frozen=True)
class Frame:
    progress: float
    placements: Tuple[Placement, ...]


@dataclass(frozen=True)
class FrameSequence:
    """
    Ordered, replayable frames of one run. Indexable for scrubbing.
    """

    frames: Tuple[Frame, ...]
    width: int
    height: int
    cell_count: int

    def __len__(self) -> int:
        return len(self.frames)

    def __getitem__(self, index: int) -> Frame:
        return self.frames[index]

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)

    @property
    def last_index(self) -> int:
        return len(self.frames) - 1


def _grid_extent(cells: Sequence[Cell]) -> Tuple[int, int]:
    width = max(c.x + c.size for c in cells)
    height = max(c.y + c.size for c in cells)
    return width, height


def synthesize_frames(
    sources: Sequence[Cell],
    targets: Sequence[Cell],
    assignment: Sequence[MatchResult],
    duration_ms: float = 2000,
    fps: int = 30,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> FrameSequence:
    """
    Interpolate every matched source cell towards its target position.

    Frame 0 holds the exact source positions and the last frame the exact
    target positions. Placements follow the assignment order.
    """
    if duration_ms <= 0 or fps <= 0:
        raise ValueError("duration_ms and fps must be positive")
    if not sources:
        raise ValueError("cannot animate an empty grid")

    cell_count = len(sources)
    count = total_frames(cell_count, duration_ms, fps)

    pairs = []
    for m in assignment:
        src = sources[m.source_index]
        tgt = targets[m.target_index]
        pairs.append((src, float(src.x), float(src.y), float(tgt.x), float(tgt.y)))

    frames = []
    for frame in range(count + 1):
        progress = frame / count
        eased = ease_in_out_cubic(progress)
        placements = tuple(
            Placement(cell=src, x=lerp(sx, tx, eased), y=lerp(sy, ty, eased))
            for src, sx, sy, tx, ty in pairs
        )
        frames.append(Frame(progress=progress, placements=placements))

    if width is None or height is None:
        width, height = _grid_extent(targets)

    logger.debug("synthesized %d frames for %d cells", len(frames), cell_count)
    return FrameSequence(frames=tuple(frames), width=width, height=height, cell_count=cell_count)


def playback_delay_ms(cell_count: int, frame_count: int) -> float:
    """Minimum delay between live frames; large grids get a longer total playback."""
    duration = _BASE_PLAYBACK_MS
    for threshold, ms in _PLAYBACK_DURATIONS:
        if cell_count > threshold:
            duration = ms
            break
    return duration / max(1, frame_count)


def advance(sequence: FrameSequence, current_index: int, elapsed_ms: float, delay_ms: float) -> int:
    """
    Next frame index after `elapsed_ms` since the last rendered frame.

    Moves at most one frame per call and stops at the last frame.
    """
    if elapsed_ms < delay_ms:
        return current_index
    return min(current_index + 1, sequence.last_index)


def default_export_duration_ms(frame_count: int) -> int:
    # ~60ms per frame, kept between 1.5s and 5s
    return min(5000, max(1500, frame_count * 60))
