from __future__ import annotations
from typing import Optional

import numpy as np

from cellmorph.core.animation import FrameSequence, advance, playback_delay_ms
from .render import render_frame


class Player:
    """
    Cooperative playback over a frame sequence.

    Call `tick` from any scheduler; each call renders at most one frame onto
    the surface. Pausing between ticks keeps the current index, so playback
    resumes where it stopped. The surface must not be written by anything
    else (such as an export) while the player owns it.
    """

    def __init__(self, sequence: FrameSequence, delay_ms: Optional[float] = None):
        self.sequence = sequence
        self.delay_ms = delay_ms if delay_ms is not None else playback_delay_ms(sequence.cell_count, len(sequence))
        self.index = 0
        self.playing = False
        self._last_tick: Optional[float] = None

    def play(self):
        # at the end, restart from the beginning
        if self.index >= self.sequence.last_index:
            self.index = 0
        self.playing = True
        self._last_tick = None

    def pause(self):
        self.playing = False

    def toggle(self):
        if self.playing:
            self.pause()
        else:
            self.play()

    def seek(self, index: int, surface: Optional[np.ndarray] = None):
        """Jump to a frame; render it immediately when a surface is given."""
        self.index = max(0, min(index, self.sequence.last_index))
        self._last_tick = None
        if surface is not None:
            self.render_current(surface)

    def render_current(self, surface: np.ndarray) -> np.ndarray:
        return render_frame(surface, self.sequence[self.index], self.sequence.width, self.sequence.height)

    def tick(self, surface: np.ndarray, now_ms: float) -> bool:
        """Returns True when a frame was rendered."""
        if not self.playing:
            return False

        if self._last_tick is None:
            target = self.index
        else:
            elapsed = now_ms - self._last_tick
            if elapsed < self.delay_ms:
                return False
            target = advance(self.sequence, self.index, elapsed, self.delay_ms)

        render_frame(surface, self.sequence[target], self.sequence.width, self.sequence.height)
        self.index = target
        self._last_tick = now_ms
        if self.index >= self.sequence.last_index:
            self.playing = False
        return True
