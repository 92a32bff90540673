from __future__ import annotations
import logging
import math
import os
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

import imageio.v3 as iio
import numpy as np
from tqdm import tqdm

from cellmorph.core.animation import FrameSequence, default_export_duration_ms
from cellmorph.core.errors import EncoderError, ExportCancelled
from .render import acquire_surface, render_frame

logger = logging.getLogger(__name__)

ProgressCallback = Optional[Callable[[float], None]]

MIN_DELAY_MS = 10
# share of reported progress spent rendering; the rest is the encoder
_RENDER_SHARE = 0.9


class Encoder(Protocol):
    extension: str
    mime_type: str

    def encode(self, frames: List[np.ndarray], delay_ms: int) -> bytes:
        ...


class GifEncoder:
    extension = ".gif"
    mime_type = "image/gif"

    def __init__(self, loop: int = 0):
        self.loop = loop

    def encode(self, frames: List[np.ndarray], delay_ms: int) -> bytes:
        return iio.imwrite(
            "<bytes>",
            np.stack(frames),
            extension=self.extension,
            is_batch=True,
            duration=delay_ms,
            loop=self.loop,
        )


class VideoEncoder:
    """MP4 through imageio's ffmpeg plugin (needs the `imageio-ffmpeg` package)."""

    extension = ".mp4"
    mime_type = "video/mp4"

    def __init__(self, fps: int = 30):
        self.fps = fps

    def encode(self, frames: List[np.ndarray], delay_ms: int) -> bytes:
        return iio.imwrite(
            "<bytes>",
            np.stack(frames),
            extension=self.extension,
            plugin="FFMPEG",
            fps=self.fps,
        )


@dataclass(frozen=True)
class ExportResult:
    data: bytes
    filename: str
    mime_type: str
    frame_count: int
    delay_ms: int

    def save(self, directory: str) -> str:
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, self.filename)
        with open(path, "wb") as f:
            f.write(self.data)
        return path


def frame_delay_ms(duration_ms: float, frame_count: int) -> int:
    """Per-frame delay, floored to whole milliseconds and never below 10ms."""
    return max(MIN_DELAY_MS, int(math.floor(duration_ms / max(1, frame_count))))


def remap_indices(frame_count: int, output_count: int) -> List[int]:
    """
    Spread `output_count` output frames over a sequence of `frame_count` frames.
    The first and last output frames always map to the first and last frames.
    """
    last = frame_count - 1
    indices = []
    for i in range(output_count):
        if i == 0:
            indices.append(0)
        elif i == output_count - 1:
            indices.append(last)
        else:
            t = i / (output_count - 1)
            indices.append(min(last, int(math.floor(t * last + 0.5))))
    return indices


def render_sequence(
    sequence: FrameSequence,
    indices: Optional[Sequence[int]] = None,
    progress: ProgressCallback = None,
    cancel_event: Optional[threading.Event] = None,
    show_progress: bool = False,
) -> List[np.ndarray]:
    """
    Render frames to independent RGB buffers, in order, without blit thinning.

    Uses its own surface, so the frames and any live surface are left alone.
    """
    if indices is None:
        indices = range(len(sequence))
    indices = list(indices)
    width, height = sequence.width, sequence.height
    surface = acquire_surface(width, height)

    rendered = []
    it = tqdm(indices, desc="rendering") if show_progress else indices
    for k, i in enumerate(it):
        if cancel_event is not None and cancel_event.is_set():
            raise ExportCancelled(f"cancelled after {k} of {len(indices)} frames")
        render_frame(surface, sequence[i], width, height, thinning=False)
        rendered.append(surface[:height, :width, :3].copy())
        if progress is not None:
            progress(_RENDER_SHARE * (k + 1) / len(indices))
    return rendered


def _encode(encoder: Encoder, frames: List[np.ndarray], delay_ms: int) -> bytes:
    try:
        data = encoder.encode(frames, delay_ms)
    except EncoderError:
        raise
    except Exception as e:
        raise EncoderError(f"{type(encoder).__name__} failed: {e}") from e
    if not data:
        raise EncoderError(f"{type(encoder).__name__} produced no output")
    return bytes(data)


def export_gif(
    sequence: FrameSequence,
    duration_ms: Optional[float] = None,
    encoder: Optional[Encoder] = None,
    progress: ProgressCallback = None,
    cancel_event: Optional[threading.Event] = None,
    show_progress: bool = False,
) -> ExportResult:
    """
    Render every frame and hand them, in order, to an animated-image encoder.

    A failing or cancelled export raises without touching `sequence`, so the
    caller can retry or keep playing.
    """
    if len(sequence) == 0:
        raise ValueError("No frames to export.")
    if duration_ms is None:
        duration_ms = default_export_duration_ms(len(sequence))
    encoder = encoder if encoder is not None else GifEncoder()

    delay = frame_delay_ms(duration_ms, len(sequence))
    frames = render_sequence(sequence, progress=progress, cancel_event=cancel_event, show_progress=show_progress)
    if cancel_event is not None and cancel_event.is_set():
        raise ExportCancelled("cancelled before encoding")

    logger.info("encoding %d frames at %dms per frame", len(frames), delay)
    data = _encode(encoder, frames, delay)
    if progress is not None:
        progress(1.0)
    return ExportResult(
        data=data,
        filename="cellmorph" + encoder.extension,
        mime_type=encoder.mime_type,
        frame_count=len(frames),
        delay_ms=delay,
    )


def export_video(
    sequence: FrameSequence,
    duration_ms: Optional[float] = None,
    fps: int = 30,
    encoder: Optional[Encoder] = None,
    progress: ProgressCallback = None,
    cancel_event: Optional[threading.Event] = None,
    show_progress: bool = False,
) -> ExportResult:
    """
    Resample the sequence onto a fixed-fps timeline and encode it as video.
    """
    if len(sequence) == 0:
        raise ValueError("No frames to export.")
    if fps <= 0:
        raise ValueError("fps must be positive")
    if duration_ms is None:
        duration_ms = default_export_duration_ms(len(sequence))
    encoder = encoder if encoder is not None else VideoEncoder(fps=fps)

    output_count = max(2, int(math.floor(duration_ms / 1000 * fps)))
    indices = remap_indices(len(sequence), output_count)
    frames = render_sequence(sequence, indices, progress=progress, cancel_event=cancel_event, show_progress=show_progress)
    if cancel_event is not None and cancel_event.is_set():
        raise ExportCancelled("cancelled before encoding")

    delay = frame_delay_ms(duration_ms, output_count)
    logger.info("encoding %d video frames at %d fps", len(frames), fps)
    data = _encode(encoder, frames, delay)
    if progress is not None:
        progress(1.0)
    return ExportResult(
        data=data,
        filename="cellmorph" + encoder.extension,
        mime_type=encoder.mime_type,
        frame_count=len(frames),
        delay_ms=delay,
    )
