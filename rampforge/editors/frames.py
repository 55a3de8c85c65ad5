"""Samples retimed stills from each clip into one numbered sequence."""

from pathlib import Path
from typing import Callable

from rampforge import ffutil
from rampforge.models import VideoMetadata

FRAME_TEMPLATE = "frame_{:06d}.png"
FRAME_PATTERN = "frame_%06d.png"
PROGRESS_EVERY = 10


def frame_path(frames_dir: Path, index: int) -> Path:
    return frames_dir / FRAME_TEMPLATE.format(index)


def target_dimensions(
    metadatas: list[VideoMetadata],
    width: int | None = None,
    height: int | None = None,
) -> tuple[int, int]:
    """Common output size: the largest clip width/height unless overridden.

    Rounded down to even numbers, which yuv420p encoding requires.
    """
    if not metadatas and (width is None or height is None):
        raise ValueError("Cannot derive output size without clip metadata")
    w = width if width is not None else max(m.width for m in metadatas)
    h = height if height is not None else max(m.height for m in metadatas)
    w, h = w - w % 2, h - h % 2
    if w <= 0 or h <= 0:
        raise ValueError(f"Invalid output size {w}x{h}")
    return w, h


def choose_scale_mode(metadatas: list[VideoMetadata], requested: str = "auto") -> str:
    """Resolve "auto": stretch when every clip shares one size, pad otherwise."""
    if requested != "auto":
        return requested
    sizes = {(m.width, m.height) for m in metadatas}
    return "stretch" if len(sizes) <= 1 else "pad"


def extract_clip_frames(
    clip_path: Path,
    timestamps: list[float],
    frames_dir: Path,
    start_index: int,
    video_filter: str | None = None,
    on_frame: Callable[[int, int], None] | None = None,
) -> int:
    """Extract one still per timestamp, numbered from ``start_index``.

    Returns the next free global frame index. ``on_frame(done, total)`` fires
    every PROGRESS_EVERY frames and once more on completion.
    """
    total = len(timestamps)
    index = start_index
    for done, ts in enumerate(timestamps, 1):
        ffutil.extract_frame(clip_path, ts, frame_path(frames_dir, index), video_filter)
        index += 1
        if on_frame and (done % PROGRESS_EVERY == 0 or done == total):
            on_frame(done, total)
    return index


def discard_frames(frames_dir: Path, start_index: int, end_index: int) -> None:
    """Delete frames in [start_index, end_index) so the sequence has no gap."""
    for index in range(start_index, end_index):
        frame_path(frames_dir, index).unlink(missing_ok=True)
