"""Shared data types used across RampForge."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class VideoMetadata:
    """Metadata extracted from a video file via ffprobe."""

    duration: float
    width: int
    height: int
    fps: float


@dataclass
class TimestampSequence:
    """Source timestamps to sample, one per output frame."""

    timestamps: list[float]
    total_frames: int
    compression_ratio: float


@dataclass
class SpeedStats:
    """Summary of apparent playback speed (1.0 = real-time)."""

    min: float = 0.0
    max: float = 0.0
    average: float = 0.0
    start: float = 0.0
    middle: float = 0.0
    end: float = 0.0


@dataclass
class Clip:
    """An input clip with its probed metadata and computed sampling plan."""

    path: Path
    metadata: VideoMetadata
    sequence: TimestampSequence | None = None


@dataclass
class ClipReport:
    """Per-clip outcome of a stitch run."""

    path: Path
    metadata: VideoMetadata
    frames: int
    compression_ratio: float
    speed: SpeedStats = field(default_factory=SpeedStats)
