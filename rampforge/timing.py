"""Speed-curve timestamp mapping.

Output frame index -> normalized progress -> easing curve -> source timestamp.
Where the curve is flat (the ends of a swoop) consecutive output frames land on
nearly the same source instant and motion appears to freeze; where it is steep
(the middle) the source is swept through quickly.
"""

import logging
import math

from rampforge.easing import EasingFunction
from rampforge.models import SpeedStats, TimestampSequence

logger = logging.getLogger(__name__)

# Keep seeks strictly before the start of the last frame
END_EPSILON = 0.001


def map_timestamps(
    easing: EasingFunction,
    input_duration: float,
    output_duration: float,
    output_fps: float,
    source_fps: float | None = None,
) -> TimestampSequence:
    """Compute the source timestamp to sample for every output frame.

    ``total_frames`` is ``floor(output_duration * output_fps)``. A single-frame
    output samples progress 0 instead of dividing by zero.

    An input seek only decodes frames that start at or after the seek point, so
    with ``source_fps`` the upper bound is the start of the last source frame
    (less ``END_EPSILON``). Without it, only ``END_EPSILON`` is kept clear of
    the end of the stream.
    """
    if output_duration <= 0:
        raise ValueError(f"output_duration must be positive, got {output_duration}")
    if output_fps <= 0:
        raise ValueError(f"output_fps must be positive, got {output_fps}")

    total_frames = math.floor(output_duration * output_fps)
    frame_interval = 1.0 / source_fps if source_fps and source_fps > 0 else 0.0
    upper = max(input_duration - frame_interval - END_EPSILON, 0.0)

    timestamps: list[float] = []
    for i in range(total_frames):
        progress = i / (total_frames - 1) if total_frames > 1 else 0.0
        source_time = easing(progress) * input_duration
        timestamps.append(min(max(source_time, 0.0), upper))

    return TimestampSequence(
        timestamps=timestamps,
        total_frames=total_frames,
        compression_ratio=input_duration / output_duration,
    )


def analyze_speed(timestamps: list[float], output_fps: float) -> list[float]:
    """Instantaneous playback speed between consecutive output frames.

    1.0 is real-time, below 1.0 slow motion, above 1.0 fast-forward.
    """
    frame_duration = 1.0 / output_fps
    return [
        (timestamps[i + 1] - timestamps[i]) / frame_duration
        for i in range(len(timestamps) - 1)
    ]


def speed_stats(speeds: list[float]) -> SpeedStats:
    if not speeds:
        return SpeedStats()
    return SpeedStats(
        min=min(speeds),
        max=max(speeds),
        average=sum(speeds) / len(speeds),
        start=speeds[0],
        middle=speeds[len(speeds) // 2],
        end=speeds[-1],
    )


def describe_curve(
    easing: EasingFunction,
    input_duration: float,
    output_duration: float,
    output_fps: float,
    source_fps: float | None = None,
) -> tuple[TimestampSequence, SpeedStats]:
    """Map timestamps and summarize the resulting speed profile."""
    sequence = map_timestamps(easing, input_duration, output_duration, output_fps, source_fps)
    stats = speed_stats(analyze_speed(sequence.timestamps, output_fps))
    logger.debug(
        "%d frames, compression %.2fx, speed start=%.2f mid=%.2f end=%.2f",
        sequence.total_frames,
        sequence.compression_ratio,
        stats.start,
        stats.middle,
        stats.end,
    )
    return sequence, stats
