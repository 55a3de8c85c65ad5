"""Runs the retime-and-stitch pipeline defined by a StitchJob."""

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from rampforge import ffutil
from rampforge.easing import DEFAULT_REGISTRY, EasingRegistry
from rampforge.editors.frames import (
    FRAME_PATTERN,
    choose_scale_mode,
    discard_frames,
    extract_clip_frames,
    target_dimensions,
)
from rampforge.manifest import StitchJob
from rampforge.models import Clip, ClipReport, SpeedStats
from rampforge.timing import describe_curve

logger = logging.getLogger(__name__)


@dataclass
class StitchResult:
    output_path: Path
    total_frames: int = 0
    duration: float = 0.0
    width: int = 0
    height: int = 0
    clips: list[ClipReport] = field(default_factory=list)
    dropped_clips: list[tuple[Path, str]] = field(default_factory=list)
    frames_dir: Path | None = None


def stitch(
    job: StitchJob,
    on_progress: Callable[[str, float], None] | None = None,
    registry: EasingRegistry = DEFAULT_REGISTRY,
) -> StitchResult:
    """Execute the full probe -> map -> extract -> encode -> cleanup pipeline.

    Args:
        job: Validated stitch manifest.
        on_progress: Optional callback(stage_name, fraction_complete).
        registry: Curve lookup used to resolve ``job.easing``.

    Raises:
        StitchError subclass naming the failed step and clip. A failed job
        leaves nothing at ``job.output``, including any earlier output there.
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    ffutil.check_ffmpeg()

    try:
        result = _run_pipeline(job, _progress, registry)
    except ffutil.StitchError:
        job.output.unlink(missing_ok=True)
        raise

    _progress("Done", 1.0)
    return result


def _run_pipeline(
    job: StitchJob,
    progress: Callable[[str, float], None],
    registry: EasingRegistry,
) -> StitchResult:
    easing = job.easing.resolve(registry)
    logger.info(
        "Stitching %d clips -> %s (%.2fs/clip, %s, %g fps)",
        len(job.clips), job.output, job.clip_duration, job.easing.label, job.output_fps,
    )

    # --- Probe every clip before extracting anything ---
    clips: list[Clip] = []
    dropped: list[tuple[Path, str]] = []
    for i, path in enumerate(job.clips):
        progress(f"Probing clip {i + 1}/{len(job.clips)}", 0.05 * i / len(job.clips))
        try:
            clips.append(Clip(path=path, metadata=ffutil.probe(path)))
        except ffutil.ProbeError as e:
            if not job.best_effort:
                raise
            logger.warning("Dropping %s: %s", path, e)
            dropped.append((path, str(e)))

    if not clips:
        raise ffutil.ProbeError("No readable clips to stitch")

    metadatas = [c.metadata for c in clips]
    width, height = target_dimensions(metadatas, job.width, job.height)
    mode = choose_scale_mode(metadatas, job.scale_mode)
    video_filter = ffutil.build_scale_filter(width, height, mode, job.pad_color)
    logger.info("Output size %dx%d (%s)", width, height, mode)

    # --- Map output frames to source timestamps ---
    speeds: dict[Path, SpeedStats] = {}
    for clip in clips:
        clip.sequence, speeds[clip.path] = describe_curve(
            easing,
            clip.metadata.duration,
            job.clip_duration,
            job.output_fps,
            source_fps=clip.metadata.fps,
        )

    frames_dir = Path(tempfile.mkdtemp(prefix="rampforge_frames_", dir=job.work_dir))
    try:
        # --- Extract, one clip at a time, into one continuous numbered sequence ---
        reports: list[ClipReport] = []
        next_index = 0
        for i, clip in enumerate(clips):
            stage = f"Extracting frames (clip {i + 1}/{len(clips)})"
            base = 0.05 + 0.80 * i / len(clips)
            span = 0.80 / len(clips)
            progress(stage, base)

            def on_frame(done: int, total: int, stage=stage, base=base, span=span) -> None:
                progress(stage, base + span * done / total)

            start_index = next_index
            try:
                next_index = extract_clip_frames(
                    clip.path,
                    clip.sequence.timestamps,
                    frames_dir,
                    start_index,
                    video_filter,
                    on_frame=on_frame,
                )
            except ffutil.ExtractionError as e:
                if not job.best_effort:
                    raise
                logger.warning("Dropping %s: %s", clip.path, e)
                discard_frames(frames_dir, start_index, start_index + clip.sequence.total_frames)
                dropped.append((clip.path, str(e)))
                continue

            reports.append(
                ClipReport(
                    path=clip.path,
                    metadata=clip.metadata,
                    frames=next_index - start_index,
                    compression_ratio=clip.sequence.compression_ratio,
                    speed=speeds[clip.path],
                )
            )

        if next_index == 0:
            raise ffutil.ExtractionError("No frames extracted from any clip")

        # --- Encode ---
        progress(f"Encoding {next_index} frames", 0.85)
        job.output.parent.mkdir(parents=True, exist_ok=True)
        ffutil.encode_sequence(
            frames_dir / FRAME_PATTERN,
            job.output,
            job.output_fps,
            start_number=0,
            crf=job.crf,
            max_bitrate=job.max_bitrate,
        )
    finally:
        progress("Cleaning up", 0.97)
        if job.keep_frames:
            logger.info("Keeping scratch frames in %s", frames_dir)
        else:
            shutil.rmtree(frames_dir, ignore_errors=True)

    return StitchResult(
        output_path=job.output,
        total_frames=next_index,
        duration=next_index / job.output_fps,
        width=width,
        height=height,
        clips=reports,
        dropped_clips=dropped,
        frames_dir=frames_dir if job.keep_frames else None,
    )
