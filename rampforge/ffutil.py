"""FFmpeg/ffprobe subprocess helpers."""

import json
import shutil
import subprocess
from pathlib import Path

from rampforge.models import VideoMetadata

PROBE_TIMEOUT = 60.0
EXTRACT_TIMEOUT = 60.0
ENCODE_TIMEOUT = 1800.0


class FFmpegNotFoundError(RuntimeError):
    pass


class StitchError(RuntimeError):
    """A stitch step failed. ``step`` is probe/extract/encode; ``clip`` may be None."""

    step = "stitch"

    def __init__(self, message: str, clip: Path | None = None, detail: str = ""):
        super().__init__(message)
        self.message = message
        self.clip = clip
        self.detail = detail

    def __str__(self) -> str:
        where = f" [{self.clip}]" if self.clip is not None else ""
        text = f"{self.step} failed{where}: {self.message}"
        if self.detail:
            text += f"\n{self.detail}"
        return text

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "clip": str(self.clip) if self.clip is not None else None,
            "message": self.message,
            "detail": self.detail,
        }


class ProbeError(StitchError):
    """Source file unreadable or has no decodable video stream."""

    step = "probe"


class ExtractionError(StitchError):
    """Seek/decode of a single frame failed."""

    step = "extract"


class EncodeError(StitchError):
    """Final sequence encode returned a nonzero status."""

    step = "encode"


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def _run(cmd: list[str], timeout: float) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        raise FFmpegNotFoundError(f"{cmd[0]} not found on PATH") from None


def _stderr_tail(stderr: str | None, limit: int = 500) -> str:
    return (stderr or "").strip()[-limit:]


def parse_frame_rate(rate: str) -> float:
    """Parse an ffprobe rational like "30000/1001".

    A zero denominator yields the raw numerator.
    """
    if "/" not in rate:
        return float(rate)
    num, den = rate.split("/", 1)
    if float(den) == 0:
        return float(num)
    return float(num) / float(den)


def probe(input_path: Path, timeout: float = PROBE_TIMEOUT) -> VideoMetadata:
    """Extract video metadata via ffprobe."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    try:
        result = _run(cmd, timeout)
    except subprocess.TimeoutExpired:
        raise ProbeError(f"ffprobe timed out after {timeout:g}s", clip=input_path) from None

    if result.returncode != 0:
        raise ProbeError(
            f"ffprobe exited with rc={result.returncode}",
            clip=input_path,
            detail=_stderr_tail(result.stderr),
        )

    try:
        data = json.loads(result.stdout)
    except (json.JSONDecodeError, TypeError):
        raise ProbeError("ffprobe returned unreadable output", clip=input_path) from None

    video_stream = next(
        (s for s in data.get("streams", []) if s.get("codec_type") == "video"), None
    )
    if video_stream is None:
        raise ProbeError(f"No video stream found in {input_path}", clip=input_path)

    # Stream duration is missing for some containers (e.g. webm)
    raw_duration = video_stream.get("duration") or data.get("format", {}).get("duration")
    if raw_duration is None:
        raise ProbeError(f"No duration reported for {input_path}", clip=input_path)

    rate = video_stream.get("r_frame_rate") or video_stream.get("avg_frame_rate") or "0/1"

    try:
        return VideoMetadata(
            duration=float(raw_duration),
            width=int(video_stream["width"]),
            height=int(video_stream["height"]),
            fps=parse_frame_rate(rate),
        )
    except (KeyError, ValueError) as e:
        raise ProbeError(f"Malformed stream metadata: {e}", clip=input_path) from None


def build_scale_filter(
    width: int, height: int, mode: str = "stretch", pad_color: str = "black"
) -> str:
    """Scale filter for frame extraction.

    ``stretch`` scales to exactly width x height. ``pad`` keeps the aspect
    ratio and letterboxes to center with ``pad_color``.
    """
    if mode == "stretch":
        return f"scale={width}:{height},setsar=1"
    if mode == "pad":
        return (
            f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:color={pad_color},"
            "setsar=1"
        )
    raise ValueError(f"Unknown scale mode: {mode!r}")


def extract_frame(
    input_path: Path,
    timestamp: float,
    output_path: Path,
    video_filter: str | None = None,
    timeout: float = EXTRACT_TIMEOUT,
) -> Path:
    """Seek to ``timestamp``, decode exactly one frame and write it as an image."""
    cmd = [
        "ffmpeg", "-y",
        "-v", "error",
        "-ss", f"{timestamp:.6f}",
        "-i", str(input_path),
        "-frames:v", "1",
    ]
    if video_filter:
        cmd += ["-vf", video_filter]
    cmd.append(str(output_path))

    try:
        result = _run(cmd, timeout)
    except subprocess.TimeoutExpired:
        raise ExtractionError(
            f"frame at {timestamp:.3f}s timed out after {timeout:g}s", clip=input_path
        ) from None

    if result.returncode != 0:
        raise ExtractionError(
            f"frame at {timestamp:.3f}s: ffmpeg exited with rc={result.returncode}",
            clip=input_path,
            detail=_stderr_tail(result.stderr),
        )
    # ffmpeg exits 0 without writing anything when the seek lands past the last frame
    if not output_path.exists():
        raise ExtractionError(
            f"frame at {timestamp:.3f}s: no frame decoded", clip=input_path
        )
    return output_path


def encode_sequence(
    pattern: Path,
    output_path: Path,
    fps: float,
    start_number: int = 0,
    crf: int = 18,
    max_bitrate: str = "20M",
    preset: str = "medium",
    timeout: float = ENCODE_TIMEOUT,
) -> Path:
    """Encode a numbered image sequence into an H.264 MP4.

    Constant-quality (CRF) with a bitrate ceiling, yuv420p for player
    compatibility and ``+faststart`` so playback can begin before download
    completes.
    """
    bufsize = _double_bitrate(max_bitrate)
    cmd = [
        "ffmpeg", "-y",
        "-v", "error",
        "-framerate", f"{fps:g}",
        "-start_number", str(start_number),
        "-i", str(pattern),
        "-c:v", "libx264",
        "-preset", preset,
        "-crf", str(crf),
        "-maxrate", max_bitrate,
        "-bufsize", bufsize,
        "-pix_fmt", "yuv420p",
        "-r", f"{fps:g}",
        "-movflags", "+faststart",
        str(output_path),
    ]
    try:
        result = _run(cmd, timeout)
    except subprocess.TimeoutExpired:
        raise EncodeError(f"ffmpeg encode timed out after {timeout:g}s") from None

    if result.returncode != 0:
        raise EncodeError(
            f"ffmpeg exited with rc={result.returncode}",
            detail=_stderr_tail(result.stderr),
        )
    return output_path


def _double_bitrate(rate: str) -> str:
    """"20M" -> "40M"; used for the rate-control buffer size."""
    digits = rate.rstrip("kKmMgG")
    suffix = rate[len(digits):]
    try:
        value = float(digits)
    except ValueError:
        raise ValueError(f"Invalid bitrate: {rate!r}") from None
    return f"{value * 2:g}{suffix}"
