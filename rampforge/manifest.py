"""Stitch manifest: the contract between CLI/API and engine."""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

from rampforge.easing import EasingSpec

SCALE_MODES = ("auto", "stretch", "pad")

# ffmpeg color syntax: a name, #RRGGBB[AA] or 0xRRGGBB[AA], optionally @alpha.
# Anything else would be spliced into the -vf filtergraph.
_PAD_COLOR_RE = re.compile(
    r"(?:[A-Za-z]+|(?:#|0x)[0-9A-Fa-f]{6}(?:[0-9A-Fa-f]{2})?)(?:@(?:0|1|0?\.[0-9]+|1\.0+))?"
)


@dataclass
class StitchJob:
    """Top-level stitch manifest: ordered clips retimed onto one output."""

    clips: list[Path]
    output: Path
    version: str = "1"
    clip_duration: float = 1.5
    easing: EasingSpec = field(default_factory=EasingSpec)
    output_fps: float = 60.0
    keep_frames: bool = False
    scale_mode: str = "auto"
    pad_color: str = "black"
    width: int | None = None
    height: int | None = None
    crf: int = 18
    max_bitrate: str = "20M"
    best_effort: bool = False
    work_dir: Path | None = None

    def __post_init__(self) -> None:
        self.clips = [Path(c) for c in self.clips]
        self.output = Path(self.output)
        if self.work_dir is not None:
            self.work_dir = Path(self.work_dir)
        if not self.clips:
            raise ValueError("StitchJob needs at least one clip")
        if self.clip_duration <= 0:
            raise ValueError(f"clip_duration must be positive, got {self.clip_duration}")
        if self.output_fps <= 0:
            raise ValueError(f"output_fps must be positive, got {self.output_fps}")
        if self.scale_mode not in SCALE_MODES:
            raise ValueError(
                f"scale_mode must be one of {', '.join(SCALE_MODES)}, got {self.scale_mode!r}"
            )
        if not isinstance(self.pad_color, str) or not _PAD_COLOR_RE.fullmatch(self.pad_color):
            raise ValueError(
                f"pad_color must be an ffmpeg color name or hex value, got {self.pad_color!r}"
            )


def load_manifest(path: str | Path) -> StitchJob:
    """Load and validate a stitch manifest from a JSON file.

    Relative clip/output paths resolve against the current directory, not the
    manifest's location.
    """
    path = Path(path)
    data = json.loads(path.read_text())

    if "clips" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'clips' and 'output' fields")

    options = {
        key: data[key]
        for key in (
            "version",
            "clip_duration",
            "output_fps",
            "keep_frames",
            "scale_mode",
            "pad_color",
            "width",
            "height",
            "crf",
            "max_bitrate",
            "best_effort",
            "work_dir",
        )
        if key in data
    }
    if "bezier" in data:
        options["easing"] = EasingSpec.from_value(data["bezier"])
    elif "easing" in data:
        options["easing"] = EasingSpec.from_value(data["easing"])

    return StitchJob(
        clips=[Path(c) for c in data["clips"]],
        output=Path(data["output"]),
        **options,
    )
