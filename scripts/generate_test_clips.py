#!/usr/bin/env python3
"""Generate synthetic clips for RampForge stitch testing.

Produces three 3-second clips with a moving test pattern and a running
timestamp so speed ramps are easy to see:
  clip-1.mp4  1280x720   30 fps  test pattern
  clip-2.mp4  1280x720   24 fps  mandelbrot zoom
  clip-3.mp4   720x1280  30 fps  test pattern (portrait, exercises pad mode)
"""

import subprocess
import sys
from pathlib import Path

CLIPS = [
    ("clip-1.mp4", "testsrc2=size=1280x720:rate=30:duration=3"),
    ("clip-2.mp4", "mandelbrot=size=1280x720:rate=24,trim=duration=3"),
    ("clip-3.mp4", "testsrc2=size=720x1280:rate=30:duration=3"),
]

TIMESTAMP_OVERLAY = (
    "drawtext=text='%{pts\\:hms}':x=20:y=20:fontsize=48:fontcolor=white:box=1:boxcolor=black"
)


def generate_test_clips(output_dir: Path) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    paths: list[Path] = []
    for name, source in CLIPS:
        out = output_dir / name
        cmd = [
            "ffmpeg", "-y",
            "-f", "lavfi",
            "-i", source,
            "-vf", TIMESTAMP_OVERLAY,
            "-c:v", "libx264",
            "-pix_fmt", "yuv420p",
            str(out),
        ]
        subprocess.run(cmd, check=True)
        print(f"Generated: {out}")
        paths.append(out)
    return paths


if __name__ == "__main__":
    out_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures/clips")
    generate_test_clips(out_dir)
