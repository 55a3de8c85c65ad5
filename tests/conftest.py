"""Shared test fixtures."""

import subprocess
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def make_clip(tmp_path):
    """Factory writing a short lavfi test-pattern clip into tmp_path."""

    def _make(name: str, size: str = "320x240", rate: int = 30, duration: float = 3.0) -> Path:
        path = tmp_path / name
        cmd = [
            "ffmpeg", "-y",
            "-v", "error",
            "-f", "lavfi",
            "-i", f"testsrc2=size={size}:rate={rate}:duration={duration}",
            "-c:v", "libx264",
            "-pix_fmt", "yuv420p",
            str(path),
        ]
        subprocess.run(cmd, check=True, capture_output=True)
        return path

    return _make
