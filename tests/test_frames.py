"""Unit tests for the frame extraction editor."""

from pathlib import Path
from unittest.mock import patch

import pytest

from rampforge.editors.frames import (
    choose_scale_mode,
    discard_frames,
    extract_clip_frames,
    frame_path,
    target_dimensions,
)
from rampforge.models import VideoMetadata


def _meta(width: int, height: int, duration: float = 3.0) -> VideoMetadata:
    return VideoMetadata(duration=duration, width=width, height=height, fps=30.0)


class TestTargetDimensions:
    def test_max_across_clips(self):
        assert target_dimensions([_meta(1280, 720), _meta(1920, 1080)]) == (1920, 1080)

    def test_mixed_orientation_takes_each_max(self):
        assert target_dimensions([_meta(1080, 1920), _meta(1920, 1080)]) == (1920, 1920)

    def test_rounds_down_to_even(self):
        assert target_dimensions([_meta(721, 405)]) == (720, 404)

    def test_overrides(self):
        assert target_dimensions([_meta(1280, 720)], width=640) == (640, 720)
        assert target_dimensions([], width=640, height=360) == (640, 360)

    def test_no_metadata(self):
        with pytest.raises(ValueError):
            target_dimensions([])


class TestChooseScaleMode:
    def test_uniform_sizes_stretch(self):
        assert choose_scale_mode([_meta(1280, 720), _meta(1280, 720)]) == "stretch"

    def test_mixed_sizes_pad(self):
        assert choose_scale_mode([_meta(1280, 720), _meta(720, 1280)]) == "pad"

    def test_explicit_mode_wins(self):
        assert choose_scale_mode([_meta(1280, 720), _meta(720, 1280)], "stretch") == "stretch"


class TestExtractClipFrames:
    @patch("rampforge.editors.frames.ffutil.extract_frame")
    def test_global_numbering(self, mock_extract, tmp_path):
        next_index = extract_clip_frames(
            Path("b.mp4"), [0.0, 0.5, 1.0], tmp_path, start_index=7, video_filter="scale=2:2"
        )
        assert next_index == 10
        calls = mock_extract.call_args_list
        assert [c.args[1] for c in calls] == [0.0, 0.5, 1.0]
        assert [c.args[2].name for c in calls] == [
            "frame_000007.png", "frame_000008.png", "frame_000009.png",
        ]
        assert all(c.args[3] == "scale=2:2" for c in calls)

    @patch("rampforge.editors.frames.ffutil.extract_frame")
    def test_progress_cadence(self, mock_extract, tmp_path):
        seen: list[tuple[int, int]] = []
        extract_clip_frames(
            Path("a.mp4"), [i / 10 for i in range(25)], tmp_path, 0,
            on_frame=lambda done, total: seen.append((done, total)),
        )
        assert seen == [(10, 25), (20, 25), (25, 25)]

    @patch("rampforge.editors.frames.ffutil.extract_frame")
    def test_empty_timestamps(self, mock_extract, tmp_path):
        assert extract_clip_frames(Path("a.mp4"), [], tmp_path, 4) == 4
        mock_extract.assert_not_called()


class TestDiscardFrames:
    def test_removes_range_only(self, tmp_path):
        for i in range(6):
            frame_path(tmp_path, i).write_bytes(b"x")
        discard_frames(tmp_path, 2, 5)
        remaining = sorted(p.name for p in tmp_path.iterdir())
        assert remaining == ["frame_000000.png", "frame_000001.png", "frame_000005.png"]

    def test_missing_files_ignored(self, tmp_path):
        discard_frames(tmp_path, 0, 3)
