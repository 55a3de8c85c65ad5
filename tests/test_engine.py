"""Tests for the stitch orchestrator.

Most tests mock ffmpeg/ffprobe; TestRealFFmpeg runs the pipeline end to end.
"""

import json
import math
import shutil
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from rampforge import ffutil
from rampforge.easing import EasingSpec
from rampforge.engine import StitchResult, stitch
from rampforge.ffutil import EncodeError, ExtractionError, ProbeError
from rampforge.manifest import StitchJob
from rampforge.models import VideoMetadata

requires_ffmpeg = pytest.mark.skipif(
    shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
    reason="ffmpeg/ffprobe not installed",
)


def _meta(width: int = 1280, height: int = 720, duration: float = 3.0) -> VideoMetadata:
    return VideoMetadata(duration=duration, width=width, height=height, fps=24.0)


def _touch_frame(clip, timestamp, output_path, video_filter=None, **kwargs):
    output_path.write_bytes(b"png")
    return output_path


def _job(tmp_path: Path, clips=("a.mp4", "b.mp4"), **kwargs) -> StitchJob:
    options = dict(clip_duration=0.5, output_fps=10, work_dir=tmp_path)
    options.update(kwargs)
    return StitchJob(clips=[Path(c) for c in clips], output=tmp_path / "out" / "final.mp4", **options)


def _scratch_dirs(tmp_path: Path) -> list[Path]:
    return list(tmp_path.glob("rampforge_frames_*"))


@pytest.fixture
def ff():
    """Patch every ffmpeg touchpoint; yields the mocks by name."""
    with patch("rampforge.ffutil.check_ffmpeg") as check, \
            patch("rampforge.ffutil.probe") as probe, \
            patch("rampforge.ffutil.extract_frame", side_effect=_touch_frame) as extract, \
            patch("rampforge.ffutil.encode_sequence") as encode:
        probe.return_value = _meta()
        yield {"check": check, "probe": probe, "extract": extract, "encode": encode}


class TestStitchResult:
    def test_defaults(self):
        r = StitchResult(output_path=Path("out.mp4"))
        assert r.total_frames == 0
        assert r.clips == []
        assert r.dropped_clips == []
        assert r.frames_dir is None


class TestStitchHappyPath:
    def test_frames_numbered_across_clips(self, ff, tmp_path):
        result = stitch(_job(tmp_path))

        names = [c.args[2].name for c in ff["extract"].call_args_list]
        assert names == [f"frame_{i:06d}.png" for i in range(10)]
        clips = [c.args[0] for c in ff["extract"].call_args_list]
        assert clips == [Path("a.mp4")] * 5 + [Path("b.mp4")] * 5

        assert result.total_frames == 10
        assert result.duration == pytest.approx(1.0)
        assert (result.width, result.height) == (1280, 720)
        assert [r.frames for r in result.clips] == [5, 5]
        assert result.clips[0].compression_ratio == pytest.approx(6.0)

    def test_timestamps_follow_curve(self, ff, tmp_path):
        stitch(_job(tmp_path, clips=("a.mp4",), easing=EasingSpec(name="linear")))
        timestamps = [c.args[1] for c in ff["extract"].call_args_list]
        assert timestamps[:4] == pytest.approx([0.0, 0.75, 1.5, 2.25])
        # last source frame at 24 fps starts at 3.0 - 1/24
        assert timestamps[-1] == pytest.approx(3.0 - 1 / 24 - 0.001)

    def test_encode_called_once_with_job_settings(self, ff, tmp_path):
        stitch(_job(tmp_path, crf=22, max_bitrate="10M"))
        ff["encode"].assert_called_once()
        args, kwargs = ff["encode"].call_args
        assert args[0].name == "frame_%06d.png"
        assert args[1] == tmp_path / "out" / "final.mp4"
        assert args[2] == 10
        assert kwargs["start_number"] == 0
        assert kwargs["crf"] == 22
        assert kwargs["max_bitrate"] == "10M"

    def test_probes_all_clips_before_extracting(self, ff, tmp_path):
        order: list[str] = []
        ff["probe"].side_effect = lambda p: order.append("probe") or _meta()
        ff["extract"].side_effect = lambda *a, **k: order.append("extract")
        stitch(_job(tmp_path))
        assert order[:2] == ["probe", "probe"]
        assert "probe" not in order[2:]

    def test_scratch_cleaned_up(self, ff, tmp_path):
        stitch(_job(tmp_path))
        assert _scratch_dirs(tmp_path) == []

    def test_keep_frames(self, ff, tmp_path):
        result = stitch(_job(tmp_path, keep_frames=True))
        assert result.frames_dir is not None
        assert len(list(result.frames_dir.glob("frame_*.png"))) == 10

    def test_progress_reported(self, ff, tmp_path):
        seen: list[tuple[str, float]] = []
        stitch(_job(tmp_path), on_progress=lambda s, f: seen.append((s, f)))
        fractions = [f for _, f in seen]
        assert fractions == sorted(fractions)
        assert seen[-1] == ("Done", 1.0)
        assert any(s.startswith("Extracting frames") for s, _ in seen)

    def test_checks_ffmpeg_first(self, ff, tmp_path):
        stitch(_job(tmp_path))
        ff["check"].assert_called_once()


class TestScaleMode:
    def test_uniform_clips_stretch(self, ff, tmp_path):
        stitch(_job(tmp_path))
        vf = ff["extract"].call_args_list[0].args[3]
        assert vf == "scale=1280:720,setsar=1"

    def test_mixed_clips_pad_to_max(self, ff, tmp_path):
        ff["probe"].side_effect = [_meta(1280, 720), _meta(720, 1280)]
        result = stitch(_job(tmp_path))
        vf = ff["extract"].call_args_list[0].args[3]
        assert "pad=1280:1280" in vf
        assert (result.width, result.height) == (1280, 1280)


class TestStitchFailures:
    def test_probe_failure_aborts(self, ff, tmp_path):
        ff["probe"].side_effect = [_meta(), ProbeError("No video stream", clip=Path("b.mp4"))]
        with pytest.raises(ProbeError) as exc:
            stitch(_job(tmp_path))
        assert exc.value.clip == Path("b.mp4")
        ff["extract"].assert_not_called()
        ff["encode"].assert_not_called()

    def test_extraction_failure_aborts(self, ff, tmp_path):
        calls = {"n": 0}

        def flaky(clip, ts, out, vf=None):
            calls["n"] += 1
            if calls["n"] == 7:
                raise ExtractionError("no frame decoded", clip=clip)
            return _touch_frame(clip, ts, out)

        ff["extract"].side_effect = flaky
        with pytest.raises(ExtractionError):
            stitch(_job(tmp_path))
        ff["encode"].assert_not_called()
        assert not (tmp_path / "out" / "final.mp4").exists()
        assert _scratch_dirs(tmp_path) == []

    def test_encode_failure_removes_partial_output(self, ff, tmp_path):
        def partial(pattern, output, fps, **kwargs):
            output.write_bytes(b"half a video")
            raise EncodeError("ffmpeg exited with rc=1", detail="disk full")

        ff["encode"].side_effect = partial
        with pytest.raises(EncodeError):
            stitch(_job(tmp_path))
        assert not (tmp_path / "out" / "final.mp4").exists()
        assert _scratch_dirs(tmp_path) == []

    def test_probe_failure_removes_earlier_output(self, ff, tmp_path):
        output = tmp_path / "out" / "final.mp4"
        output.parent.mkdir()
        output.write_bytes(b"previous run")
        ff["probe"].side_effect = ProbeError("No video stream", clip=Path("a.mp4"))
        with pytest.raises(ProbeError):
            stitch(_job(tmp_path))
        assert not output.exists()

    def test_keep_frames_survives_failure(self, ff, tmp_path):
        ff["encode"].side_effect = EncodeError("boom")
        with pytest.raises(EncodeError):
            stitch(_job(tmp_path, keep_frames=True))
        assert len(_scratch_dirs(tmp_path)) == 1

    def test_clip_too_short_for_a_frame(self, ff, tmp_path):
        with pytest.raises(ExtractionError, match="No frames"):
            stitch(_job(tmp_path, clip_duration=0.05))


class TestBestEffort:
    def test_unreadable_clip_dropped(self, ff, tmp_path):
        ff["probe"].side_effect = [
            _meta(),
            ProbeError("No video stream", clip=Path("b.mp4")),
            _meta(),
        ]
        result = stitch(_job(tmp_path, clips=("a.mp4", "b.mp4", "c.mp4"), best_effort=True))
        assert [r.path for r in result.clips] == [Path("a.mp4"), Path("c.mp4")]
        assert result.dropped_clips[0][0] == Path("b.mp4")
        assert result.total_frames == 10

    def test_failed_extraction_rewinds_sequence(self, ff, tmp_path):
        def fail_on_b(clip, ts, out, vf=None):
            if clip == Path("b.mp4") and ts > 1.0:
                raise ExtractionError("no frame decoded", clip=clip)
            return _touch_frame(clip, ts, out)

        ff["extract"].side_effect = fail_on_b
        result = stitch(_job(
            tmp_path, clips=("a.mp4", "b.mp4", "c.mp4"), best_effort=True, keep_frames=True,
            easing=EasingSpec(name="linear"),
        ))

        assert [p for p, _ in result.dropped_clips] == [Path("b.mp4")]
        assert result.total_frames == 10
        frames = sorted(p.name for p in result.frames_dir.glob("frame_*.png"))
        assert frames == [f"frame_{i:06d}.png" for i in range(10)]
        c_frames = [c.args[2].name for c in ff["extract"].call_args_list if c.args[0] == Path("c.mp4")]
        assert c_frames[0] == "frame_000005.png"

    def test_all_clips_dropped_fails(self, ff, tmp_path):
        ff["probe"].side_effect = ProbeError("unreadable")
        with pytest.raises(ProbeError, match="No readable clips"):
            stitch(_job(tmp_path, best_effort=True))

    def test_encode_failure_still_fatal(self, ff, tmp_path):
        ff["encode"].side_effect = EncodeError("boom")
        with pytest.raises(EncodeError):
            stitch(_job(tmp_path, best_effort=True))


def _count_frames(path: Path) -> int:
    cmd = [
        "ffprobe", "-v", "error",
        "-select_streams", "v:0",
        "-count_frames",
        "-show_entries", "stream=nb_read_frames",
        "-of", "json",
        str(path),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    return int(json.loads(result.stdout)["streams"][0]["nb_read_frames"])


@requires_ffmpeg
class TestRealFFmpeg:
    def test_stitch_mixed_sizes(self, make_clip, tmp_path):
        clips = [
            make_clip("landscape.mp4", size="320x240", rate=30),
            make_clip("portrait.mp4", size="240x320", rate=24),
        ]
        job = StitchJob(
            clips=clips,
            output=tmp_path / "stitched.mp4",
            clip_duration=0.5,
            output_fps=30,
            work_dir=tmp_path,
        )

        result = stitch(job)

        per_clip = math.floor(0.5 * 30)
        assert result.output_path.exists()
        assert result.total_frames == per_clip * 2
        assert _count_frames(result.output_path) == per_clip * 2

        meta = ffutil.probe(result.output_path)
        assert (meta.width, meta.height) == (320, 320)
        assert _scratch_dirs(tmp_path) == []
