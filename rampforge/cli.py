"""Command-line entry point: builds a StitchJob and calls the engine."""

import argparse
import logging
import sys
from pathlib import Path

from rampforge.easing import DEFAULT_EASING, DEFAULT_REGISTRY, EasingSpec, parse_bezier
from rampforge.engine import stitch
from rampforge.ffutil import FFmpegNotFoundError, StitchError
from rampforge.manifest import SCALE_MODES, StitchJob, load_manifest
from rampforge.timing import describe_curve


def _bezier_arg(value: str) -> tuple[float, float, float, float]:
    try:
        return parse_bezier(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rampforge",
        description="RampForge: speed-ramped clip stitching and frame utilities.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    st = sub.add_parser("stitch", help="Retime clips with a speed curve and stitch them")
    st.add_argument("clips", nargs="*", type=Path, help="Input clips, in order")
    st.add_argument("--clips", dest="clip_flags", action="append", type=Path, default=[],
                    help="Input clip (repeatable, appended after positional clips)")
    st.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    st.add_argument("--output", "-o", type=Path, help="Output file path")
    st.add_argument("--clip-duration", type=float, default=1.5,
                    help="Output seconds per clip after retiming")
    curve = st.add_mutually_exclusive_group()
    curve.add_argument("--easing", type=str, default=DEFAULT_EASING, help="Named easing curve")
    curve.add_argument("--bezier", type=_bezier_arg, help="Custom curve as p1x,p1y,p2x,p2y")
    st.add_argument("--output-fps", type=float, default=60.0, help="Output frame rate")
    st.add_argument("--scale-mode", choices=SCALE_MODES, default="auto",
                    help="stretch to size, pad to size, or auto (pad only if sizes differ)")
    st.add_argument("--pad-color", type=str, default="black", help="Fill colour for pad mode")
    st.add_argument("--keep-frames", action="store_true", help="Keep scratch frames for debugging")
    st.add_argument("--best-effort", action="store_true",
                    help="Skip clips that fail instead of aborting the whole job")

    sub.add_parser("curves", help="List available easing curves")

    an = sub.add_parser("analyze", help="Show the speed profile of a curve")
    an_curve = an.add_mutually_exclusive_group()
    an_curve.add_argument("--easing", type=str, default=DEFAULT_EASING)
    an_curve.add_argument("--bezier", type=_bezier_arg)
    an.add_argument("--input-duration", type=float, default=5.0, help="Source clip seconds")
    an.add_argument("--clip-duration", type=float, default=1.5, help="Output seconds")
    an.add_argument("--output-fps", type=float, default=60.0)

    cg = sub.add_parser("crop-grid", help="Crop a contact sheet into individual frames")
    cg.add_argument("image", type=Path, help="Contact sheet image")
    cg.add_argument("--output-dir", "-o", type=Path, required=True)
    cg.add_argument("--rows", type=int, default=2)
    cg.add_argument("--cols", type=int, default=3)
    cg.add_argument("--method", choices=["variance", "simple"], default="variance")
    cg.add_argument("--padding", type=int, default=0, help="Pixels trimmed per edge (simple)")
    cg.add_argument("--no-fallback", action="store_true",
                    help="Fail instead of falling back to simple division")

    rf = sub.add_parser("reframe", help="Center-crop frames to an aspect ratio")
    rf.add_argument("images", nargs="+", type=Path)
    rf.add_argument("--aspect-ratio", "-a", required=True, help="e.g. 9:16")
    rf.add_argument("--output-dir", "-o", type=Path, help="Write here instead of in place")

    serve = sub.add_parser("serve", help="Launch the web API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    return parser


def _easing_from_args(args: argparse.Namespace) -> EasingSpec:
    if args.bezier is not None:
        return EasingSpec(bezier=args.bezier)
    return EasingSpec(name=args.easing)


def _build_job(args: argparse.Namespace) -> StitchJob | None:
    if args.manifest:
        return load_manifest(args.manifest)
    clips = list(args.clips) + list(args.clip_flags)
    if not clips:
        return None
    output = args.output or clips[0].with_name("stitched.mp4")
    return StitchJob(
        clips=clips,
        output=output,
        clip_duration=args.clip_duration,
        easing=_easing_from_args(args),
        output_fps=args.output_fps,
        keep_frames=args.keep_frames,
        scale_mode=args.scale_mode,
        pad_color=args.pad_color,
        best_effort=args.best_effort,
    )


def _run_stitch(args: argparse.Namespace) -> int:
    try:
        job = _build_job(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if job is None:
        print("Error: provide clip paths or --manifest.", file=sys.stderr)
        return 1

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    try:
        result = stitch(job, on_progress=on_progress)
    except FFmpegNotFoundError as e:
        print(f"Error: {e}. Install ffmpeg and make sure it is on PATH.", file=sys.stderr)
        return 1
    except (StitchError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print()
    print(f"Done! Output: {result.output_path}")
    print(f"  {len(result.clips)} clips, {result.total_frames} frames, "
          f"{result.duration:.2f}s at {result.width}x{result.height}")
    for report in result.clips:
        print(f"  {report.path.name}: {report.metadata.duration:.2f}s -> {report.frames} frames "
              f"({report.compression_ratio:.2f}x, mid speed {report.speed.middle:.2f}x)")
    for path, reason in result.dropped_clips:
        print(f"  Dropped {path}: {reason}")
    if result.frames_dir:
        print(f"  Frames kept in: {result.frames_dir}")
    return 0


def _run_curves() -> int:
    for tier, names in DEFAULT_REGISTRY.names().items():
        print(f"{tier}:")
        for name in names:
            print(f"  {name}")
    return 0


def _run_analyze(args: argparse.Namespace) -> int:
    spec = _easing_from_args(args)
    try:
        sequence, stats = describe_curve(
            spec.resolve(), args.input_duration, args.clip_duration, args.output_fps
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Curve: {spec.label}")
    print(f"  Frames: {sequence.total_frames}  compression: {sequence.compression_ratio:.2f}x")
    print(f"  Speed  start {stats.start:.2f}x  middle {stats.middle:.2f}x  end {stats.end:.2f}x")
    print(f"         min {stats.min:.2f}x  max {stats.max:.2f}x  avg {stats.average:.2f}x")
    return 0


def _run_crop_grid(args: argparse.Namespace) -> int:
    from rampforge.editors.grid import GutterDetectionError, crop_grid

    try:
        paths = crop_grid(
            args.image,
            args.output_dir,
            rows=args.rows,
            cols=args.cols,
            method=args.method,
            padding=args.padding,
            fallback=not args.no_fallback,
        )
    except GutterDetectionError as e:
        print(f"Error: gutter detection failed: {e}. Try --method simple.", file=sys.stderr)
        return 1
    for p in paths:
        print(p)
    return 0


def _run_reframe(args: argparse.Namespace) -> int:
    from rampforge.editors.reframe import reframe_images

    try:
        paths = reframe_images(args.images, args.aspect_ratio, args.output_dir)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    for p in paths:
        print(p)
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from rampforge.web import create_app
        app = create_app()
        print(f"RampForge API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    if args.command == "stitch":
        code = _run_stitch(args)
    elif args.command == "curves":
        code = _run_curves()
    elif args.command == "analyze":
        code = _run_analyze(args)
    elif args.command == "crop-grid":
        code = _run_crop_grid(args)
    else:
        code = _run_reframe(args)
    sys.exit(code)
