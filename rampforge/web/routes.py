"""Job API routes for RampForge."""

import json
import logging
import queue
import threading
import uuid
from pathlib import Path

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    request,
    send_file,
)

from rampforge.easing import DEFAULT_REGISTRY, EasingSpec
from rampforge.engine import stitch
from rampforge.ffutil import FFmpegNotFoundError, StitchError
from rampforge.manifest import StitchJob

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)

# In-memory job store: job_id -> job dict
_jobs: dict[str, dict] = {}


def _job_or_404(job_id: str):
    job = _jobs.get(job_id)
    if job is None:
        return None, (jsonify({"error": "Job not found"}), 404)
    return job, None


@bp.route("/api/easings")
def list_easings():
    return jsonify(DEFAULT_REGISTRY.names())


@bp.route("/api/jobs", methods=["POST"])
def create_job():
    files = [f for f in request.files.getlist("clips") if f.filename]
    if not files:
        return jsonify({"error": "No clips provided"}), 400

    job_id = uuid.uuid4().hex[:12]
    job_dir = Path(current_app.config["WORK_DIR"]) / job_id
    job_dir.mkdir(parents=True, exist_ok=True)

    clip_paths: list[Path] = []
    for i, f in enumerate(files):
        ext = Path(f.filename).suffix or ".mp4"
        clip_path = job_dir / f"clip_{i:02d}{ext}"
        f.save(clip_path)
        clip_paths.append(clip_path)

    _jobs[job_id] = {
        "dir": job_dir,
        "clips": clip_paths,
        "filenames": [f.filename for f in files],
        "status": "uploaded",
    }

    return jsonify({"job_id": job_id, "filenames": _jobs[job_id]["filenames"]})


@bp.route("/api/jobs/<job_id>/stitch", methods=["POST"])
def start_stitch(job_id: str):
    job, err = _job_or_404(job_id)
    if err:
        return err
    if job["status"] not in ("uploaded", "done", "error"):
        return jsonify({"error": f"Job is already {job['status']}"}), 409

    config = request.get_json(silent=True) or {}
    best_effort = config.get("best_effort", False)
    if not isinstance(best_effort, bool):
        return jsonify({"error": "best_effort must be true or false"}), 400
    try:
        if "bezier" in config:
            easing = EasingSpec.from_value(config["bezier"])
        else:
            easing = EasingSpec.from_value(config.get("easing", EasingSpec().name))
        stitch_job = StitchJob(
            clips=job["clips"],
            output=job["dir"] / "output.mp4",
            clip_duration=float(config.get("clip_duration", 1.5)),
            easing=easing,
            output_fps=float(config.get("output_fps", 60)),
            scale_mode=config.get("scale_mode", "auto"),
            pad_color=config.get("pad_color", "black"),
            best_effort=best_effort,
            work_dir=job["dir"],
        )
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    progress_queue: queue.Queue = queue.Queue()
    job["progress_queue"] = progress_queue
    job["status"] = "processing"
    job["error"] = None

    def run():
        try:
            def on_progress(stage: str, frac: float):
                progress_queue.put({"stage": stage, "progress": round(frac, 3)})

            result = stitch(stitch_job, on_progress=on_progress)
            job["result"] = {
                "output_path": str(result.output_path),
                "total_frames": result.total_frames,
                "duration": result.duration,
                "width": result.width,
                "height": result.height,
                "clips": len(result.clips),
                "dropped_clips": [
                    {"clip": str(path), "reason": reason}
                    for path, reason in result.dropped_clips
                ],
            }
            job["status"] = "done"
        except StitchError as e:
            job["status"] = "error"
            job["error"] = e.to_dict()
        except FFmpegNotFoundError as e:
            job["status"] = "error"
            job["error"] = {"step": "config", "clip": None, "message": str(e), "detail": ""}
        except Exception as e:
            logger.exception("Stitch job %s crashed", job_id)
            job["status"] = "error"
            job["error"] = {"step": "internal", "clip": None, "message": str(e), "detail": ""}
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({"status": "started"})


@bp.route("/api/jobs/<job_id>/progress")
def progress_stream(job_id: str):
    job, err = _job_or_404(job_id)
    if err:
        return err

    q = job.get("progress_queue")
    if q is None:
        return jsonify({"error": "No stitching in progress"}), 409

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                if job["status"] == "error":
                    data = json.dumps({"error": job["error"]})
                else:
                    data = json.dumps({
                        "stage": "complete",
                        "progress": 1.0,
                        "result": job.get("result"),
                    })
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/jobs/<job_id>/result")
def download_result(job_id: str):
    job, err = _job_or_404(job_id)
    if err:
        return err
    if job["status"] != "done":
        return jsonify({"error": "Job not complete"}), 409

    output_path = Path(job["result"]["output_path"])
    return send_file(output_path, mimetype="video/mp4", as_attachment=False)


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    job, err = _job_or_404(job_id)
    if err:
        return err

    resp = {"status": job["status"], "filenames": job.get("filenames")}
    if job["status"] == "done":
        resp["result"] = job.get("result")
    if job["status"] == "error":
        resp["error"] = job.get("error")
    return jsonify(resp)
