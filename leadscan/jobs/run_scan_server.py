"""HTTP entrypoint that triggers lead scans and serves their progress."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, request

from leadscan.core.config import get_settings
from leadscan.etl.csv_export import export_filename, to_csv
from leadscan.etl.stats import summarize
from leadscan.jobs.run_scan import build_controller
from leadscan.models import Region
from leadscan.pipeline.controller import PipelineController, ScanInProgressError

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
# One worker: scans never overlap.
_executor = ThreadPoolExecutor(max_workers=1)
_controller: Optional[PipelineController] = None
_controller_lock = threading.Lock()


def get_controller() -> PipelineController:
    global _controller
    if _controller is None:
        with _controller_lock:
            if _controller is None:
                _controller = build_controller(get_settings())
    return _controller


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": settings.worker_port,
                "api_key_configured": bool(settings.gemini_api_key),
                "scan_status": get_controller().snapshot().status.value,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/scan")
def start_scan() -> Any:
    """
    Start a scan in the background.
    Optional JSON fields: city, state (default to the configured region).
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    settings = get_settings()

    for field in ("city", "state"):
        value = payload.get(field)
        if value is not None and (not isinstance(value, str) or not value.strip()):
            return jsonify({"error": f"{field} must be a non-empty string"}), 400

    if not settings.gemini_api_key:
        return jsonify({"error": "GEMINI_API_KEY is not configured"}), 503

    region = Region(
        city=(payload.get("city") or settings.city).strip(),
        state=(payload.get("state") or settings.state).strip(),
    )

    controller = get_controller()
    try:
        controller.begin(region)
    except ScanInProgressError as exc:
        return jsonify({"error": str(exc), "progress": controller.snapshot().to_dict()}), 409

    logger.info("Queueing scan for %s", region)
    _executor.submit(_run_scan_safe, controller, region)
    return jsonify({"data": {"status": "queued", "region": str(region)}}), 202


@app.get("/progress")
def progress() -> Any:
    return jsonify({"data": get_controller().snapshot().to_dict()}), 200


@app.get("/leads")
def list_leads() -> Any:
    leads = get_controller().leads()
    return jsonify({"data": [lead.to_dict() for lead in leads], "count": len(leads)}), 200


@app.get("/leads/stats")
def lead_stats() -> Any:
    return jsonify({"data": summarize(get_controller().leads())}), 200


@app.get("/leads.csv")
def export_csv() -> Any:
    controller = get_controller()
    leads = controller.leads()
    if not leads:
        return jsonify({"error": "no leads to export"}), 404

    region = controller.region()
    city = region.city if region is not None else get_settings().city
    return Response(
        to_csv(leads),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(city)}"'},
    )


# ---------- Internals ----------


def _run_scan_safe(controller: PipelineController, region: Region) -> None:
    try:
        controller.execute(region)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Scan job failed: %s", exc)


def main() -> None:
    env_port = os.getenv("PORT")
    port = int(env_port or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
