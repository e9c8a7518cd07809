"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — basic liveness ping
    GET /api/v1/health/ready  — 200 once something (live, cache or defaults) is published
    GET /api/v1/health/live   — detailed status (cache backend, last sync)
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from plansync.services.sync_engine import get_engine

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({"status": "ok", "app": "Plan Sync Service"}), 200


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Readiness probe — 503 until the first publish."""
    meta = get_engine().store.meta()
    if meta["source"] == "empty":
        return jsonify({"status": "starting", "store": meta}), 503
    return jsonify({"status": "ok", "store": meta}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    engine = get_engine()
    checks = {}

    # ── Cache backend ────────────────────────────────────────────────
    t0 = time.perf_counter()
    cache = engine.cache.health_check()
    if cache["status"] == "ok":
        cache["latency_ms"] = round((time.perf_counter() - t0) * 1000, 1)
    else:
        logger.error("Health check — cache backend failed: %s", cache.get("detail"))
    checks["cache"] = cache

    # ── Sync pipeline ────────────────────────────────────────────────
    last = engine.sync.last_result
    checks["sync"] = {
        "status": "ok" if last is None or last.ok else "degraded",
        "store": engine.store.meta(),
        "last_error": last.error if last else None,
        "syncing": engine.scheduler.is_syncing,
    }

    checks["app"] = {
        "name": "Plan Sync Service",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    # Cache and sync failures degrade but never fail: the fallback chain keeps serving.
    degraded = checks["cache"]["status"] != "ok" or checks["sync"]["status"] != "ok"
    return jsonify({
        "status": "degraded" if degraded else "healthy",
        "checks": checks,
    }), 200
