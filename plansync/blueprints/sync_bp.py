"""
Plan Sync Service
Sync blueprint — pipeline status, manual refresh, session gating, notices.

Endpoints summary:
    SYNC     /api/v1/sync/status           GET
             /api/v1/sync/refresh          POST  (manual trigger)

    SESSION  /api/v1/session/start         POST  (activate gate + mount pass)
             /api/v1/session/heartbeat     POST  (record activity)
             /api/v1/session/end           POST  (deactivate gate, stop timer)

    NOTICES  /api/v1/notices               GET   (write-forward failures)
"""

import logging

from flask import Blueprint, jsonify

from plansync.services.sync_engine import get_engine
from plansync.utils.errors import E, api_error

logger = logging.getLogger(__name__)

sync_bp = Blueprint("sync", __name__, url_prefix="/api/v1")


@sync_bp.route("/sync/status", methods=["GET"])
def sync_status():
    return jsonify(get_engine().status())


@sync_bp.route("/sync/refresh", methods=["POST"])
def sync_refresh():
    result = get_engine().scheduler.refresh()
    if result is None:
        return api_error(E.SESSION_INACTIVE, "No active session; start one before refreshing")
    return jsonify(result.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  SESSION GATE
# ═══════════════════════════════════════════════════════════════════════════

@sync_bp.route("/session/start", methods=["POST"])
def session_start():
    engine = get_engine()
    result = engine.start_session()
    logger.info("Session started; mount pass source=%s", result.source if result else None)
    return jsonify({
        "session": engine.gate.to_dict(),
        "sync": result.to_dict() if result else None,
    })


@sync_bp.route("/session/heartbeat", methods=["POST"])
def session_heartbeat():
    engine = get_engine()
    engine.heartbeat()
    return jsonify({"session": engine.gate.to_dict()})


@sync_bp.route("/session/end", methods=["POST"])
def session_end():
    engine = get_engine()
    engine.end_session()
    logger.info("Session ended")
    return jsonify({"session": engine.gate.to_dict()})


@sync_bp.route("/notices", methods=["GET"])
def list_notices():
    items = get_engine().reconciler.notices.list()
    return jsonify({"items": items, "total": len(items)})
