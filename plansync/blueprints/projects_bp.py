"""
Plan Sync Service
Projects blueprint — read accessor over the live list + staged mutations.

Endpoints summary:
    PROJECTS   /api/v1/projects              GET  (?year=, ?q=, ?limit=, ?offset=)
                                             POST (stage add, editor)
               /api/v1/projects/<id>         GET
                                             PATCH (stage update, editor)

    LEDGER     /api/v1/mutations             GET  (?state=pending|confirmed|failed)

Writes answer 202: the record is already in the list, the forward to the
sheet is still in flight. NotFoundError / ValidationError raised by the
services are rendered by the app-level handlers.
"""

import logging

from flask import Blueprint, jsonify, request

from plansync.auth import require_role
from plansync.blueprints import paginate_list, year_arg
from plansync.services.mutation_service import MUTATION_STATES
from plansync.services.sync_engine import get_engine
from plansync.utils.errors import E, api_error

logger = logging.getLogger(__name__)

projects_bp = Blueprint("projects", __name__, url_prefix="/api/v1")


@projects_bp.route("/projects", methods=["GET"])
def list_projects():
    engine = get_engine()
    records = engine.store.list_projects(year=year_arg(), query=request.args.get("q"))
    page, total = paginate_list(records)
    return jsonify({
        "items": [r.to_dict() for r in page],
        "total": total,
        "source": engine.store.meta()["source"],
    })


@projects_bp.route("/projects/<project_id>", methods=["GET"])
def get_project(project_id):
    return jsonify(get_engine().store.get(project_id).to_dict())


@projects_bp.route("/projects", methods=["POST"])
@require_role("editor")
def create_project():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON object body is required")

    record, mutation = get_engine().reconciler.stage_add(data)
    return jsonify({"project": record.to_dict(), "mutation": mutation.to_dict()}), 202


@projects_bp.route("/projects/<project_id>", methods=["PATCH"])
@require_role("editor")
def update_project(project_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON object body is required")

    record, mutation = get_engine().reconciler.stage_update(project_id, data)
    return jsonify({"project": record.to_dict(), "mutation": mutation.to_dict()}), 202


@projects_bp.route("/mutations", methods=["GET"])
def list_mutations():
    state = request.args.get("state")
    if state and state not in MUTATION_STATES:
        return api_error(E.VALIDATION_INVALID, f"state must be one of {sorted(MUTATION_STATES)}")
    items = get_engine().reconciler.mutations(state=state)
    return jsonify({"items": [m.to_dict() for m in items], "total": len(items)})
