"""
Plan Sync Service
Dashboard blueprint — read-only views derived from the live list and the
auxiliary feeds.
"""

from flask import Blueprint, jsonify

from plansync.blueprints import year_arg
from plansync.services import dashboard_service as svc
from plansync.services.sync_engine import get_engine

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1")


@dashboard_bp.route("/dashboard", methods=["GET"])
def dashboard():
    """Status counts and Annual/New designer load."""
    year = year_arg()
    data = svc.summarize(get_engine().store.list_projects(year=year))
    data["year"] = year
    return jsonify(data), 200


@dashboard_bp.route("/members", methods=["GET"])
def members():
    """Per-person involvement."""
    items = svc.member_stats(get_engine().store.list_projects(year=year_arg()))
    return jsonify({"items": items, "total": len(items)}), 200


@dashboard_bp.route("/reports", methods=["GET"])
def reports():
    """Design workload report rows."""
    items = get_engine().auxiliary.reports(year=year_arg())
    return jsonify({"items": [r.to_dict() for r in items], "total": len(items)}), 200


@dashboard_bp.route("/documents", methods=["GET"])
def documents():
    items = get_engine().auxiliary.documents()
    return jsonify({"items": [d.to_dict() for d in items], "total": len(items)}), 200
