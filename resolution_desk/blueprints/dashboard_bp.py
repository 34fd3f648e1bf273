"""
Dashboard Blueprint — landing-screen views, recomputed on every request.

  GET /api/v1/dashboard            — stats + my tasks + active reminders
  GET /api/v1/dashboard/tasks      — my tasks bucketed by state
  GET /api/v1/dashboard/reminders  — my items with an open reminder window
"""

from flask import Blueprint, g, jsonify

from resolution_desk.middleware.auth_required import login_required
from resolution_desk.services import dashboard_service
from resolution_desk.utils.errors import register_error_handlers

dashboard_bp = Blueprint("dashboard_bp", __name__, url_prefix="/api/v1/dashboard")
register_error_handlers(dashboard_bp)


@dashboard_bp.route("", methods=["GET"])
@login_required
def dashboard():
    return jsonify(dashboard_service.dashboard(g.current_user)), 200


@dashboard_bp.route("/tasks", methods=["GET"])
@login_required
def my_tasks():
    return jsonify(dashboard_service.my_tasks(g.current_user)), 200


@dashboard_bp.route("/reminders", methods=["GET"])
@login_required
def reminders():
    items = dashboard_service.active_reminders(g.current_user)
    return jsonify({"items": items, "total": len(items)}), 200
