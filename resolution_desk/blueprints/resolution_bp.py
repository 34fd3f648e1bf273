"""
Resolution Blueprint — resolutions, notes, lifecycle transitions and the
virtual by-grade view.

Listings:
    GET  /api/v1/categories/<id>/resolutions
    GET  /api/v1/sections/<section>/resolutions      (programs | council)
    GET  /api/v1/resolutions/search?type=&q=

CRUD:
    POST   /api/v1/resolutions
    GET    /api/v1/resolutions/<id>
    PUT    /api/v1/resolutions/<id>
    DELETE /api/v1/resolutions/<id>

Lifecycle:
    POST /api/v1/resolutions/<id>/transition   { "action": "...", "progress": 40 }
    GET  /api/v1/resolutions/<id>/transitions

By grade:
    GET /api/v1/by-grade/grades
    GET /api/v1/by-grade/executors
    GET /api/v1/by-grade/resolutions?grade=|executor=|lesson=|uncompleted=1
"""

import logging

from flask import Blueprint, g, jsonify, request

from resolution_desk.blueprints import flag_arg, json_body
from resolution_desk.middleware.auth_required import login_required
from resolution_desk.services import resolution_service
from resolution_desk.services.gateway import get_gateway
from resolution_desk.services.permission import PermissionChecker
from resolution_desk.services.resolution_lifecycle import (
    get_available_transitions,
    projected_state,
    transition_resolution,
)
from resolution_desk.utils.errors import E, api_error, register_error_handlers

logger = logging.getLogger(__name__)

resolution_bp = Blueprint("resolution_bp", __name__, url_prefix="/api/v1")
register_error_handlers(resolution_bp)


# ═══════════════════════════════════════════════════════════════
# Listings
# ═══════════════════════════════════════════════════════════════
@resolution_bp.route("/categories/<category_id>/resolutions", methods=["GET"])
@login_required
def list_category_resolutions(category_id):
    """Resolutions and notes filed directly under a category (split by approval)."""
    return jsonify(resolution_service.list_for_category(category_id, g.current_user)), 200


@resolution_bp.route("/sections/<section>/resolutions", methods=["GET"])
@login_required
def list_section_resolutions(section):
    return jsonify(resolution_service.list_for_section(section, g.current_user)), 200


@resolution_bp.route("/resolutions/search", methods=["GET"])
@login_required
def search_resolutions():
    category_type = request.args.get("type", "")
    if not category_type:
        return api_error(E.VALIDATION_REQUIRED, "type is required")
    items = resolution_service.search(category_type, request.args.get("q", ""), g.current_user)
    return jsonify({"items": items, "total": len(items)}), 200


# ═══════════════════════════════════════════════════════════════
# CRUD
# ═══════════════════════════════════════════════════════════════
@resolution_bp.route("/resolutions", methods=["POST"])
@login_required
def create_resolution():
    """
    Create a resolution or, with ``is_approved: false``, a note.

    Body (snake_case or camelCase):
        parent_id, title, description, lesson, grade, executor, workgroup,
        is_approved, discussion_time, needs_date, execution_date,
        execution_term, images, reminder_type, reminder_start_date,
        reminder_end_date
    """
    return jsonify(resolution_service.create_resolution(json_body(), g.current_user)), 201


@resolution_bp.route("/resolutions/<resolution_id>", methods=["GET"])
@login_required
def get_resolution(resolution_id):
    return jsonify(resolution_service.get_resolution(resolution_id, g.current_user)), 200


@resolution_bp.route("/resolutions/<resolution_id>", methods=["PUT"])
@login_required
def update_resolution(resolution_id):
    return jsonify(resolution_service.update_resolution(resolution_id, json_body(), g.current_user)), 200


@resolution_bp.route("/resolutions/<resolution_id>", methods=["DELETE"])
@login_required
def delete_resolution(resolution_id):
    resolution_service.delete_resolution(resolution_id, g.current_user)
    return jsonify({"deleted": resolution_id}), 200


# ═══════════════════════════════════════════════════════════════
# Lifecycle
# ═══════════════════════════════════════════════════════════════
@resolution_bp.route("/resolutions/<resolution_id>/transition", methods=["POST"])
@login_required
def transition(resolution_id):
    """
    Execute a lifecycle action.

    Body: { "action": "claim|unclaim|approve|reject|ratify|revoke|set_progress",
            "progress": 0-100 (set_progress only) }

    Returns the previous and new state plus the refreshed resolution.
    """
    data = json_body()
    action = data.get("action", "")
    if not action:
        return api_error(E.VALIDATION_REQUIRED, "action is required")

    result = transition_resolution(
        resolution_id, action, g.current_user, progress=data.get("progress"),
    )
    return jsonify(result), 200


@resolution_bp.route("/resolutions/<resolution_id>/transitions", methods=["GET"])
@login_required
def available_transitions(resolution_id):
    gw = get_gateway()
    res = gw.get_resolution(resolution_id)
    checker = PermissionChecker(g.current_user, gw.get_categories())
    checker.require_view(res)
    return jsonify({
        "resolution_id": res.id,
        "state": projected_state(res),
        "available_actions": get_available_transitions(res, checker),
    }), 200


# ═══════════════════════════════════════════════════════════════
# By grade
# ═══════════════════════════════════════════════════════════════
@resolution_bp.route("/by-grade/grades", methods=["GET"])
@login_required
def list_grades():
    return jsonify(resolution_service.list_grades(g.current_user)), 200


@resolution_bp.route("/by-grade/executors", methods=["GET"])
@login_required
def list_executors():
    return jsonify(resolution_service.list_executors(g.current_user)), 200


@resolution_bp.route("/by-grade/resolutions", methods=["GET"])
@login_required
def by_grade():
    items = resolution_service.by_grade(
        g.current_user,
        grade=request.args.get("grade") or None,
        executor=request.args.get("executor") or None,
        lesson=request.args.get("lesson") or None,
        uncompleted=flag_arg("uncompleted"),
    )
    return jsonify({"items": items, "total": len(items)}), 200
