"""
Admin Blueprint — user access, root workgroups, executor titles and backup.

Users:
    GET  /api/v1/admin/users
    PUT  /api/v1/admin/users/<id>/access        { role, title, permissions }
    PUT  /api/v1/admin/users/<id>/active        { is_active }

Root workgroups:
    GET    /api/v1/admin/workgroups
    POST   /api/v1/admin/workgroups              { name }
    PUT    /api/v1/admin/workgroups/<id>         { name }
    DELETE /api/v1/admin/workgroups/<id>

Titles:
    GET    /api/v1/titles                        (any user: assignable titles)
    GET    /api/v1/admin/titles
    POST   /api/v1/admin/titles                  { title }
    PUT    /api/v1/admin/titles/<id>             { title }
    DELETE /api/v1/admin/titles/<id>

Backup:
    GET /api/v1/admin/backup?legacy=1
"""

import logging

from flask import Blueprint, g, jsonify

from resolution_desk.blueprints import flag_arg, json_body
from resolution_desk.core.exceptions import NotFoundError, ValidationError
from resolution_desk.middleware.auth_required import admin_required, login_required
from resolution_desk.services import backup_service, category_service, title_service, user_service
from resolution_desk.services.gateway import get_gateway
from resolution_desk.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin_bp", __name__, url_prefix="/api/v1")
register_error_handlers(admin_bp)


# ═══════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/admin/users", methods=["GET"])
@admin_required
def list_users():
    return jsonify([u.to_dict() for u in user_service.list_users()]), 200


@admin_bp.route("/admin/users/<user_id>/access", methods=["PUT"])
@admin_required
def update_access(user_id):
    """Replace role, title and permission map of a user in one write."""
    user = user_service.update_user_access(user_id, json_body())
    return jsonify(user.to_dict()), 200


@admin_bp.route("/admin/users/<user_id>/active", methods=["PUT"])
@admin_required
def set_active(user_id):
    data = json_body()
    if "is_active" not in data and "isActive" not in data:
        raise ValidationError("is_active is required", details={"is_active": "required"})
    is_active = data.get("is_active", data.get("isActive"))
    user = user_service.set_active(user_id, bool(is_active))
    return jsonify(user.to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Root workgroups
# ═══════════════════════════════════════════════════════════════
def _root_workgroup(workgroup_id):
    cat = get_gateway().get_category(workgroup_id)
    if cat.type != "workgroups" or cat.parent_id is not None:
        raise NotFoundError("Workgroup", workgroup_id)
    return cat


@admin_bp.route("/admin/workgroups", methods=["GET"])
@admin_required
def list_workgroups():
    return jsonify([c.to_dict() for c in category_service.root_workgroups()]), 200


@admin_bp.route("/admin/workgroups", methods=["POST"])
@admin_required
def create_workgroup():
    name = json_body().get("name", "")
    cat = category_service.create_category(
        {"name": name, "type": "workgroups", "parent_id": None}, g.current_user,
    )
    return jsonify(cat.to_dict()), 201


@admin_bp.route("/admin/workgroups/<workgroup_id>", methods=["PUT"])
@admin_required
def rename_workgroup(workgroup_id):
    _root_workgroup(workgroup_id)
    name = (json_body().get("name") or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    cat = category_service.rename_category(
        workgroup_id, category_service.workgroup_name(name), g.current_user,
    )
    return jsonify(cat.to_dict()), 200


@admin_bp.route("/admin/workgroups/<workgroup_id>", methods=["DELETE"])
@admin_required
def delete_workgroup(workgroup_id):
    _root_workgroup(workgroup_id)
    return jsonify(category_service.delete_category(workgroup_id, g.current_user)), 200


# ═══════════════════════════════════════════════════════════════
# Titles
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/titles", methods=["GET"])
@login_required
def assignable_titles():
    """Built-in titles followed by the custom ones."""
    return jsonify(title_service.assignable_titles()), 200


@admin_bp.route("/admin/titles", methods=["GET"])
@admin_required
def list_titles():
    return jsonify([t.to_dict() for t in title_service.list_custom_titles()]), 200


@admin_bp.route("/admin/titles", methods=["POST"])
@admin_required
def create_title():
    row = title_service.create_title(json_body().get("title", ""))
    return jsonify(row.to_dict()), 201


@admin_bp.route("/admin/titles/<int:title_id>", methods=["PUT"])
@admin_required
def rename_title(title_id):
    row = title_service.rename_title(title_id, json_body().get("title", ""))
    return jsonify(row.to_dict()), 200


@admin_bp.route("/admin/titles/<int:title_id>", methods=["DELETE"])
@admin_required
def delete_title(title_id):
    title_service.delete_title(title_id)
    return jsonify({"deleted": title_id}), 200


# ═══════════════════════════════════════════════════════════════
# Backup
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/admin/backup", methods=["GET"])
@admin_required
def backup():
    """Full JSON export; ``?legacy=1`` writes documents back as sentinel rows."""
    payload = backup_service.build_backup(legacy=flag_arg("legacy"))
    logger.info("Backup exported by %s (format=%s)", g.current_user.id, payload["format"])
    return jsonify(payload), 200
