"""
Category Blueprint — tree navigation and node maintenance.

  GET    /api/v1/categories?type=programs     — nodes the caller may enumerate
  GET    /api/v1/categories/<id>              — one node (content access required)
  GET    /api/v1/categories/<id>/children     — direct children, enumeration tier
  GET    /api/v1/categories/<id>/path         — breadcrumb
  POST   /api/v1/categories                   — create a node
  PUT    /api/v1/categories/<id>              — rename
  DELETE /api/v1/categories/<id>              — delete (CATEGORY_DELETE_POLICY)
"""

from flask import Blueprint, g, jsonify, request

from resolution_desk.blueprints import json_body
from resolution_desk.middleware.auth_required import login_required
from resolution_desk.services import category_service
from resolution_desk.utils.errors import E, api_error, register_error_handlers

category_bp = Blueprint("category_bp", __name__, url_prefix="/api/v1/categories")
register_error_handlers(category_bp)


@category_bp.route("", methods=["GET"])
@login_required
def list_categories():
    category_type = request.args.get("type", "")
    if not category_type:
        return api_error(E.VALIDATION_REQUIRED, "type is required")
    return jsonify(category_service.list_categories(g.current_user, category_type)), 200


@category_bp.route("/<category_id>", methods=["GET"])
@login_required
def get_category(category_id):
    return jsonify(category_service.get_category(category_id, g.current_user)), 200


@category_bp.route("/<category_id>/children", methods=["GET"])
@login_required
def list_children(category_id):
    return jsonify(category_service.children(category_id, g.current_user)), 200


@category_bp.route("/<category_id>/path", methods=["GET"])
@login_required
def get_path(category_id):
    return jsonify(category_service.path(category_id)), 200


@category_bp.route("", methods=["POST"])
@login_required
def create_category():
    """Body: { "name": "...", "type": "programs|council|workgroups", "parent_id": "..." }"""
    cat = category_service.create_category(json_body(), g.current_user)
    return jsonify(cat.to_dict()), 201


@category_bp.route("/<category_id>", methods=["PUT"])
@login_required
def rename_category(category_id):
    cat = category_service.rename_category(category_id, json_body().get("name", ""), g.current_user)
    return jsonify(cat.to_dict()), 200


@category_bp.route("/<category_id>", methods=["DELETE"])
@login_required
def delete_category(category_id):
    return jsonify(category_service.delete_category(category_id, g.current_user)), 200
