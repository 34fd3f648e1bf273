"""
Auth Blueprint — JWT authentication endpoints.

  POST /api/v1/auth/login       — username + password → access token
  POST /api/v1/auth/register    — self-registration (custom role) → access token
  GET  /api/v1/auth/me          — current user profile
  POST /api/v1/auth/password    — change own password
"""

from flask import Blueprint, g, jsonify

from resolution_desk.blueprints import json_body
from resolution_desk.middleware.auth_required import login_required
from resolution_desk.middleware.rate_limiter import limiter, login_limit
from resolution_desk.services import user_service
from resolution_desk.services.jwt_service import issue_token
from resolution_desk.services.user_service import AuthenticationError
from resolution_desk.utils.errors import E, api_error, register_error_handlers

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/v1/auth")
register_error_handlers(auth_bp)


@auth_bp.errorhandler(AuthenticationError)
def _handle_auth_error(error: AuthenticationError):
    code = E.FORBIDDEN if error.status_code == 403 else (
        E.OFFLINE if error.status_code == 503 else E.UNAUTHORIZED)
    return api_error(code, error.message, status=error.status_code)


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
@limiter.limit(login_limit)
def login():
    """
    Authenticate with username + password.

    Body: { "username": "...", "password": "..." }
    """
    data = json_body()
    user = user_service.authenticate(data.get("username", ""), data.get("password", ""))
    return jsonify({**issue_token(user), "user": user.to_dict()}), 200


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/register
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/register", methods=["POST"])
@limiter.limit(login_limit)
def register():
    """
    Create a custom-role account with default permissions.

    Body: { "username": "...", "password": "...", "full_name": "...", "phone": "..." }
    """
    data = json_body()
    user = user_service.register(
        data.get("username", ""),
        data.get("password", ""),
        full_name=data.get("full_name") or data.get("fullName") or "",
        phone=data.get("phone", ""),
    )
    return jsonify({**issue_token(user), "user": user.to_dict()}), 201


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(g.current_user.to_dict()), 200


@auth_bp.route("/password", methods=["POST"])
@login_required
def change_password():
    """Body: { "current_password": "...", "new_password": "..." }"""
    data = json_body()
    user_service.authenticate(g.current_user.username, data.get("current_password", ""))
    user_service.change_password(g.current_user.id, data.get("new_password", ""))
    return jsonify({"status": "ok"}), 200
