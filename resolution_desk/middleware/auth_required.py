"""
Route guards built on ``g.current_user``.

Usage:
    @bp.route("/resolutions", methods=["POST"])
    @login_required
    def create_resolution():
        ...

    @admin_bp.route("/users", methods=["GET"])
    @admin_required
    def list_users():
        ...

Fine-grained checks (section / category / resolution) are done inside the
services through PermissionChecker; these decorators only answer "who is
calling".
"""

import functools
import logging

from flask import g

from resolution_desk.services.permission import is_admin
from resolution_desk.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def login_required(f):
    """Reject requests without a valid token for an active user (401)."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "current_user", None) is None:
            return api_error(E.UNAUTHORIZED, "Authentication required")
        return f(*args, **kwargs)

    return decorated


def admin_required(f):
    """Admin-only surfaces: user, workgroup, title management and backup."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        user = getattr(g, "current_user", None)
        if user is None:
            return api_error(E.UNAUTHORIZED, "Authentication required")
        if not is_admin(user):
            logger.warning("User %s denied admin endpoint %s", user.id, f.__name__)
            return api_error(E.FORBIDDEN, "Admin access required")
        return f(*args, **kwargs)

    return decorated
