"""
JWT Auth Middleware — parses the Bearer token and loads ``g.current_user``.

The user row is reloaded on every request, so a deactivated account or a
permission edit takes effect without waiting for the token to expire.

Sets:
    g.jwt_user_id   — ``sub`` of a valid token, else None
    g.current_user  — active User, else None

While the store is offline the bootstrap admin is served from configuration
so the admin can still reach the retry endpoint.
"""

import logging

import jwt as pyjwt
from flask import g, request

from resolution_desk.core.exceptions import ConnectivityError, NotFoundError
from resolution_desk.services.gateway import get_gateway
from resolution_desk.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/auth/register",
    "/api/v1/health",
    "/api/v1/uploads/",
)


def _load_user(user_id):
    from resolution_desk.services.user_service import BOOTSTRAP_ADMIN_ID, bootstrap_admin_stub

    def _offline_fallback():
        return bootstrap_admin_stub() if user_id == BOOTSTRAP_ADMIN_ID else None

    gw = get_gateway()
    if not gw.is_online:
        return _offline_fallback()
    try:
        return gw.get_user(user_id)
    except NotFoundError:
        return None
    except ConnectivityError:
        return _offline_fallback()


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.current_user = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        try:
            payload = decode_access_token(auth_header[7:])
        except pyjwt.ExpiredSignatureError:
            logger.debug("Expired token on %s", path)
            return
        except pyjwt.InvalidTokenError:
            logger.debug("Invalid token on %s", path)
            return

        g.jwt_user_id = payload.get("sub")
        user = _load_user(g.jwt_user_id)
        if user is not None and user.is_active:
            g.current_user = user
