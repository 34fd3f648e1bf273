"""
Rate limiting configuration.

The Limiter instance lives here (no default limits) so blueprints can
decorate individual routes; ``init_rate_limits`` applies the per-blueprint
limits once everything is registered.

Limits (per remote IP):
    - login / register:  LOGIN_RATE_LIMIT (default 10/minute)
    - write-heavy APIs:  120/minute
    - health check:      exempt

Rate limiting is disabled in testing mode (RATELIMIT_ENABLED=False).
"""

import logging

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
)


def login_limit() -> str:
    return current_app.config.get("LOGIN_RATE_LIMIT", "10/minute")


def init_rate_limits(app):
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in ("resolution_bp", "category_bp", "document_bp", "admin_bp"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("120/minute")(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — login: %s, write APIs: 120/min",
                    app.config.get("LOGIN_RATE_LIMIT"))
