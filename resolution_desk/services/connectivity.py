"""
Connectivity state — explicit degraded-mode flag for the store.

One ``ConnectivityState`` lives in ``app.extensions["connectivity"]``:
  - set by the startup probe (``initialize_store``)
  - updated by the manual retry endpoint (POST /api/v1/health/retry)
  - flipped offline by the gateway when a store call cannot connect

While offline, reads degrade to empty results and writes are still attempted
(no queue, no replay). Responses carry ``X-Degraded-Mode: 1``.
"""

import logging
import threading
from datetime import datetime, timezone

from flask import current_app

from resolution_desk.models import db

logger = logging.getLogger(__name__)


class ConnectivityState:
    """Online/offline flag plus the reason of the last failure."""

    def __init__(self):
        self._lock = threading.Lock()
        self.is_online = True
        self.last_error: str | None = None
        self.checked_at: datetime | None = None

    def mark_online(self) -> None:
        with self._lock:
            was_offline = not self.is_online
            self.is_online = True
            self.last_error = None
            self.checked_at = datetime.now(timezone.utc)
        if was_offline:
            logger.info("Store connectivity restored")

    def mark_offline(self, reason: str | None = None) -> None:
        with self._lock:
            was_online = self.is_online
            self.is_online = False
            self.last_error = reason
            self.checked_at = datetime.now(timezone.utc)
        if was_online:
            logger.error("Store unreachable, degraded mode on: %s", reason)

    def probe(self) -> bool:
        """Ping the store with ``SELECT 1`` and update the flag."""
        try:
            db.session.execute(db.text("SELECT 1"))
        except Exception as exc:  # any driver failure means "unreachable"
            db.session.rollback()
            self.mark_offline(str(exc))
            return False
        self.mark_online()
        return True

    def to_dict(self):
        return {
            "is_online": self.is_online,
            "last_error": self.last_error,
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
        }


def get_connectivity() -> ConnectivityState:
    return current_app.extensions["connectivity"]


def init_connectivity(app) -> ConnectivityState:
    """Attach the state object and the degraded-mode response header."""
    state = ConnectivityState()
    app.extensions["connectivity"] = state

    @app.after_request
    def _degraded_header(response):
        if not state.is_online:
            response.headers["X-Degraded-Mode"] = "1"
        return response

    return state


def initialize_store() -> dict:
    """Startup / retry initialization: probe, then upsert the bootstrap admin and synthetic roots.

    Returns the connectivity snapshot. Never raises: a failure leaves the
    application in degraded mode.
    """
    from resolution_desk.services.category_service import ensure_synthetic_roots
    from resolution_desk.services.user_service import ensure_bootstrap_admin

    state = get_connectivity()
    if state.probe():
        try:
            ensure_bootstrap_admin()
            ensure_synthetic_roots()
        except Exception as exc:
            db.session.rollback()
            logger.exception("Store initialization failed")
            state.mark_offline(str(exc))
    return state.to_dict()
