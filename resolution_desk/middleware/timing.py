"""
Request timing and access logging.

Every response gets ``X-Request-ID`` (echoed from the client when sent) and
``X-Request-Duration-Ms``. One log line per request, with its level picked
by what happened:

  - 5xx                                  → ERROR
  - write refused while the store is offline (503) → WARNING, tagged degraded
  - slower than ``SLOW_REQUEST_MS``      → WARNING
  - any other write (POST/PUT/DELETE)    → INFO, so changes are attributable
  - reads                                → DEBUG

Health checks and uploaded-file downloads are not logged.
"""

import logging
import time
import uuid

from flask import Flask, current_app, g, request

logger = logging.getLogger(__name__)

QUIET_PREFIXES = ("/api/v1/health", "/api/v1/uploads/")
WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def _store_offline() -> bool:
    state = current_app.extensions.get("connectivity")
    return state is not None and not state.is_online


def _level_for(response, duration_ms: float, degraded: bool) -> tuple[int, str]:
    if response.status_code >= 500 and not (degraded and response.status_code == 503):
        return logging.ERROR, "Server error"
    if degraded and request.method in WRITE_METHODS:
        return logging.WARNING, "Write while offline"
    if duration_ms > current_app.config.get("SLOW_REQUEST_MS", 1000):
        return logging.WARNING, "Slow request"
    if request.method in WRITE_METHODS:
        return logging.INFO, "Write"
    return logging.DEBUG, "Request"


def init_request_timing(app: Flask):
    """Register the before/after hooks on ``app``."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _log_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        response.headers["X-Request-ID"] = g.request_id

        if request.path.startswith(QUIET_PREFIXES):
            return response

        degraded = _store_offline()
        level, label = _level_for(response, duration_ms, degraded)
        user = getattr(g, "current_user", None)
        logger.log(level, "%s: %s %s %d", label, request.method, request.path,
                   response.status_code, extra={
                       "method": request.method,
                       "path": request.path,
                       "status": response.status_code,
                       "duration_ms": duration_ms,
                       "remote_addr": request.remote_addr,
                       "request_id": g.request_id,
                       "user_id": getattr(user, "id", None),
                       "degraded": True if degraded else None,
                   })
        return response
