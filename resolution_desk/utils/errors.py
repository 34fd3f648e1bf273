"""Standardised API error responses.

Usage
-----
    from resolution_desk.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Resolution not found")
    return api_error(E.VALIDATION_REQUIRED, "title is required")

``register_error_handlers`` wires the core exception hierarchy onto a
blueprint so every endpoint answers with the same JSON shape.
"""

from __future__ import annotations

import logging

from flask import jsonify, request

from resolution_desk.core.exceptions import (
    ConnectivityError,
    DuplicateError,
    NotFoundError,
    PermissionDenied,
    TransitionError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400 / 422
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Auth – HTTP 401 / 403
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Server – HTTP 500 / 503
    DATABASE = "ERR_DATABASE"
    OFFLINE = "ERR_OFFLINE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 422,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.DATABASE: 500,
    E.OFFLINE: 503,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation shown in the dismissible error banner.
    status : int, optional
        HTTP status override. Falls back to ``_DEFAULT_STATUS[code]``, then 400.
    details : dict, optional
        Extra structured payload (field errors, allowed actions...).

    Returns
    -------
    tuple[Response, int]
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(bp) -> None:
    """Attach handlers for the core exception types to a blueprint."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        logger.info("Not found: %s", error)
        return api_error(E.NOT_FOUND, f"Operation failed: {error.resource} not found")

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(DuplicateError)
    def _handle_duplicate(error: DuplicateError):
        return api_error(
            E.CONFLICT_DUPLICATE,
            "Operation failed: this may be a duplicate",
            details={"resource": error.resource, "field": error.field},
        )

    @bp.errorhandler(PermissionDenied)
    def _handle_forbidden(error: PermissionDenied):
        logger.warning("Permission denied: %s", error)
        return api_error(E.FORBIDDEN, "You do not have permission for this action")

    @bp.errorhandler(TransitionError)
    def _handle_transition(error: TransitionError):
        return api_error(
            E.CONFLICT_STATE, str(error),
            details={"action": error.action, "state": error.current_state},
        )

    @bp.errorhandler(ConnectivityError)
    def _handle_offline(error: ConnectivityError):
        logger.error("Connectivity failure on %s: %s", request.path, error)
        return api_error(E.OFFLINE, "The database is unreachable; changes were not saved")
