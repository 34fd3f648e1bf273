"""
Health Blueprint — connectivity status and manual retry.

  GET  /api/v1/health        — {"status": "ok|degraded", "is_online", ...}
  POST /api/v1/health/retry  — re-run store initialization (probe + bootstrap upserts)

Both endpoints are public so a client in degraded mode can recover without
a working user store.
"""

import logging

from flask import Blueprint, jsonify

from resolution_desk.services.connectivity import get_connectivity, initialize_store

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    state = get_connectivity().to_dict()
    return jsonify({"status": "ok" if state["is_online"] else "degraded", **state}), 200


@health_bp.route("/retry", methods=["POST"])
def retry():
    state = initialize_store()
    logger.info("Manual connectivity retry: online=%s", state["is_online"])
    return jsonify({"status": "ok" if state["is_online"] else "degraded", **state}), 200
