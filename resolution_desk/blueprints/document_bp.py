"""
Document Blueprint — workgroup archive and file storage.

  GET    /api/v1/workgroups/<id>/documents   — archived documents of a workgroup
  POST   /api/v1/workgroups/<id>/documents   — archive a document (title + file_url)
  DELETE /api/v1/documents/<id>
  POST   /api/v1/files                        — upload (multipart "file" or base64 image)
  GET    /api/v1/uploads/<path>               — serve a stored file
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request, send_from_directory

from resolution_desk.blueprints import json_body
from resolution_desk.core.exceptions import ValidationError
from resolution_desk.middleware.auth_required import login_required
from resolution_desk.services import document_service, storage_service
from resolution_desk.services.gateway import get_gateway
from resolution_desk.utils.errors import E, api_error, register_error_handlers

logger = logging.getLogger(__name__)

document_bp = Blueprint("document_bp", __name__, url_prefix="/api/v1")
register_error_handlers(document_bp)


# ═══════════════════════════════════════════════════════════════
# Workgroup documents
# ═══════════════════════════════════════════════════════════════
@document_bp.route("/workgroups/<workgroup_id>/documents", methods=["GET"])
@login_required
def list_documents(workgroup_id):
    return jsonify(document_service.list_documents(workgroup_id, g.current_user)), 200


@document_bp.route("/workgroups/<workgroup_id>/documents", methods=["POST"])
@login_required
def add_document(workgroup_id):
    """Body: { "title": "...", "description": "...", "file_url": "..." }"""
    return jsonify(document_service.add_document(workgroup_id, json_body(), g.current_user)), 201


@document_bp.route("/documents/<document_id>", methods=["DELETE"])
@login_required
def delete_document(document_id):
    document_service.delete_document(document_id, g.current_user)
    return jsonify({"deleted": document_id}), 200


# ═══════════════════════════════════════════════════════════════
# Files
# ═══════════════════════════════════════════════════════════════
@document_bp.route("/files", methods=["POST"])
@login_required
def upload_file():
    """
    Store an attachment and return its public URL.

    Multipart: ``file`` (required), ``folder`` (optional, default "general").
    JSON: { "data": "<base64 or data URL>", "file_name": "photo.png",
            "folder": "..." } — images only, compressed before storage.
    """
    upload = request.files.get("file")
    if upload is not None:
        if not upload.filename:
            return api_error(E.VALIDATION_REQUIRED, "file name is required")
        folder = request.form.get("folder", "general")
        url = get_gateway().store_upload(upload.read(), upload.filename, folder)
        return jsonify({"url": url}), 201

    data = json_body()
    encoded = data.get("data") or ""
    file_name = data.get("file_name") or data.get("fileName") or ""
    if not encoded or not file_name:
        return api_error(E.VALIDATION_REQUIRED, "file is required")
    if not storage_service.is_image(file_name):
        raise ValidationError("only images can be uploaded as base64",
                              details={"file_name": "not an image"})

    url = get_gateway().store_upload(encoded, file_name, data.get("folder") or "general")
    return jsonify({"url": url}), 201


@document_bp.route("/uploads/<path:filename>", methods=["GET"])
def serve_upload(filename):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
