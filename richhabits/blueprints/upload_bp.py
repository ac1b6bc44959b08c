"""
Upload Blueprint — validate an upload request and hand out a presigned PUT URL.

The client PUTs the bytes to ``uploadURL`` and then stores ``objectPath``
(``/public-objects/<uploadId>``) on the owning record.
"""

import logging

from botocore.exceptions import BotoCoreError, ClientError
from flask import Blueprint, g, jsonify, request

from richhabits.auth import require_auth
from richhabits.services.upload_service import create_upload, validate_file_upload

logger = logging.getLogger(__name__)

upload_bp = Blueprint("upload_bp", __name__, url_prefix="/api/upload")


def _handle(category):
    data = request.get_json(silent=True) or {}
    result = validate_file_upload(
        data.get("filename"),
        data.get("size"),
        data.get("mimeType"),
        category=category,
        content=data.get("content"),
    )
    if not result["valid"]:
        logger.info("Upload rejected for user %s: %s", g.current_user.id, result["errors"])
        return jsonify({"error": "File validation failed", "errors": result["errors"]}), 400

    try:
        upload = create_upload(category, content_type=(data.get("mimeType") or "").lower() or None)
    except (BotoCoreError, ClientError):
        return jsonify({"error": "Object storage unavailable"}), 503
    logger.info("Upload %s issued to user %s (%s)", upload["uploadId"], g.current_user.id,
                category)
    return jsonify({
        **upload,
        "sanitizedFilename": result["sanitizedFilename"],
        "securityWarnings": result["securityWarnings"],
    }), 200


@upload_bp.route("/image", methods=["POST"])
@require_auth
def upload_image():
    """Body: {filename, size, mimeType}"""
    return _handle("images")


@upload_bp.route("/file", methods=["POST"])
@require_auth
def upload_file():
    """Body: {filename, size, mimeType, category}; category defaults to design_files."""
    data = request.get_json(silent=True) or {}
    category = data.get("category", "design_files")
    if category not in ("documents", "design_files", "manufacturing_attachments"):
        return jsonify({"error": f"Invalid category: {category}"}), 400
    return _handle(category)
