# Overview: Flask routes for product image uploads and their public serving.

import os

from flask import Blueprint, request, jsonify, current_app, g, send_from_directory

from ..errors import CasaStockError, error_response
from ..services import upload_service
from ..decorators import require_auth, require_active_subscription


uploads_bp = Blueprint("uploads", __name__)


def _upload_root() -> str:
    return os.path.abspath(current_app.config["UPLOAD_FOLDER"])


@uploads_bp.post("/api/uploads")
@require_auth
@require_active_subscription
def upload_image():
    """Multipart form with a `file` part. Returns {"url": "/uploads/<owner>/<name>"}."""
    try:
        url = upload_service.save_image(g.owner_id, request.files.get("file"), _upload_root())
    except CasaStockError as e:
        return error_response(e)
    except OSError:
        current_app.logger.exception("Failed to store upload")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"url": url}), 201


@uploads_bp.get("/uploads/<path:filename>")
def serve_upload(filename: str):
    """Public: catalog pages link product images here."""
    return send_from_directory(_upload_root(), filename)
