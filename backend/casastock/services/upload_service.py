# Overview: Local-filesystem storage for product images.

from __future__ import annotations

import logging
import os

from werkzeug.utils import secure_filename

from ..errors import ValidationError
from ..time_utils import utcnow

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[1].lower() if "." in filename else ""


def save_image(owner_id: int, file_storage, upload_folder: str) -> str:
    """
    Store an uploaded image under <upload_folder>/<owner_id>/ and return its public URL.

    The stored name is a timestamp prefix plus the sanitized client filename.
    """
    if file_storage is None or not file_storage.filename:
        raise ValidationError("file is required")

    filename = secure_filename(file_storage.filename)
    if not filename or _extension(filename) not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(
            f"Only image files are allowed ({', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))})"
        )

    stored_name = f"{utcnow().strftime('%Y%m%d%H%M%S%f')}-{filename}"
    owner_dir = os.path.join(upload_folder, str(owner_id))
    os.makedirs(owner_dir, exist_ok=True)
    file_storage.save(os.path.join(owner_dir, stored_name))

    logger.info("Stored upload %s for owner %s", stored_name, owner_id)
    return f"/uploads/{owner_id}/{stored_name}"
