# Overview: Product image storage; data URLs from the product form are written to UPLOAD_FOLDER.

from __future__ import annotations

import base64
import binascii
import logging
import os
import re
import uuid

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


class ImageError(ValueError):
    """Raised when an image payload cannot be decoded or stored."""
    pass


def is_data_url(value) -> bool:
    return isinstance(value, str) and value.startswith("data:")


def save_data_url(data_url: str, upload_folder: str) -> str:
    """
    Decode a base64 data URL and write it under upload_folder.

    Returns the stored file name (relative to upload_folder).
    """
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise ImageError("image must be a base64 data URL")

    mime = match.group("mime").lower()
    ext = ALLOWED_IMAGE_TYPES.get(mime)
    if ext is None:
        raise ImageError(f"Unsupported image type: {mime}")

    try:
        blob = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError):
        raise ImageError("image data is not valid base64")
    if not blob:
        raise ImageError("image data is empty")

    os.makedirs(upload_folder, exist_ok=True)
    filename = secure_filename(f"product_{uuid.uuid4().hex}.{ext}")
    with open(os.path.join(upload_folder, filename), "wb") as fh:
        fh.write(blob)

    logger.debug("Stored product image %s (%d bytes)", filename, len(blob))
    return filename


def _local_path(reference: str | None, upload_folder: str) -> str | None:
    if not reference or "://" in reference or is_data_url(reference):
        return None
    name = secure_filename(reference)
    if not name or name != reference:
        return None
    return os.path.join(upload_folder, name)


def delete_image(reference: str | None, upload_folder: str) -> bool:
    """Remove a stored image file. External URLs and unknown names are left alone."""
    path = _local_path(reference, upload_folder)
    if path is None or not os.path.exists(path):
        return False
    os.remove(path)
    logger.debug("Removed product image %s", reference)
    return True


def resolve_image(value, upload_folder: str, previous: str | None = None) -> str | None:
    """
    Turn the `image` field of a product payload into the stored reference.

    - data URL: stored as a new file, the previous file is removed
    - None / "": image cleared, the previous file is removed
    - anything else: kept as given (existing file name or external URL)
    """
    if is_data_url(value):
        reference = save_data_url(value, upload_folder)
        delete_image(previous, upload_folder)
        return reference

    if not value:
        delete_image(previous, upload_folder)
        return None

    if value != previous:
        delete_image(previous, upload_folder)
    return value
