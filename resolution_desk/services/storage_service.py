"""
Storage Service — attachment files and image compression.

Files land under ``UPLOAD_FOLDER/<folder>/<timestamp>_<random>.<ext>`` and are
served back through ``GET /api/v1/uploads/<path>`` (or any CDN configured via
``PUBLIC_FILES_BASE_URL``).

Images picked by users are downscaled so the longer side is at most
``MAX_IMAGE_DIMENSION`` px and re-encoded as JPEG at ``IMAGE_JPEG_QUALITY``.
"""

import base64
import binascii
import io
import logging
import os
import secrets
import time

from flask import current_app
from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from resolution_desk.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIMENSION = 1200
DEFAULT_JPEG_QUALITY = 60

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "bmp"}
ALLOWED_EXTENSIONS = IMAGE_EXTENSIONS | {"pdf"}


def _upload_root() -> str:
    return current_app.config["UPLOAD_FOLDER"]


def file_extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""


def is_image(file_name: str) -> bool:
    return file_extension(file_name) in IMAGE_EXTENSIONS


def public_url(relative_path: str) -> str:
    base = current_app.config.get("PUBLIC_FILES_BASE_URL") or "/api/v1/uploads"
    return f"{base.rstrip('/')}/{relative_path}"


def _decode_base64(data: str) -> bytes:
    # Data URLs ("data:image/png;base64,....") are accepted as-is.
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("image data is not valid base64",
                              details={"image": "invalid encoding"}) from exc


def compress_image(data, max_dimension: int | None = None, quality: int | None = None) -> bytes:
    """
    Downscale and re-encode an image as JPEG.

    Args:
        data: raw bytes, or a base64 string / data URL.
        max_dimension: longest side in px (default: MAX_IMAGE_DIMENSION).
        quality: JPEG quality 1-95 (default: IMAGE_JPEG_QUALITY).

    Returns:
        JPEG bytes.
    """
    if max_dimension is None:
        max_dimension = current_app.config.get("MAX_IMAGE_DIMENSION", DEFAULT_MAX_DIMENSION)
    if quality is None:
        quality = current_app.config.get("IMAGE_JPEG_QUALITY", DEFAULT_JPEG_QUALITY)

    raw = _decode_base64(data) if isinstance(data, str) else data
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError("file is not a readable image",
                              details={"image": "unreadable"}) from exc

    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    width, height = img.size
    if max(width, height) > max_dimension:
        scale = max_dimension / max(width, height)
        img = img.resize((max(1, round(width * scale)), max(1, round(height * scale))),
                         Image.LANCZOS)

    out = io.BytesIO()
    img.save(out, format="JPEG", quality=quality)
    logger.debug("Compressed image %dx%d → %dx%d (%d bytes)",
                 width, height, img.size[0], img.size[1], out.tell())
    return out.getvalue()


def upload_file(data: bytes, file_name: str, folder: str = "general") -> str:
    """Store ``data`` and return its public URL."""
    ext = file_extension(file_name)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"unsupported file type: .{ext or '?'}",
                              details={"file": "unsupported type"})
    folder = secure_filename(folder) or "general"
    name = f"{int(time.time() * 1000)}_{secrets.token_hex(4)}.{ext}"

    target_dir = os.path.join(_upload_root(), folder)
    os.makedirs(target_dir, exist_ok=True)
    with open(os.path.join(target_dir, name), "wb") as fh:
        fh.write(data)

    relative = f"{folder}/{name}"
    logger.info("Stored upload %s (%d bytes)", relative, len(data))
    return public_url(relative)

