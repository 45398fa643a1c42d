"""
Local disk storage for user uploads (avatars, covers, post images).

Files land in UPLOADS_DIR as `<ms-timestamp>-<random>.<ext>` and are served
by the app under /uploads.
"""

import io
import logging
import os
import secrets
import time
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile
from PIL import Image, UnidentifiedImageError

from config import settings

logger = logging.getLogger(__name__)

# content-type -> (extension, Pillow format)
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ("jpg", "JPEG"),
    "image/png": ("png", "PNG"),
    "image/webp": ("webp", "WEBP"),
    "image/gif": ("gif", "GIF"),
}
PUBLIC_PREFIX = "/uploads/"


def uploads_dir() -> Path:
    path = Path(settings.UPLOADS_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def generate_filename(ext: str) -> str:
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}.{ext}"


def _sniff_format(data: bytes) -> Optional[str]:
    """Return the Pillow format name if the bytes decode as an image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            return img.format
    except (UnidentifiedImageError, OSError, SyntaxError):
        return None


def save_image(upload: UploadFile) -> str:
    """Validate and persist an uploaded image; returns its public URL path.

    Raises HTTPException 400 for a wrong type, an oversized file or bytes
    that are not really an image.
    """
    if upload is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Only JPEG, PNG, WEBP or GIF images are allowed")

    data = upload.file.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(data) > settings.UPLOAD_MAX_BYTES:
        raise HTTPException(status_code=400, detail="File too large (max 5 MB)")
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")

    ext, expected = ALLOWED_IMAGE_TYPES[content_type]
    actual = _sniff_format(data)
    if actual is None or (actual != expected and not (expected == "JPEG" and actual == "MPO")):
        logger.warning("Rejected upload %r: declared %s, decoded as %s", upload.filename, content_type, actual)
        raise HTTPException(status_code=400, detail="File is not a valid image")

    name = generate_filename(ext)
    with open(uploads_dir() / name, "wb") as fh:
        fh.write(data)
    logger.info("Saved upload %s (%d bytes)", name, len(data))
    return PUBLIC_PREFIX + name


def delete_upload(url: Optional[str]) -> bool:
    """Remove a previously stored upload. Unknown or foreign URLs are ignored."""
    if not url or not url.startswith(PUBLIC_PREFIX):
        return False
    name = os.path.basename(url)
    path = uploads_dir() / name
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning("Upload already gone: %s", name)
        return False
    logger.info("Deleted upload %s", name)
    return True
