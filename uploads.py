"""
Product photo storage on local disk, served back under /images.
"""
import logging
import os
import shutil
import time

from fastapi import UploadFile

from errors import UploadError

logger = logging.getLogger(__name__)

FIELD_NAME = "product"
# raster formats only
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".avif"}


def ensure_upload_dir(path: str) -> str:
    # fatal at startup if this fails
    os.makedirs(path, exist_ok=True)
    return path


def store_upload(upload_dir: str, file: UploadFile) -> str:
    if file is None or not file.filename:
        raise UploadError("No file uploaded")
    ext = os.path.splitext(os.path.basename(file.filename))[1].lower()
    if ext not in IMAGE_EXTENSIONS:
        raise UploadError(f"Unsupported image type: {ext or '(none)'}")
    filename = f"{FIELD_NAME}_{int(time.time() * 1000)}{ext}"
    destination = os.path.join(upload_dir, filename)
    with open(destination, "wb") as out:
        shutil.copyfileobj(file.file, out)
    if os.path.getsize(destination) == 0:
        os.remove(destination)
        raise UploadError("Uploaded file is empty")
    logger.info("Stored upload %s", filename)
    return filename
