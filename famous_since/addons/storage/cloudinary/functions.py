import io
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from flask import current_app
from PIL import Image as PilImage, UnidentifiedImageError

from famous_since.utils.exceptions import UploadError
from famous_since.utils.logging import get_logger

log = get_logger(__name__)

UPLOAD_FOLDERS = {
    "tshirt-design": "tshirt-designs",
    "product-type": "product-types",
}


def check_image(data: bytes) -> str:
    """Return the image format or raise UploadError for empty / non-image payloads."""
    if not data:
        raise UploadError("Image is empty")
    try:
        with PilImage.open(io.BytesIO(data)) as img:
            img.verify()
            return (img.format or "").lower()
    except (UnidentifiedImageError, OSError) as e:
        raise UploadError("Uploaded file is not an image") from e


def configure() -> None:
    """Point the SDK at the credentials of the current app."""
    config = current_app.config
    if not (config.get("CLOUDINARY_CLOUD_NAME") and config.get("CLOUDINARY_API_KEY")
            and config.get("CLOUDINARY_API_SECRET")):
        raise UploadError("Image storage is not configured")
    cloudinary.config(
        cloud_name=config["CLOUDINARY_CLOUD_NAME"],
        api_key=config["CLOUDINARY_API_KEY"],
        api_secret=config["CLOUDINARY_API_SECRET"],
        secure=True,
    )


def upload_image(
    data: bytes,
    filename: str,
    upload_type: str,
    context: Optional[Dict[str, Any]] = None,
) -> str:
    """Upload ``data`` and return its ``secure_url``. Failures raise UploadError; no retry."""
    if upload_type not in UPLOAD_FOLDERS:
        raise UploadError(f"Unknown upload type: {upload_type}", upload_type=upload_type)
    check_image(data)
    configure()

    options: Dict[str, Any] = {"folder": UPLOAD_FOLDERS[upload_type], "resource_type": "image"}
    if context:
        options["context"] = {key: value for key, value in context.items() if value}
        options["tags"] = [upload_type]

    try:
        result = cloudinary.uploader.upload(io.BytesIO(data), filename=filename, **options)
    except cloudinary.exceptions.Error as e:
        raise UploadError(f"Upload failed: {e}") from e

    secure_url = (result or {}).get("secure_url")
    if not secure_url:
        raise UploadError("Upload response did not include a URL", response=result)
    log.info("Uploaded %s to %s", filename, secure_url)
    return secure_url
