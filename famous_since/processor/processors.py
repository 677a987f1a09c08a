import io
import os
from typing import Dict, Any, Tuple

from PIL import Image as PilImage, UnidentifiedImageError

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from famous_since.utils.exceptions import ValidationError
from famous_since.utils.logging import get_logger

log = get_logger(__name__)

MAX_SIZE = 1000

PIL_FORMATS = {"jpg": "JPEG", "jpeg": "JPEG", "png": "PNG", "webp": "WEBP", "gif": "GIF"}


def _save_kwargs(ext: str) -> Dict[str, Any]:
    """Format-specific options (compression/quality)"""
    save_kwargs: Dict[str, Any] = {}
    if ext in {'jpg', 'jpeg'}:
        save_kwargs['quality'] = 85
        save_kwargs['optimize'] = True
    elif ext == 'png':
        save_kwargs['optimize'] = True
        save_kwargs['compress_level'] = 6
    elif ext == 'webp':
        save_kwargs['quality'] = 80
    elif ext == 'gif':
        save_kwargs['optimize'] = True
    return save_kwargs


def prepare_image(file: FileStorage) -> Tuple[bytes, str]:
    """
    Validate an uploaded image, shrink it to fit within 1000x1000 and
    recompress it. Returns the new bytes and a safe filename.
    """
    original_filename = secure_filename(file.filename or "")
    ext = os.path.splitext(original_filename)[1].lower().lstrip('.')

    allowed_extensions = current_app.config.get("IMAGE_EXTENSIONS", {'png', 'jpg', 'jpeg', 'gif', 'webp'})
    if not ext or ext not in allowed_extensions:
        raise ValidationError(f"Invalid file extension: {ext}. Allowed: {', '.join(sorted(allowed_extensions))}")

    try:
        img = PilImage.open(file.stream)
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("Image processing failed: file is not a readable image") from e

    if img.width > MAX_SIZE or img.height > MAX_SIZE:
        ratio = min(MAX_SIZE / img.width, MAX_SIZE / img.height)
        new_size = (int(img.width * ratio), int(img.height * ratio))
        img = img.resize(new_size, PilImage.Resampling.LANCZOS)

    if PIL_FORMATS[ext] == "JPEG" and img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    buffer = io.BytesIO()
    img.save(buffer, format=PIL_FORMATS[ext], **_save_kwargs(ext))
    log.debug("Prepared %s (%dx%d, %d bytes)", original_filename, img.width, img.height, buffer.tell())
    return buffer.getvalue(), original_filename
