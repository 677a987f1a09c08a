from famous_since.addons.storage.cloudinary import upload_image

from famous_since.utils.logging import get_logger

from .processors import prepare_image

log = get_logger(__name__)


def upload_file(file, upload_type: str, context=None) -> str:
    """Resize/compress an uploaded file and push it to image storage."""
    data, filename = prepare_image(file)
    url = upload_image(data, filename, upload_type, context=context)
    log.info("Stored %s upload %s", upload_type, filename)
    return url
