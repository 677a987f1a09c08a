from .functions import upload_image, check_image, UPLOAD_FOLDERS

__all__ = ["upload_image", "check_image", "UPLOAD_FOLDERS"]
