"""Garment types: price, payout account, model photos and the size ladder."""
from typing import Any, Dict, Optional

from famous_since.database import db
from famous_since.models import models
from famous_since.utils.exceptions import ConflictError, NotFoundError, ValidationError
from famous_since.utils.logging import get_logger

log = get_logger(__name__)


def get_or_404(type_id: Any) -> models.ProductType:
    product_type = models.ProductType.get_by_id(type_id)
    if product_type is None:
        raise NotFoundError("Product type not found")
    return product_type


def save_type(data: Dict[str, Any], product_type: Optional[models.ProductType] = None) -> models.ProductType:
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Name is required")
    try:
        base_price = float(data.get("base_price"))
    except (TypeError, ValueError) as e:
        raise ValidationError("Price must be a number") from e

    values = {
        "name": name,
        "base_price": base_price,
        "active": bool(data.get("active")),
        "is_branded_item": bool(data.get("is_branded_item")),
        "stripe_account_id": data.get("stripe_account_id") or None,
    }
    if product_type is None:
        product_type = models.ProductType.new(is_default=False, **values)
    else:
        for key, value in values.items():
            setattr(product_type, key, value)
        product_type.update(*values.keys())

    if data.get("is_default"):
        product_type.set_default()
    log.info("Saved product type %s", product_type.id)
    return product_type


def delete_type(type_id: Any) -> None:
    product_type = get_or_404(type_id)
    if product_type.is_default:
        raise ValidationError("Choose another default type before deleting this one")
    product_type.delete()
    log.info("Deleted product type %s", product_type.id)


def add_image(product_type: models.ProductType, image_path: str, vertical_offset: int = 0,
              is_default_model: bool = False) -> models.ProductTypeImage:
    image = models.ProductTypeImage.new(
        product_type_id=product_type.id,
        image_path=image_path,
        vertical_offset=int(vertical_offset or 0),
        is_default_model=False,
    )
    if is_default_model or len(product_type.get_images()) == 1:
        image.make_default()
    return image


def update_image(image_id: Any, vertical_offset: int, is_default_model: bool) -> models.ProductTypeImage:
    image = models.ProductTypeImage.get_by_id(image_id)
    if image is None:
        raise NotFoundError("Image not found")
    image.vertical_offset = int(vertical_offset or 0)
    image.update("vertical_offset")
    if is_default_model:
        image.make_default()
    return image


def remove_image(image_id: Any) -> None:
    image = models.ProductTypeImage.get_by_id(image_id)
    if image is None:
        raise NotFoundError("Image not found")
    image.delete()


def add_size(product_type: models.ProductType, size: str) -> models.ProductSize:
    size = (size or "").strip().upper()
    if not size:
        raise ValidationError("Size is required")
    try:
        return product_type.add_size(size)
    except db.IntegrityError as e:
        raise ConflictError(f"{size} is already a size for {product_type.name}") from e


def remove_size(size_id: Any) -> None:
    size = models.ProductSize.get_by_id(size_id)
    if size is None:
        raise NotFoundError("Size not found")
    size.delete()
