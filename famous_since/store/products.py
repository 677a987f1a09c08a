"""
Products: the customer's "famous for" text becomes a product the first time
anyone buys it. Later buyers of the same text get the existing product.
"""
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import requests
from flask import current_app

from famous_since.addons.storage.cloudinary import upload_image
from famous_since.database import db
from famous_since.database.defaults import DEFAULT_COLOR, DEFAULT_SIZES
from famous_since.models import models
from famous_since.utils.exceptions import (
    DuplicateProductError,
    ForbiddenWordError,
    NotFoundError,
    ValidationError,
)
from famous_since.utils.logging import get_logger

from . import reconcile
from .mockup import famous_preset, render_mockup, to_data_url

log = get_logger(__name__)

CUSTOM_PRODUCT_NAME = "Famous Since T-Shirt"
CUSTOM_BASE_PRICE = 28.00
CUSTOM_APPLICATION = "Screen Press"
CUSTOM_GARMENT = "T-Shirt"
DEFAULT_STOCK = 100
MAX_DESCRIPTION_LENGTH = 60

_NON_WORD = re.compile(r"[^\w\s]", re.UNICODE)
_SPACES = re.compile(r"\s+")

DesignFn = Callable[[str, Optional[models.ProductType]], str]


def sanitize_description(text: Optional[str]) -> str:
    cleaned = _NON_WORD.sub("", text or "")
    return _SPACES.sub(" ", cleaned).strip().upper()


def check_forbidden_words(phrase: str) -> None:
    words = models.ForbiddenWord.words()
    for token in phrase.split():
        if token.upper() in words:
            raise ForbiddenWordError(word=token.upper())


def find_existing_product(description: str) -> Optional[models.Product]:
    return models.Product.get_one(description=sanitize_description(description))


def default_model(product_type: Optional[models.ProductType]) -> Optional[models.ProductTypeImage]:
    if product_type is None:
        return None
    images = product_type.get_images()
    return next((img for img in images if img.is_default_model), images[0] if images else None)


def render_design(description: str, product_type: Optional[models.ProductType],
                  model: Optional[models.ProductTypeImage] = None) -> bytes:
    """PNG of ``model`` (default: the type's default model) wearing the text."""
    model = model or default_model(product_type)
    font_path = current_app.config.get("MOCKUP_FONT_PATH")
    return render_mockup(
        model.image_path if model else None,
        famous_preset(description, font_path),
        vertical_offset=int(model.vertical_offset or 0) if model else 0,
        font_path=font_path,
        static_folder=current_app.static_folder,
    )


def preview_data_url(description: str, product_type: Optional[models.ProductType]) -> Optional[str]:
    """Inline preview for the page; a garment photo that can't be fetched gives no preview."""
    try:
        return to_data_url(render_design(description, product_type))
    except (requests.RequestException, OSError, ValidationError) as e:
        log.warning("Preview for %r failed: %s", description, e)
        return None


def design_image(description: str, product_type: Optional[models.ProductType]) -> str:
    """Render the shirt with the customer's text and upload it; returns the image URL."""
    model = default_model(product_type)
    png = render_design(description, product_type, model)
    return upload_image(
        png,
        "design.png",
        "tshirt-design",
        context={"bottomLine": description, "modelId": model.id if model else None},
    )


def type_sizes(product_type: Optional[models.ProductType]) -> List[str]:
    if product_type is None:
        return list(DEFAULT_SIZES)
    sizes = [size.size for size in product_type.get_sizes()]
    return sizes or list(DEFAULT_SIZES)


def create_custom_product(
    description: str,
    product_type: Optional[models.ProductType] = None,
    design: Optional[DesignFn] = None,
) -> Tuple[models.Product, bool]:
    """
    Return ``(product, created)``. An existing product with the same sanitized
    description is returned untouched; otherwise the design is rendered,
    uploaded and the product plus one variant per size is inserted in one
    transaction.
    """
    description = sanitize_description(description)
    if not description:
        raise ValidationError("Tell us what you're famous for first.")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Keep it under {MAX_DESCRIPTION_LENGTH} characters.")
    check_forbidden_words(description)

    existing = find_existing_product(description)
    if existing is not None:
        log.info("Reusing product %s for %r", existing.id, description)
        return existing, False

    product_type = product_type or models.ProductType.default()
    price = float(product_type.base_price) if product_type and product_type.base_price else CUSTOM_BASE_PRICE
    image_url = (design or design_image)(description, product_type)

    try:
        with db.connection() as (conn, cur):
            product = models.Product.new(
                _cursor=cur,
                name=CUSTOM_PRODUCT_NAME,
                description=description,
                base_price=price,
                front_image_url=image_url,
                application=CUSTOM_APPLICATION,
                garment=CUSTOM_GARMENT,
                product_type_id=product_type.id if product_type else None,
            )
            for size in type_sizes(product_type):
                models.ProductVariant.new(
                    _cursor=cur,
                    product_id=product.id,
                    size=size,
                    color=DEFAULT_COLOR,
                    price=price,
                    stock_quantity=DEFAULT_STOCK,
                    front_image_url=image_url,
                )
    except db.IntegrityError as e:
        if not db.is_duplicate(e, "description"):
            raise
        # Someone else bought the same text between our check and insert.
        existing = find_existing_product(description)
        if existing is None:
            raise DuplicateProductError() from e
        return existing, False

    log.info("Created product %s for %r", product.id, description)
    return product, True


def variant_for(product: models.Product, size: str, color: str = DEFAULT_COLOR) -> models.ProductVariant:
    variant = models.ProductVariant.get_one(product_id=product.id, size=size, color=color)
    if variant is None:
        raise NotFoundError(f"{size} / {color} is not available for this product")
    return variant


# ----------------------------------------------------------------------
# admin editing
# ----------------------------------------------------------------------
def _description_taken(description: str, exclude_id: Optional[int]) -> bool:
    if exclude_id is None:
        row = db.execute("SELECT id FROM product_table WHERE description = ?", (description,), fetch="one")
    else:
        row = db.execute(
            "SELECT id FROM product_table WHERE description = ? AND id != ?",
            (description, exclude_id),
            fetch="one",
        )
    return row is not None


def _clean_list(values: Iterable[str], upper: bool = False) -> List[str]:
    seen: List[str] = []
    for value in values:
        value = (value or "").strip()
        if upper:
            value = value.upper()
        if value and value not in seen:
            seen.append(value)
    return seen


def sync_variants(cur: Any, product: models.Product, sizes: List[str], colors: List[str]) -> reconcile.Plan:
    """Make the variant rows match the sizes x colors matrix."""
    want = {
        "price": float(product.base_price or 0),
        "front_image_url": product.front_image_url,
        "back_image_url": product.back_image_url,
    }
    desired = {(size, color): dict(want) for size in sizes for color in colors}
    actual = {(v.size, v.color): v for v in product.get_variants()}
    plan = reconcile.plan(desired, actual, reconcile.fields_differ(*want))

    for (size, color), values in plan.insert:
        models.ProductVariant.new(
            _cursor=cur, product_id=product.id, size=size, color=color,
            stock_quantity=DEFAULT_STOCK, **values,
        )
    for variant, values in plan.update:
        for key, value in values.items():
            setattr(variant, key, value)
        variant.update(*values.keys(), _cursor=cur)
    for variant in plan.delete:
        variant.delete(_cursor=cur)
    return plan


def save_product(data: Dict[str, Any], product: Optional[models.Product] = None) -> models.Product:
    """Create or update a product from the admin form and reconcile its variants."""
    name = (data.get("name") or "").strip()
    description = sanitize_description(data.get("description"))
    if not name or not description:
        raise ValidationError("Name and description are required")
    try:
        base_price = float(data.get("base_price"))
    except (TypeError, ValueError) as e:
        raise ValidationError("Price must be a number") from e
    if base_price < 0:
        raise ValidationError("Price cannot be negative")

    check_forbidden_words(description)
    if _description_taken(description, product.id if product else None):
        raise DuplicateProductError()

    sizes = _clean_list(data.get("sizes") or DEFAULT_SIZES, upper=True)
    colors = _clean_list(data.get("colors") or [DEFAULT_COLOR])
    values = {
        "name": name,
        "description": description,
        "base_price": base_price,
        "front_image_url": data.get("front_image_url") or None,
        "back_image_url": data.get("back_image_url") or None,
        "product_type_id": data.get("product_type_id") or None,
        "stripe_account_id": data.get("stripe_account_id") or None,
        "application": data.get("application") or CUSTOM_APPLICATION,
        "garment": data.get("garment") or CUSTOM_GARMENT,
    }

    try:
        with db.connection() as (conn, cur):
            if product is None:
                product = models.Product.new(_cursor=cur, **values)
            else:
                for key, value in values.items():
                    setattr(product, key, value)
                product.update(*values.keys(), _cursor=cur)
            plan = sync_variants(cur, product, sizes, colors)
    except db.IntegrityError as e:
        if db.is_duplicate(e, "description"):
            raise DuplicateProductError() from e
        raise
    log.info(
        "Saved product %s (+%d ~%d -%d variants)",
        product.id, len(plan.insert), len(plan.update), len(plan.delete),
    )
    return product


def delete_product(product_id: Any) -> None:
    product = models.Product.get_by_id(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    with db.connection() as (conn, cur):
        cur.execute(db.sql("DELETE FROM product_variant_table WHERE product_id = ?"), (product.id,))
        cur.execute(db.sql("UPDATE homepage_display_table SET product_id = NULL WHERE product_id = ?"), (product.id,))
        product.delete(_cursor=cur)
    log.info("Deleted product %s", product.id)
