from . import models
from famous_since.utils.logging import get_logger
from typing import List, Optional

log = get_logger(__name__)

def get_previews(product_type_id: Optional[int] = None) -> List[models.Product]:
    """Products newest first, each with ``variants`` attached for listing pages."""
    if product_type_id is None:
        products = models.Product.get(order_by="created_at DESC, id DESC")
    else:
        products = models.Product.get(product_type_id=product_type_id, order_by="created_at DESC, id DESC")
    for product in products:
        product.variants = product.get_variants()
    return products
