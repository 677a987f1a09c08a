"""
Homepage merchandising: four slots, each pinned to a product by the admin or
left empty to be filled at random when the page renders.
"""
import random
from typing import Any, Dict, List, Optional, Sequence

from famous_since.database import db
from famous_since.database.defaults import HOMEPAGE_SLOTS
from famous_since.models import models
from famous_since.utils.helpers import timestamp
from famous_since.utils.logging import get_logger

from . import reconcile

log = get_logger(__name__)

# A product reused after the catalogue runs out must not appear in either of
# the two slots just before it.
REPEAT_WINDOW = 2


def normalize_slots(slots: Sequence[Optional[Any]]) -> List[Optional[Any]]:
    slots = list(slots)[:HOMEPAGE_SLOTS]
    return slots + [None] * (HOMEPAGE_SLOTS - len(slots))


def select_display(
    slots: Sequence[Optional[Any]],
    products: Sequence[Any],
    rng: Optional[random.Random] = None,
) -> List[Optional[Any]]:
    """
    ``slots`` holds pinned product ids (or None) by position. Returns one
    product (or None when there are no products at all) per position.
    """
    rng = rng or random.Random()
    slots = normalize_slots(slots)
    if not products:
        return [None] * HOMEPAGE_SLOTS

    by_id = {str(product.id): product for product in products}
    result: List[Optional[Any]] = [None] * HOMEPAGE_SLOTS
    last_placed: Dict[str, int] = {}

    for index, pinned in enumerate(slots):
        product = by_id.get(str(pinned)) if pinned is not None else None
        if product is not None:
            result[index] = product
            last_placed[str(product.id)] = index

    for index in range(HOMEPAGE_SLOTS):
        if result[index] is not None:
            continue
        unused = [p for p in products if str(p.id) not in last_placed]
        if unused:
            choice = rng.choice(unused)
        else:
            recent = {str(p.id) for p in result[max(0, index - REPEAT_WINDOW):index] if p is not None}
            ordered = sorted(products, key=lambda p: last_placed.get(str(p.id), -1))
            choice = next((p for p in ordered if str(p.id) not in recent), ordered[0])
        result[index] = choice
        last_placed[str(choice.id)] = index
    return result


def load_slots() -> List[Optional[int]]:
    rows = models.HomepageDisplay.get(order_by="position")
    slots: List[Optional[int]] = [None] * HOMEPAGE_SLOTS
    for row in rows:
        if 0 <= int(row.position) < HOMEPAGE_SLOTS:
            slots[int(row.position)] = row.product_id
    return slots


def homepage_products(rng: Optional[random.Random] = None) -> List[Optional[models.Product]]:
    return select_display(load_slots(), models.Product.get(order_by="id"), rng)


def save_display(selections: Sequence[Optional[Any]]) -> reconcile.Plan:
    """Store the admin's pinned products by updating only what changed."""
    desired = {
        position: {"product_id": int(value) if value not in (None, "", "random") else None}
        for position, value in enumerate(normalize_slots(selections))
    }
    actual = {int(row.position): row for row in models.HomepageDisplay.get()}
    plan = reconcile.plan(desired, actual, reconcile.fields_differ("product_id"))

    with db.connection() as (conn, cur):
        for row in plan.delete:
            row.delete(_cursor=cur)
        for row, values in plan.update:
            row.product_id = values["product_id"]
            row.update("product_id", _cursor=cur)
        for position, values in plan.insert:
            models.HomepageDisplay.new(_cursor=cur, position=position, updated_at=timestamp(), **values)
    log.info("Homepage display saved (%d changed)", len(plan.insert) + len(plan.update) + len(plan.delete))
    return plan
