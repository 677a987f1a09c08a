"""
Session cart. Loading never writes back; every mutation goes through ``save``.
"""
from dataclasses import asdict, dataclass, field, fields
from decimal import Decimal
from typing import Any, Dict, List, MutableMapping, Optional
from urllib.parse import quote

from famous_since.utils.helpers import money
from famous_since.utils.logging import get_logger

log = get_logger(__name__)

CART_KEY = "cart"
CUSTOM_LINE_KEY = "customLine"
CUSTOM_PREFIX = "custom-"


@dataclass
class CartItem:
    product_id: Any
    name: str
    price: float
    quantity: int = 1
    variant_id: Any = None
    id: str = ""
    description: str = ""
    image: str = ""
    size: str = ""
    color: str = ""
    product_type_id: Optional[int] = None
    free_shipping: bool = False
    no_tax: bool = False
    is_subscription: bool = False
    price_id: Optional[str] = None
    customization: Optional[Dict[str, str]] = None

    @property
    def is_custom(self) -> bool:
        return str(self.id).startswith(CUSTOM_PREFIX)

    @property
    def line_total(self) -> Decimal:
        return money(self.price) * self.quantity

    def key(self) -> str:
        if self.is_custom:
            return self.id
        return f"{self.product_id}-{self.size}-{self.color}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartItem":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def custom_cart_item(product_type: Any, size: str, color: str, top_line: str, bottom_line: str,
                     price: float, image: str = "") -> CartItem:
    """Cart line for a personalised shirt that has no product row yet."""
    return CartItem(
        id=f"{CUSTOM_PREFIX}{product_type.id}-{size}-{color}-{quote(bottom_line, safe='')}",
        product_id="custom",
        variant_id=f"{size}-{color}",
        name=f"Famous Since {product_type.name}",
        description=bottom_line,
        price=price,
        image=image,
        size=size,
        color=color,
        product_type_id=product_type.id,
        customization={"topLine": top_line, "bottomLine": bottom_line},
    )


@dataclass
class Cart:
    items: List[CartItem] = field(default_factory=list)

    def find(self, item_id: str) -> Optional[CartItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def add(self, item: CartItem) -> CartItem:
        if item.quantity < 1:
            raise ValueError("quantity must be at least 1")
        item.id = item.key()
        existing = self.find(item.id)
        if existing is None:
            self.items.append(item)
            return item
        if existing.is_subscription:
            return existing
        existing.quantity += item.quantity
        return existing

    def remove(self, item_id: str) -> None:
        self.items = [item for item in self.items if item.id != item_id]

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity < 1:
            self.remove(item_id)
            return
        item = self.find(item_id)
        if item is not None:
            item.quantity = quantity

    def clear(self) -> None:
        self.items = []

    @property
    def total_amount(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0.00"))

    @property
    def count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def has_subscription(self) -> bool:
        return any(item.is_subscription for item in self.items)

    def to_json(self) -> List[Dict[str, Any]]:
        return [asdict(item) for item in self.items]

    @classmethod
    def from_json(cls, data: Any) -> "Cart":
        items = []
        for entry in data or []:
            try:
                items.append(CartItem.from_dict(entry))
            except (TypeError, AttributeError) as e:
                log.warning("Dropping unreadable cart entry %r: %s", entry, e)
        return cls(items=items)

    @classmethod
    def load(cls, session: MutableMapping[str, Any]) -> "Cart":
        return cls.from_json(session.get(CART_KEY))

    def save(self, session: MutableMapping[str, Any]) -> None:
        session[CART_KEY] = self.to_json()
        session.modified = True  # type: ignore[attr-defined]
