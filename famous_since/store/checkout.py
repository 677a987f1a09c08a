"""
Three-step checkout: contact + shipping address, shipping method, billing +
payment. Totals are computed here and re-computed server side before any
charge is created.
"""
import json
from dataclasses import asdict, dataclass, field, fields
from decimal import Decimal
from typing import Any, Dict, Iterable, List, MutableMapping, Optional

from flask import current_app

from famous_since.addons.payments.stripe import functions as stripe_functions
from famous_since.database import db
from famous_since.models import models
from famous_since.utils.exceptions import PaymentError, ValidationError
from famous_since.utils.helpers import money, to_cents
from famous_since.utils.logging import get_logger

from .cart import Cart, CartItem

log = get_logger(__name__)

CHECKOUT_KEY = "checkout"

SHIPPING_RATES = {"standard": Decimal("10.00"), "express": Decimal("20.00")}
TAX_RATE = Decimal("0.09")
DISCOUNT_CODES = ("SAVE10", "FREESHIP")

COUNTRY_CODES = {
    "United States": "US",
    "Canada": "CA",
    "United Kingdom": "GB",
    "Egypt": "EG",
}

REQUIRED_SHIPPING_FIELDS = ("email", "full_name", "street_address", "city", "state", "country", "zip_code")
REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields."

STEP_CONTACT, STEP_SHIPPING, STEP_PAYMENT = 1, 2, 3


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal
    invalid_coupon: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {k: float(v) for k, v in asdict(self).items() if k != "invalid_coupon"}
        data["invalid_coupon"] = self.invalid_coupon
        return data


def shipping_cost(items: Iterable[CartItem], method: str) -> Decimal:
    if method not in SHIPPING_RATES:
        raise ValidationError(f"Unknown shipping method: {method}")
    if any(item.free_shipping for item in items):
        return Decimal("0.00")
    return SHIPPING_RATES[method]


def compute_totals(items: List[CartItem], shipping_method: str = "standard",
                   discount_code: Optional[str] = None) -> Totals:
    subtotal = sum((item.line_total for item in items), Decimal("0.00"))
    tax = Decimal("0.00") if any(item.no_tax for item in items) else money(subtotal * TAX_RATE)
    shipping = shipping_cost(items, shipping_method)

    code = (discount_code or "").strip().upper()
    discount = Decimal("0.00")
    invalid = False
    if code == "SAVE10":
        discount = money(subtotal * Decimal("0.10"))
    elif code == "FREESHIP":
        discount = shipping
    elif code:
        invalid = True

    total = money(subtotal + tax + shipping - discount)
    return Totals(money(subtotal), tax, shipping, discount, total, invalid)


@dataclass
class Address:
    full_name: str = ""
    street_address: str = ""
    apartment: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    zip_code: str = ""

    def for_stripe(self) -> Dict[str, Any]:
        return {
            "name": self.full_name,
            "address": {
                "line1": self.street_address,
                "line2": self.apartment or None,
                "city": self.city,
                "state": self.state,
                "country": COUNTRY_CODES.get(self.country, self.country),
                "postal_code": self.zip_code,
            },
        }


@dataclass
class CheckoutState:
    step: int = STEP_CONTACT
    email: str = ""
    shipping: Address = field(default_factory=Address)
    shipping_method: str = "standard"
    same_as_shipping: bool = True
    billing: Address = field(default_factory=Address)
    discount_code: str = ""
    invalid_coupon: bool = False
    customer_id: Optional[str] = None

    # ------------------------------------------------------------------
    # session boundary
    # ------------------------------------------------------------------
    @classmethod
    def load(cls, session: MutableMapping[str, Any]) -> "CheckoutState":
        raw = session.get(CHECKOUT_KEY) or {}
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in raw.items() if k in known}
        data["shipping"] = Address(**raw.get("shipping", {}))
        data["billing"] = Address(**raw.get("billing", {}))
        return cls(**data)

    def save(self, session: MutableMapping[str, Any]) -> None:
        session[CHECKOUT_KEY] = asdict(self)
        session.modified = True  # type: ignore[attr-defined]

    @staticmethod
    def reset(session: MutableMapping[str, Any]) -> None:
        session.pop(CHECKOUT_KEY, None)

    # ------------------------------------------------------------------
    # steps
    # ------------------------------------------------------------------
    def submit_contact(self, data: Dict[str, Any]) -> None:
        if any(not str(data.get(name) or "").strip() for name in REQUIRED_SHIPPING_FIELDS):
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)
        self.email = data["email"].strip()
        self.shipping = Address(**{
            name: str(data.get(name) or "").strip() for name in (f.name for f in fields(Address))
        })
        self.step = STEP_SHIPPING

    def submit_shipping(self, method: str) -> None:
        if self.step < STEP_SHIPPING:
            raise ValidationError("Complete your contact details first.")
        if method not in SHIPPING_RATES:
            raise ValidationError(f"Unknown shipping method: {method}")
        self.shipping_method = method
        if not self.customer_id:
            customer = stripe_functions.create_customer(self.email, self.shipping.full_name)
            self.customer_id = customer["id"]
        self.step = STEP_PAYMENT

    def submit_billing(self, same_as_shipping: bool, data: Optional[Dict[str, Any]] = None) -> None:
        self.same_as_shipping = same_as_shipping
        if same_as_shipping:
            self.billing = Address(**asdict(self.shipping))
            return
        data = data or {}
        required = ("full_name", "street_address", "city", "state", "country", "zip_code")
        if any(not str(data.get(name) or "").strip() for name in required):
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)
        self.billing = Address(**{
            name: str(data.get(name) or "").strip() for name in (f.name for f in fields(Address))
        })

    def apply_discount(self, code: str, items: List[CartItem]) -> Totals:
        """Invalid codes set the flag and leave the current discount untouched."""
        totals = compute_totals(items, self.shipping_method, code)
        if totals.invalid_coupon:
            self.invalid_coupon = True
            return compute_totals(items, self.shipping_method, self.discount_code)
        self.discount_code = code.strip().upper()
        self.invalid_coupon = False
        return totals

    def back(self) -> None:
        self.step = max(STEP_CONTACT, self.step - 1)

    def totals(self, items: List[CartItem]) -> Totals:
        return compute_totals(items, self.shipping_method, self.discount_code)


# ----------------------------------------------------------------------
# payment intent
# ----------------------------------------------------------------------
def _order_items_metadata(items: List[CartItem]) -> str:
    compact = [
        {
            "id": item.product_id,
            "variant": item.variant_id,
            "name": item.name,
            "qty": item.quantity,
            "price": float(money(item.price)),
            "size": item.size,
            "color": item.color,
        }
        for item in items
    ]
    # Stripe metadata values are limited to 500 characters.
    return json.dumps(compact, separators=(",", ":"))[:500]


def verify_items(items: List[CartItem]) -> Optional[str]:
    """Check variants and stock; return the single connected account to pay, if any."""
    accounts = set()
    for item in items:
        if item.is_subscription:
            continue
        if item.is_custom or item.product_id == "custom":
            product_type = models.ProductType.get_by_id(item.product_type_id)
            if product_type is None:
                raise ValidationError(f"Product not found: {item.name}")
            accounts.add(product_type.stripe_account_id)
            continue

        variant = models.ProductVariant.get_by_id(item.variant_id)
        if variant is None or str(variant.product_id) != str(item.product_id):
            raise ValidationError(f"Product variant not found: {item.name}")
        if int(variant.stock_quantity or 0) < item.quantity:
            raise ValidationError(f"Insufficient stock for {item.name}")
        product = variant.get_product()
        accounts.add(product.payment_account() if product else None)

    accounts.discard(None)
    accounts.discard("")
    if len(accounts) > 1:
        raise PaymentError("Cannot process items from different Stripe accounts in one transaction")
    return accounts.pop() if accounts else None


def start_subscription(cart: Cart, state: CheckoutState) -> Dict[str, Any]:
    """
    Subscriptions are billed by Stripe through the first invoice, so no tax,
    shipping or discount applies. The returned dict is shaped like an intent.
    """
    if len(cart.items) > 1:
        raise ValidationError("Subscriptions must be checked out on their own")
    item = cart.items[0]
    if not item.price_id:
        raise ValidationError(f"{item.name} has no subscription price")
    if not state.customer_id:
        customer = stripe_functions.create_customer(state.email, state.shipping.full_name)
        state.customer_id = customer["id"]

    subscription = stripe_functions.create_subscription(state.customer_id, item.price_id)
    invoice = subscription.get("latest_invoice") or {}
    intent = invoice.get("payment_intent") or {}
    if not intent.get("client_secret"):
        log.error("Subscription %s came back without a client secret", subscription["id"])
        raise PaymentError("Failed to get client secret from subscription")
    log.info("Subscription %s started for %s (%s)", subscription["id"], state.customer_id, item.price_id)
    return {
        "id": intent.get("id") or subscription["id"],
        "client_secret": intent["client_secret"],
        "amount": intent.get("amount", to_cents(item.line_total)),
        "subscription_id": subscription["id"],
    }


def create_payment_intent(cart: Cart, state: CheckoutState) -> Any:
    if not cart.items:
        raise ValidationError("Your cart is empty")
    if cart.has_subscription:
        return start_subscription(cart, state)
    destination = verify_items(cart.items)
    totals = state.totals(cart.items)
    amount = to_cents(totals.total)

    fee = None
    if destination:
        fee = amount * int(current_app.config.get("PLATFORM_FEE_PERCENT", 2)) // 100

    metadata = {
        "order_items": _order_items_metadata(cart.items),
        "total_items": str(cart.count),
        "order_description": ", ".join(f"{item.quantity}x {item.name}" for item in cart.items)[:500],
        "shipping_method": state.shipping_method,
        "discount_code": state.discount_code,
    }
    intent = stripe_functions.create_payment_intent(
        amount=amount,
        customer_id=state.customer_id,
        metadata=metadata,
        destination=destination,
        application_fee_amount=fee,
        receipt_email=state.email or None,
    )
    log.info("Payment intent %s created for %s cents (destination=%s)", intent["id"], amount, destination)
    return intent


# ----------------------------------------------------------------------
# order recording
# ----------------------------------------------------------------------
def record_order(payment_intent_id: str, cart: Cart, state: CheckoutState) -> models.Order:
    """Store the purchase once per payment intent; repeat calls return the stored order."""
    existing = models.Order.get_one(payment_intent_id=payment_intent_id)
    if existing is not None:
        return existing

    totals = state.totals(cart.items)
    try:
        with db.connection() as (conn, cur):
            order = models.Order.new(
                _cursor=cur,
                payment_intent_id=payment_intent_id,
                customer_email=state.email,
                customer_name=state.shipping.full_name,
                shipping_address=asdict(state.shipping),
                billing_address=asdict(state.billing),
                shipping_method=state.shipping_method,
                subtotal=float(totals.subtotal),
                tax=float(totals.tax),
                shipping_cost=float(totals.shipping),
                discount=float(totals.discount),
                total_amount=float(totals.total),
                status="completed",
            )
            for item in cart.items:
                real = not (item.is_custom or item.product_id == "custom" or item.is_subscription)
                models.OrderItem.new(
                    _cursor=cur,
                    order_id=order.id,
                    product_id=int(item.product_id) if real else None,
                    variant_id=int(item.variant_id) if real and item.variant_id else None,
                    name=item.name,
                    size=item.size,
                    color=item.color,
                    quantity=item.quantity,
                    unit_price=float(money(item.price)),
                    customization=item.customization or {},
                )
                if real and item.variant_id:
                    cur.execute(
                        db.sql("UPDATE product_variant_table SET stock_quantity = stock_quantity - ? WHERE id = ?"),
                        (item.quantity, int(item.variant_id)),
                    )
    except db.IntegrityError as e:
        if not db.is_duplicate(e, "payment_intent_id"):
            raise
        return models.Order.get_one(payment_intent_id=payment_intent_id)
    log.info("Order %s recorded for %s", order.id, payment_intent_id)
    return order
