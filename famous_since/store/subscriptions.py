"""
Mirror of the hosting subscription, kept current by Stripe webhooks.
Only subscriptions on the hosting price are tracked.
"""
from typing import Any, Callable, Dict, Optional

from flask import current_app

from famous_since.addons.payments.stripe import functions as stripe_functions
from famous_since.database import db
from famous_since.models import models
from famous_since.utils.helpers import from_unix
from famous_since.utils.logging import get_logger

log = get_logger(__name__)


def _items(subscription: Any) -> list:
    return (subscription.get("items") or {}).get("data") or []


def is_hosting(subscription: Any) -> bool:
    price_id = current_app.config.get("HOSTING_PRICE_ID")
    return any((item.get("price") or {}).get("id") == price_id for item in _items(subscription))


def _period(subscription: Any, field: str) -> Optional[str]:
    # Newer API versions moved the billing period onto the subscription items.
    value = subscription.get(field)
    if value is None and _items(subscription):
        value = _items(subscription)[0].get(field)
    return from_unix(value)


def upsert_subscription(subscription: Any) -> models.Subscription:
    items = _items(subscription)
    values = {
        "stripe_customer_id": subscription.get("customer"),
        "price_id": (items[0].get("price") or {}).get("id") if items else None,
        "status": subscription.get("status"),
        "current_period_start": _period(subscription, "current_period_start"),
        "current_period_end": _period(subscription, "current_period_end"),
        "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
    }
    existing = models.Subscription.get_one(stripe_subscription_id=subscription["id"])
    if existing is None:
        try:
            return models.Subscription.new(stripe_subscription_id=subscription["id"], **values)
        except db.IntegrityError as e:
            if not db.is_duplicate(e, "stripe_subscription_id"):
                raise
            existing = models.Subscription.get_one(stripe_subscription_id=subscription["id"])
    for key, value in values.items():
        setattr(existing, key, value)
    existing.update(*values.keys())
    return existing


def set_status(subscription_id: str, status: str) -> bool:
    row = models.Subscription.get_one(stripe_subscription_id=subscription_id)
    if row is None:
        log.warning("No subscription %s to mark %s", subscription_id, status)
        return False
    row.status = status
    row.update("status")
    return True


def _invoice_subscription_id(invoice: Any) -> Optional[str]:
    subscription_id = invoice.get("subscription")
    if subscription_id:
        return subscription_id
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return details.get("subscription")


def _on_subscription_change(subscription: Any) -> None:
    if is_hosting(subscription):
        upsert_subscription(subscription)
        log.info("Subscription %s is %s", subscription["id"], subscription.get("status"))


def _on_subscription_deleted(subscription: Any) -> None:
    if is_hosting(subscription):
        set_status(subscription["id"], "canceled")


def _invoice_handler(status: str) -> Callable[[Any], None]:
    def handle(invoice: Any) -> None:
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id:
            return
        subscription = stripe_functions.retrieve_subscription(subscription_id)
        if is_hosting(subscription):
            set_status(subscription_id, status)
    return handle


HANDLERS: Dict[str, Callable[[Any], None]] = {
    "customer.subscription.created": _on_subscription_change,
    "customer.subscription.updated": _on_subscription_change,
    "customer.subscription.deleted": _on_subscription_deleted,
    "invoice.payment_succeeded": _invoice_handler("active"),
    "invoice.payment_failed": _invoice_handler("past_due"),
}


def handle_event(event: Any) -> bool:
    """Apply a verified webhook event. Returns False for event types we ignore."""
    handler = HANDLERS.get(event["type"])
    if handler is None:
        log.info("Unhandled event type: %s", event["type"])
        return False
    handler(event["data"]["object"])
    return True
