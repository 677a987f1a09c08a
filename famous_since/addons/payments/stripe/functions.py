import stripe
from typing import Any, Dict, List, Optional

from flask import current_app

from famous_since.utils.exceptions import PaymentError, ValidationError
from famous_since.utils.logging import get_logger

log = get_logger(__name__)


def _configure() -> None:
    stripe.api_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not stripe.api_key:
        raise PaymentError("Stripe is not configured")


def _call(action: str, fn, *args, **kwargs) -> Any:
    """Run a Stripe SDK call and turn its errors into PaymentError."""
    _configure()
    try:
        return fn(*args, **kwargs)
    except stripe.StripeError as e:
        message = getattr(e, "user_message", None) or str(e)
        log.error("Stripe %s failed: %s", action, message)
        raise PaymentError(message, action=action) from e


# ----------------------------------------------------------------------
# Customers & payments
# ----------------------------------------------------------------------
def create_customer(email: str, name: str) -> Any:
    return _call("create customer", stripe.Customer.create, email=email, name=name)


def create_payment_intent(
    amount: int,
    customer_id: Optional[str],
    metadata: Dict[str, str],
    destination: Optional[str] = None,
    application_fee_amount: Optional[int] = None,
    receipt_email: Optional[str] = None,
) -> Any:
    params: Dict[str, Any] = {
        "amount": amount,
        "currency": "usd",
        "automatic_payment_methods": {"enabled": True},
        "metadata": metadata,
    }
    if customer_id:
        params["customer"] = customer_id
    if receipt_email:
        params["receipt_email"] = receipt_email
    if destination:
        params["transfer_data"] = {"destination": destination}
        if application_fee_amount:
            params["application_fee_amount"] = application_fee_amount
    return _call("create payment intent", stripe.PaymentIntent.create, **params)


def retrieve_payment_intent(payment_intent_id: str) -> Any:
    return _call("retrieve payment intent", stripe.PaymentIntent.retrieve, payment_intent_id)


def create_subscription(customer_id: str, price_id: str) -> Any:
    return _call(
        "create subscription",
        stripe.Subscription.create,
        customer=customer_id,
        items=[{"price": price_id}],
        payment_behavior="default_incomplete",
        payment_settings={"save_default_payment_method": "on_subscription"},
        expand=["latest_invoice.payment_intent"],
    )


def retrieve_subscription(subscription_id: str) -> Any:
    return _call("retrieve subscription", stripe.Subscription.retrieve, subscription_id)


def create_subscription_session(price_id: str, success_url: str, cancel_url: str,
                                customer_email: Optional[str] = None) -> Any:
    params: Dict[str, Any] = {
        "mode": "subscription",
        "line_items": [{"price": price_id, "quantity": 1}],
        "success_url": success_url,
        "cancel_url": cancel_url,
    }
    if customer_email:
        params["customer_email"] = customer_email
    return _call("create checkout session", stripe.checkout.Session.create, **params)


# ----------------------------------------------------------------------
# Connect
# ----------------------------------------------------------------------
def create_account(email: str, business_name: str, business_type: str) -> Any:
    return _call(
        "create account",
        stripe.Account.create,
        type="standard",
        email=email,
        business_type=business_type,
        business_profile={"name": business_name},
    )


def create_account_link(account_id: str, refresh_url: str, return_url: str) -> Any:
    return _call(
        "create account link",
        stripe.AccountLink.create,
        account=account_id,
        refresh_url=refresh_url,
        return_url=return_url,
        type="account_onboarding",
    )


def retrieve_account(account_id: str) -> Any:
    return _call("retrieve account", stripe.Account.retrieve, account_id)


def delete_account(account_id: str) -> Any:
    return _call("delete account", stripe.Account.delete, account_id)


def list_accounts(limit: int = 100) -> List[Any]:
    accounts = _call("list accounts", stripe.Account.list, limit=limit)
    return list(accounts.auto_paging_iter())


def account_ready(account: Any) -> bool:
    return bool(account.get("charges_enabled") and account.get("payouts_enabled")
                and account.get("details_submitted"))


# ----------------------------------------------------------------------
# Webhooks
# ----------------------------------------------------------------------
def construct_event(payload: bytes, signature: Optional[str]) -> Any:
    secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not secret:
        raise PaymentError("Webhook secret is not configured")
    try:
        return stripe.Webhook.construct_event(payload, signature or "", secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        log.warning("Rejected webhook: %s", e)
        raise ValidationError("Invalid webhook signature") from e
