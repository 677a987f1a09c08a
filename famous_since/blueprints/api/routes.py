"""
JSON endpoints used by the storefront scripts, the admin pages and Stripe.
Errors are raised as FamousSinceError and rendered as ``{"error", "details"}``.
"""
from functools import wraps
from typing import Any, Callable

from flask import current_app, jsonify, request, session, Response
from flask_login import current_user

from . import bp

from famous_since.addons.payments.stripe import functions as stripe_functions
from famous_since.models import models
from famous_since.store import checkout, connect, deployment, products, subscriptions, waitlist
from famous_since.store.cart import Cart
from famous_since.store.checkout import CheckoutState
from famous_since.store.text_fit import MAX_LINE_WIDTH, fit_text, pillow_measurer
from famous_since.utils.exceptions import AuthorizationError, FamousSinceError, ValidationError
from famous_since.utils.logging import get_logger

import famous_since.processor as processor

log = get_logger(__name__)


def admin_only(f: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(f)
    def decorated_view(*args: Any, **kwargs: Any) -> Any:
        if not current_user.is_authenticated or not current_user.is_admin:
            raise AuthorizationError("Unauthorized")
        return f(*args, **kwargs)
    return decorated_view


def _body() -> dict:
    return request.get_json(silent=True) or {}


# ----------------------------------------------------------------------
# Payments
# ----------------------------------------------------------------------
@bp.route("/create-customer", methods=["POST"])
def create_customer() -> Response:
    data = _body()
    if not data.get("email"):
        raise ValidationError("Email is required")
    customer = stripe_functions.create_customer(data["email"], data.get("name") or "")
    return jsonify(customerId=customer["id"])


@bp.route("/create-payment-intent", methods=["POST"])
def create_payment_intent() -> Response:
    """Charge for the session cart; amounts are recomputed here, never taken from the client."""
    cart = Cart.load(session)
    state = CheckoutState.load(session)
    intent = checkout.create_payment_intent(cart, state)
    return jsonify(
        clientSecret=intent["client_secret"],
        paymentIntentId=intent["id"],
        amount=intent["amount"],
    )


@bp.route("/create-subscription", methods=["POST"])
def create_subscription() -> Response:
    data = _body()
    customer_id, price_id = data.get("customerId"), data.get("priceId")
    if not customer_id or not price_id:
        raise ValidationError("Customer ID and Price ID are required", received=data)
    subscription = stripe_functions.create_subscription(customer_id, price_id)
    invoice = subscription.get("latest_invoice") or {}
    intent = invoice.get("payment_intent") or {}
    client_secret = intent.get("client_secret")
    if not client_secret:
        log.error("Subscription %s came back without a client secret", subscription["id"])
        raise FamousSinceError("Failed to get client secret from subscription")
    return jsonify(subscriptionId=subscription["id"], clientSecret=client_secret)


@bp.route("/create-subscription-session", methods=["POST"])
def create_subscription_session() -> Response:
    data = _body()
    email = (data.get("email") or "").strip()
    if not waitlist.EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email address")
    price_id = data.get("priceId") or current_app.config.get("HOSTING_PRICE_ID")
    if not price_id:
        raise ValidationError("Price ID is required")
    base = current_app.config.get("BASE_URL", "").rstrip("/")
    checkout_session = stripe_functions.create_subscription_session(
        price_id,
        success_url=f"{base}/admin/hosting?subscribed=1&session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base}/admin/hosting",
        customer_email=email,
    )
    return jsonify(sessionUrl=checkout_session["url"])


@bp.route("/verify-payment")
def verify_payment() -> Response | tuple[Response, int]:
    payment_intent_id = request.args.get("payment_intent")
    if not payment_intent_id:
        return jsonify(success=False, error="Payment intent ID is required"), 400
    intent = stripe_functions.retrieve_payment_intent(payment_intent_id)
    return jsonify(success=intent.get("status") == "succeeded", status=intent.get("status"))


# ----------------------------------------------------------------------
# Waitlist
# ----------------------------------------------------------------------
@bp.route("/waitlist", methods=["POST"])
def waitlist_join() -> tuple[Response, int]:
    data = _body()
    entry = waitlist.join(data.get("firstName"), data.get("lastName"), data.get("email"))
    return jsonify(message="Successfully joined the waitlist!", id=entry.id), 201


@bp.route("/waitlist", methods=["GET"])
def waitlist_count() -> Response:
    return jsonify(count=waitlist.total())


@bp.route("/waitlist/admin")
@admin_only
def waitlist_admin() -> Response:
    entries = [entry.to_dict() for entry in waitlist.entries()]
    return jsonify(entries=entries, total=len(entries))


# ----------------------------------------------------------------------
# Site config & deployment
# ----------------------------------------------------------------------
@bp.route("/site-config", methods=["GET"])
@admin_only
def site_config_list() -> Response:
    return jsonify(configs=deployment.list_site_config())


@bp.route("/site-config", methods=["POST"])
@admin_only
def site_config_update() -> Response:
    data = _body()
    message = deployment.set_site_config(data.get("key"), data.get("value"))
    return jsonify(success=True, message=message)


@bp.route("/site-config/status")
@admin_only
def site_config_status() -> Response:
    return jsonify(deployment.deployment_status())


# ----------------------------------------------------------------------
# Stripe Connect
# ----------------------------------------------------------------------
@bp.route("/stripe/connect/create-account", methods=["POST"])
@admin_only
def connect_create_account() -> Response:
    data = _body()
    result = connect.create_account(data.get("email"), data.get("businessName"), data.get("businessType"))
    return jsonify(result)


@bp.route("/stripe/connect/create-account-link", methods=["POST"])
@admin_only
def connect_create_account_link() -> Response:
    return jsonify(url=connect.create_account_link(_body().get("accountId")))


@bp.route("/stripe/connect/check-status", methods=["GET", "POST"])
@admin_only
def connect_check_status() -> Response:
    account_id = _body().get("accountId") if request.method == "POST" else request.args.get("accountId")
    return jsonify(connect.check_status(account_id))


@bp.route("/stripe/connect/delete-account", methods=["POST", "DELETE"])
@admin_only
def connect_delete_account() -> Response:
    account_id = connect.delete_account()
    return jsonify(success=True, accountId=account_id)


@bp.route("/stripe/connect/update-owner-account", methods=["POST"])
@admin_only
def connect_update_owner_account() -> Response:
    connect.update_owner_account(_body().get("accountId"))
    return jsonify(success=True)


@bp.route("/stripe/connect/clear-owner-account", methods=["POST"])
@admin_only
def connect_clear_owner_account() -> Response:
    connect.clear_owner_account()
    return jsonify(success=True)


@bp.route("/stripe/connected-accounts")
@admin_only
def connected_accounts() -> Response:
    return jsonify(accounts=connect.connected_accounts())


@bp.route("/stripe/webhooks", methods=["POST"])
def stripe_webhook() -> Response:
    event = stripe_functions.construct_event(request.get_data(), request.headers.get("Stripe-Signature"))
    handled = subscriptions.handle_event(event)
    return jsonify(received=True, handled=handled)


# ----------------------------------------------------------------------
# Uploads, design tools & auth
# ----------------------------------------------------------------------
@bp.route("/upload", methods=["POST"])
@admin_only
def upload() -> Response:
    file = request.files.get("file")
    if file is None or not file.filename:
        raise ValidationError("No file provided")
    upload_type = request.form.get("uploadType", "product-type")
    url = processor.upload_file(file, upload_type)
    return jsonify(url=url)


@bp.route("/fit-text", methods=["POST"])
def fit_text_endpoint() -> Response:
    text = products.sanitize_description(_body().get("text"))
    measure = pillow_measurer(current_app.config.get("MOCKUP_FONT_PATH") or None)
    return jsonify(fit_text(text, MAX_LINE_WIDTH, measure).to_dict())


@bp.route("/mockup", methods=["POST"])
def mockup() -> Response:
    data = _body()
    description = products.sanitize_description(data.get("text"))
    if not description:
        raise ValidationError("Text is required")
    products.check_forbidden_words(description)
    product_type = models.ProductType.get_by_id(data.get("productTypeId")) if data.get("productTypeId") \
        else models.ProductType.default()
    image = products.preview_data_url(description, product_type)
    if image is None:
        raise FamousSinceError("Could not render the preview")
    return jsonify(image=image)


@bp.route("/auth/check-role")
def check_role() -> Response | tuple[Response, int]:
    if not current_user.is_authenticated:
        return jsonify(error="Unauthorized"), 401
    return jsonify(isAdmin=current_user.is_admin)


@bp.route("/exceptions/check", methods=["POST"])
def exceptions_check() -> Response:
    """Tell the design page whether a phrase may be printed."""
    text = products.sanitize_description(_body().get("text"))
    try:
        products.check_forbidden_words(text)
    except FamousSinceError as e:
        return jsonify(allowed=False, message=e.message, word=e.payload.get("word"))
    return jsonify(allowed=True, text=text)
