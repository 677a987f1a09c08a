"""
Stripe Connect onboarding for the store owner's payout account.
"""
from typing import Any, Dict, List

from flask import current_app

from famous_since.addons.payments.stripe import account_ready, functions as stripe_functions
from famous_since.database import db
from famous_since.models import models
from famous_since.utils.exceptions import ConflictError, NotFoundError, PaymentError, ValidationError
from famous_since.utils.logging import get_logger

log = get_logger(__name__)

BUSINESS_TYPES = ("individual", "company", "non_profit", "government_entity")


def _urls() -> Dict[str, str]:
    base = current_app.config.get("BASE_URL", "").rstrip("/")
    return {
        "refresh_url": f"{base}/admin/stripe/refresh",
        "return_url": f"{base}/admin/stripe/return",
    }


def create_account(email: str, business_name: str, business_type: str) -> Dict[str, Any]:
    if not (email and business_name and business_type):
        raise ValidationError("Missing required fields")
    if business_type not in BUSINESS_TYPES:
        raise ValidationError(f"Unknown business type: {business_type}")
    if models.StripeConnectAccount.get_one(email=email):
        raise ConflictError("Connect account already exists")

    account = stripe_functions.create_account(email, business_name, business_type)
    try:
        models.StripeConnectAccount.new(
            account_id=account["id"],
            email=email,
            business_name=business_name,
            business_type=business_type,
            onboarding_complete=False,
        )
    except (*db.IntegrityError, *db.OperationalError) as e:
        log.error("Storing Connect account %s failed, removing it from Stripe: %s", account["id"], e)
        stripe_functions.delete_account(account["id"])
        raise PaymentError("Error storing Connect account") from e

    link = stripe_functions.create_account_link(account["id"], **_urls())
    log.info("Connect account %s created for %s", account["id"], email)
    return {"accountId": account["id"], "url": link["url"]}


def create_account_link(account_id: str) -> str:
    if not account_id:
        raise ValidationError("Account ID is required")
    return stripe_functions.create_account_link(account_id, **_urls())["url"]


def check_status(account_id: str | None = None) -> Dict[str, Any]:
    """Re-read the account from Stripe and store whether onboarding finished."""
    row = (
        models.StripeConnectAccount.get_one(account_id=account_id)
        if account_id else models.StripeConnectAccount.current()
    )
    if row is None:
        raise NotFoundError("No Stripe account found")
    account = stripe_functions.retrieve_account(row.account_id)
    complete = account_ready(account)
    if bool(row.onboarding_complete) != complete:
        row.onboarding_complete = complete
        row.update("onboarding_complete")
    return {
        "accountId": row.account_id,
        "onboardingComplete": complete,
        "chargesEnabled": bool(account.get("charges_enabled")),
        "payoutsEnabled": bool(account.get("payouts_enabled")),
        "detailsSubmitted": bool(account.get("details_submitted")),
    }


def delete_account() -> str:
    row = models.StripeConnectAccount.current()
    if row is None:
        raise NotFoundError("No Stripe account found")
    with db.connection() as (conn, cur):
        cur.execute(db.sql("UPDATE product_table SET stripe_account_id = NULL WHERE stripe_account_id = ?"),
                    (row.account_id,))
        cur.execute(db.sql("UPDATE product_type_table SET stripe_account_id = NULL WHERE stripe_account_id = ?"),
                    (row.account_id,))
    try:
        stripe_functions.delete_account(row.account_id)
    except PaymentError as e:
        # Standard accounts can refuse deletion.
        log.warning("Stripe refused to delete %s: %s", row.account_id, e)
    row.delete()
    log.info("Connect account %s removed", row.account_id)
    return row.account_id


def _set_owner_account(account_id: str | None) -> None:
    with db.connection() as (conn, cur):
        cur.execute(db.sql("UPDATE product_table SET stripe_account_id = ?"), (account_id,))
        cur.execute(db.sql("UPDATE product_type_table SET stripe_account_id = ?"), (account_id,))


def update_owner_account(account_id: str) -> None:
    if not account_id:
        raise ValidationError("Account ID is required")
    _set_owner_account(account_id)
    log.info("All products now pay out to %s", account_id)


def clear_owner_account() -> None:
    _set_owner_account(None)
    log.info("Cleared payout account from all products")


def connected_accounts() -> List[Dict[str, Any]]:
    """Accounts able to take charges and pay out."""
    return [
        {
            "id": account["id"],
            "email": account.get("email"),
            "business_name": (account.get("business_profile") or {}).get("name"),
            "charges_enabled": account.get("charges_enabled"),
            "payouts_enabled": account.get("payouts_enabled"),
        }
        for account in stripe_functions.list_accounts()
        if account.get("charges_enabled") and account.get("payouts_enabled")
    ]
