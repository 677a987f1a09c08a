"""
Deployment gate. While ``deploy_site`` is off, shoppers only see the Coming
Soon page. Turning it on needs a paid hosting subscription and a working
Stripe Connect account.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import redirect, request, url_for
from redis.exceptions import RedisError

from famous_since.addons.payments.stripe import account_ready, functions as stripe_functions
from famous_since.database import db
from famous_since.models import models
from famous_since.utils.exceptions import DeploymentBlockedError, NotFoundError, PaymentError, ValidationError
from famous_since.utils.helpers import to_datetime
from famous_since.utils.logging import get_logger
from famous_since.utils.site_config import get_config, invalidate_config_cache

log = get_logger(__name__)

DEPLOY_KEY = "deploy_site"

ALWAYS_ALLOWED_PREFIXES = ("/api/", "/static/", "/favicon.ico")
MEDIA_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".webp", ".mp4", ".webm", ".ogg")
UNDEPLOYED_ALLOWED = ("/coming-soon", "/user/login", "/user/logout", "/admin")
MARKETING_PREFIXES = ("/about/", "/contact/", "/faq/", "/images/", "/img/")


# ----------------------------------------------------------------------
# requirements
# ----------------------------------------------------------------------
def hosting_active(now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    for subscription in models.Subscription.get(status="active"):
        period_end = to_datetime(subscription.current_period_end)
        if period_end is not None and period_end > now:
            return True
    return False


def stripe_setup() -> bool:
    account = models.StripeConnectAccount.current()
    if account is None or not account.account_id or not account.onboarding_complete:
        return False
    try:
        return account_ready(stripe_functions.retrieve_account(account.account_id))
    except PaymentError as e:
        log.warning("Could not confirm Stripe account %s: %s", account.account_id, e)
        return False


def deployment_status() -> Dict[str, Any]:
    hosting = hosting_active()
    stripe_ok = stripe_setup()
    return {
        "hostingActive": hosting,
        "stripeSetup": stripe_ok,
        "canDeploy": hosting and stripe_ok,
        "requirements": {
            "hosting": {
                "active": hosting,
                "message": "Hosting subscription is active" if hosting else "Hosting subscription required",
            },
            "stripe": {
                "setup": stripe_ok,
                "message": "Stripe Connect account is fully configured"
                if stripe_ok else "Stripe Connect account setup required",
            },
        },
    }


# ----------------------------------------------------------------------
# site config
# ----------------------------------------------------------------------
def list_site_config() -> list[Dict[str, Any]]:
    return [row.to_dict() for row in models.SiteConfig.get(order_by="key")]


def set_site_config(key: str, value: Any) -> str:
    if not key or not isinstance(value, bool):
        raise ValidationError("Invalid request body")
    row = models.SiteConfig.get_one(key=key)
    if row is None:
        raise NotFoundError(f"Unknown setting: {key}")
    if not row.editable:
        raise ValidationError(f"{key} cannot be changed")

    if key == DEPLOY_KEY and value:
        status = deployment_status()
        if not status["canDeploy"]:
            raise DeploymentBlockedError(requirements=status["requirements"])

    row.value = value
    row.update("value")
    invalidate_config_cache(key)
    log.info("Site config %s set to %s", key, value)
    return f"{key} {'enabled' if value else 'disabled'} successfully"


def is_deployed() -> bool:
    """Errors reading the flag keep the site in Coming Soon mode."""
    try:
        return bool(get_config(DEPLOY_KEY, False))
    except (RedisError, *db.OperationalError, *db.ProgrammingError) as e:
        log.error("Could not read %s: %s", DEPLOY_KEY, e)
        return False


# ----------------------------------------------------------------------
# request gate
# ----------------------------------------------------------------------
def always_allowed(path: str) -> bool:
    return path.startswith(ALWAYS_ALLOWED_PREFIXES) or path.lower().endswith(MEDIA_EXTENSIONS)


def allowed_while_undeployed(path: str) -> bool:
    for prefix in UNDEPLOYED_ALLOWED:
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return path.startswith(MARKETING_PREFIXES)


def gate():
    """``before_request`` hook."""
    path = request.path
    if always_allowed(path) or is_deployed():
        return None
    if allowed_while_undeployed(path):
        return None
    return redirect(url_for("main.coming_soon"))
