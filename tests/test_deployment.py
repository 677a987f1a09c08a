import json
from datetime import datetime, timedelta, timezone

import pytest

from famous_since.models import models
from famous_since.store import deployment
from famous_since.utils.exceptions import DeploymentBlockedError, NotFoundError, ValidationError
from famous_since.utils.extensions import redis_client
from famous_since.utils.helpers import timestamp
from famous_since.utils.site_config import CACHE_KEY, get_config

from conftest import HOSTING_PRICE


def active_hosting(days=30):
    return models.Subscription.new(
        stripe_subscription_id="sub_hosting",
        price_id=HOSTING_PRICE,
        status="active",
        current_period_end=timestamp(datetime.now(timezone.utc) + timedelta(days=days)),
    )


def ready_account(stripe_stub):
    account = stripe_stub.create_account("owner@example.com", "Owner", "individual")
    stripe_stub.ready(account["id"])
    return models.StripeConnectAccount.new(
        account_id=account["id"], email="owner@example.com", business_name="Owner",
        business_type="individual", onboarding_complete=True,
    )


class TestRequirements:
    def test_nothing_set_up(self, ctx):
        status = deployment.deployment_status()
        assert status["canDeploy"] is False
        assert status["requirements"]["hosting"]["message"] == "Hosting subscription required"
        assert status["requirements"]["stripe"]["message"] == "Stripe Connect account setup required"

    def test_expired_hosting_is_inactive(self, ctx):
        active_hosting(days=-1)
        assert not deployment.hosting_active()

    def test_account_must_be_ready_at_stripe(self, ctx, stripe_stub):
        row = ready_account(stripe_stub)
        stripe_stub.accounts[row.account_id]["payouts_enabled"] = False
        assert not deployment.stripe_setup()

    def test_all_requirements_met(self, ctx, stripe_stub):
        active_hosting()
        ready_account(stripe_stub)
        status = deployment.deployment_status()
        assert status["hostingActive"] and status["stripeSetup"] and status["canDeploy"]


class TestSiteConfig:
    def test_deploy_refused_without_requirements(self, ctx):
        with pytest.raises(DeploymentBlockedError) as err:
            deployment.set_site_config("deploy_site", True)
        assert err.value.status_code == 409
        assert "hosting" in err.value.payload["requirements"]
        assert not deployment.is_deployed()

    def test_deploy_when_ready(self, ctx, stripe_stub):
        active_hosting()
        ready_account(stripe_stub)
        message = deployment.set_site_config("deploy_site", True)
        assert message == "deploy_site enabled successfully"
        assert deployment.is_deployed()

    def test_turning_off_needs_no_requirements(self, ctx, deployed):
        deployment.set_site_config("deploy_site", False)
        assert not deployment.is_deployed()

    def test_value_must_be_boolean(self, ctx):
        with pytest.raises(ValidationError):
            deployment.set_site_config("deploy_site", "yes")

    def test_unknown_key(self, ctx):
        with pytest.raises(NotFoundError):
            deployment.set_site_config("dark_mode", True)

    def test_config_read_falls_back_to_database(self, ctx):
        redis_client.client.delete(CACHE_KEY)
        assert get_config("deploy_site") is False
        assert json.loads(redis_client.client.hget(CACHE_KEY, "deploy_site")) is False


class TestPathRules:
    @pytest.mark.parametrize("path", ["/api/waitlist", "/static/css/site.css", "/images/shirt.PNG", "/favicon.ico"])
    def test_always_allowed(self, path):
        assert deployment.always_allowed(path)

    @pytest.mark.parametrize("path", ["/coming-soon", "/user/login", "/admin", "/admin/orders", "/about/team"])
    def test_allowed_while_undeployed(self, path):
        assert deployment.allowed_while_undeployed(path)

    @pytest.mark.parametrize("path", ["/", "/shop", "/administrator", "/user/register", "/checkout"])
    def test_blocked_while_undeployed(self, path):
        assert not deployment.allowed_while_undeployed(path)


class TestGate:
    @pytest.mark.parametrize("path", ["/", "/shop", "/stay-famous", "/cart"])
    def test_shoppers_see_coming_soon(self, client, path):
        response = client.get(path)
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/coming-soon")

    def test_coming_soon_page(self, client):
        response = client.get("/coming-soon")
        assert response.status_code == 200
        assert b"waitlist" in response.data.lower()

    def test_admin_still_reachable(self, client):
        response = client.get("/admin/")
        assert response.status_code == 302
        assert "/user/login" in response.headers["Location"]

    def test_api_and_static_pass(self, client):
        assert client.get("/api/waitlist").status_code == 200
        assert client.get("/static/css/site.css").status_code == 200

    def test_deployed_site_is_open(self, client, deployed):
        assert client.get("/").status_code == 200
        response = client.get("/coming-soon")
        assert response.status_code == 302
