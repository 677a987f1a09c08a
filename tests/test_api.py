import pytest

from famous_since.models import models
from famous_since.store import words

from conftest import HOSTING_PRICE


class TestPublicEndpoints:
    def test_fit_text_sanitizes(self, client, monkeypatch):
        from famous_since.blueprints.api import routes

        monkeypatch.setattr(routes, "pillow_measurer", lambda font_path=None: lambda text, size: len(text) * size * 0.5)
        data = client.post("/api/fit-text", json={"text": "rock & roll!"}).get_json()
        assert data == {"fontSize": 22, "shouldWrap": False, "text": "ROCK ROLL"}

    def test_exceptions_check(self, client):
        words.add_word("meanie")
        blocked = client.post("/api/exceptions/check", json={"text": "world's best meanie"}).get_json()
        assert blocked["allowed"] is False
        assert blocked["word"] == "MEANIE"

        allowed = client.post("/api/exceptions/check", json={"text": "world's best dad"}).get_json()
        assert allowed == {"allowed": True, "text": "WORLDS BEST DAD"}

    def test_check_role(self, client, admin_client):
        assert admin_client.get("/api/auth/check-role").get_json() == {"isAdmin": True}

    def test_check_role_anonymous(self, client):
        response = client.get("/api/auth/check-role")
        assert response.status_code == 401
        assert response.get_json() == {"error": "Unauthorized"}

    def test_verify_payment(self, client, stripe_stub):
        assert client.get("/api/verify-payment").status_code == 400
        assert client.get("/api/verify-payment?payment_intent=pi_x").get_json() == {
            "success": True, "status": "succeeded",
        }

    def test_payment_intent_needs_a_cart(self, client):
        response = client.post("/api/create-payment-intent", json={})
        assert response.status_code == 400
        assert response.get_json() == {"error": "Your cart is empty", "details": {}}

    def test_create_customer(self, client, stripe_stub):
        assert client.post("/api/create-customer", json={}).status_code == 400
        assert client.post("/api/create-customer", json={"email": "a@b.co"}).get_json() == {"customerId": "cus_test"}

    def test_create_subscription(self, client, stripe_stub):
        response = client.post("/api/create-subscription", json={"customerId": "cus_1", "priceId": HOSTING_PRICE})
        assert response.get_json() == {"subscriptionId": "sub_new", "clientSecret": "sub_secret"}
        assert client.post("/api/create-subscription", json={"customerId": "cus_1"}).status_code == 400

    def test_subscription_session(self, client, stripe_stub):
        assert client.post("/api/create-subscription-session", json={"email": "nope"}).status_code == 400
        response = client.post("/api/create-subscription-session", json={"email": "owner@example.com"})
        assert response.get_json() == {"sessionUrl": "https://checkout.stripe.test/session"}
        assert stripe_stub.calls[-1] == ("create_subscription_session", HOSTING_PRICE, "owner@example.com")


class TestAdminEndpoints:
    @pytest.mark.parametrize("method, path", [
        ("get", "/api/site-config"),
        ("post", "/api/site-config"),
        ("get", "/api/site-config/status"),
        ("get", "/api/waitlist/admin"),
        ("post", "/api/stripe/connect/create-account"),
        ("get", "/api/stripe/connected-accounts"),
        ("post", "/api/upload"),
    ])
    def test_anonymous_is_refused(self, client, method, path):
        response = getattr(client, method)(path, json={})
        assert response.status_code == 403
        assert response.get_json()["error"] == "Unauthorized"

    def test_site_config(self, admin_client):
        configs = admin_client.get("/api/site-config").get_json()["configs"]
        assert [c["key"] for c in configs] == ["deploy_site"]

        blocked = admin_client.post("/api/site-config", json={"key": "deploy_site", "value": True})
        assert blocked.status_code == 409
        body = blocked.get_json()
        assert body["error"] == "Cannot deploy site. Requirements not met."
        assert body["details"]["requirements"]["hosting"]["active"] is False

    def test_status(self, admin_client):
        status = admin_client.get("/api/site-config/status").get_json()
        assert status["canDeploy"] is False

    def test_connect_flow(self, admin_client, stripe_stub):
        created = admin_client.post("/api/stripe/connect/create-account", json={
            "email": "owner@example.com", "businessName": "Owner", "businessType": "individual",
        }).get_json()
        assert created["accountId"] == "acct_1"

        link = admin_client.post("/api/stripe/connect/create-account-link", json={"accountId": "acct_1"})
        assert link.get_json() == {"url": "https://connect.stripe.test/acct_1"}

        status = admin_client.get("/api/stripe/connect/check-status?accountId=acct_1").get_json()
        assert status["onboardingComplete"] is False

        deleted = admin_client.post("/api/stripe/connect/delete-account").get_json()
        assert deleted == {"success": True, "accountId": "acct_1"}
        assert models.StripeConnectAccount.count() == 0

    def test_upload(self, admin_client, monkeypatch):
        import io

        from PIL import Image

        from famous_since import processor

        uploaded = []
        monkeypatch.setattr(processor, "upload_image",
                            lambda data, filename, upload_type, context=None: uploaded.append(filename) or "https://img.test/x.png")
        buffer = io.BytesIO()
        Image.new("RGB", (1200, 600), "white").save(buffer, format="PNG")
        buffer.seek(0)

        response = admin_client.post("/api/upload", data={"file": (buffer, "model.png")},
                                     content_type="multipart/form-data")
        assert response.get_json() == {"url": "https://img.test/x.png"}
        assert uploaded == ["model.png"]
