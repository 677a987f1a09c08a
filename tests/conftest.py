"""Shared fixtures: a fresh SQLite file and fake Redis per test, Stripe and image storage stubbed."""
from types import SimpleNamespace

import fakeredis
import pytest
import redis

from famous_since import create_app
from famous_since.addons.payments.stripe import functions as stripe_functions
from famous_since.models import models
from famous_since.store import products
from famous_since.utils.site_config import invalidate_config_cache

ADMIN_EMAIL = "admin@famoussince.com"
ADMIN_PASSWORD = "FamousSince"
HOSTING_PRICE = "price_hosting_test"


class FakeSession(dict):
    """Stand-in for flask.session outside a request."""
    modified = False


class StripeStub:
    """Records calls and returns plain dicts shaped like the Stripe objects we read."""

    def __init__(self):
        self.calls = []
        self.intents = {}
        self.accounts = {}
        self.subscriptions = {}
        self.deleted = []

    def create_customer(self, email, name):
        self.calls.append(("create_customer", email, name))
        return {"id": "cus_test"}

    def create_payment_intent(self, amount, customer_id, metadata, destination=None,
                              application_fee_amount=None, receipt_email=None):
        intent = {
            "id": f"pi_test_{len(self.intents) + 1}",
            "client_secret": "pi_secret",
            "amount": amount,
            "status": "requires_payment_method",
            "customer": customer_id,
            "metadata": metadata,
            "destination": destination,
            "application_fee_amount": application_fee_amount,
        }
        self.intents[intent["id"]] = intent
        return intent

    def retrieve_payment_intent(self, payment_intent_id):
        return self.intents.get(payment_intent_id, {"id": payment_intent_id, "status": "succeeded"})

    def create_subscription(self, customer_id, price_id):
        self.calls.append(("create_subscription", customer_id, price_id))
        intent = {"id": "pi_sub", "client_secret": "sub_secret", "amount": 5000}
        return {"id": "sub_new", "latest_invoice": {"payment_intent": intent}}

    def retrieve_subscription(self, subscription_id):
        return self.subscriptions[subscription_id]

    def create_subscription_session(self, price_id, success_url, cancel_url, customer_email=None):
        self.calls.append(("create_subscription_session", price_id, customer_email))
        return {"id": "cs_test", "url": "https://checkout.stripe.test/session"}

    def create_account(self, email, business_name, business_type):
        account = {"id": f"acct_{len(self.accounts) + 1}", "email": email,
                   "business_profile": {"name": business_name},
                   "charges_enabled": False, "payouts_enabled": False, "details_submitted": False}
        self.accounts[account["id"]] = account
        return account

    def create_account_link(self, account_id, refresh_url, return_url):
        return {"url": f"https://connect.stripe.test/{account_id}"}

    def retrieve_account(self, account_id):
        return self.accounts[account_id]

    def delete_account(self, account_id):
        self.deleted.append(account_id)
        return {"id": account_id, "deleted": True}

    def list_accounts(self, limit=100):
        return list(self.accounts.values())

    def ready(self, account_id):
        self.accounts[account_id].update(charges_enabled=True, payouts_enabled=True, details_submitted=True)


STUBBED = (
    "create_customer",
    "create_payment_intent",
    "retrieve_payment_intent",
    "create_subscription",
    "retrieve_subscription",
    "create_subscription_session",
    "create_account",
    "create_account_link",
    "retrieve_account",
    "delete_account",
    "list_accounts",
)


@pytest.fixture
def stripe_stub(monkeypatch):
    stub = StripeStub()
    for name in STUBBED:
        monkeypatch.setattr(stripe_functions, name, getattr(stub, name))
    return stub


@pytest.fixture
def uploads(monkeypatch):
    """Designs are 'uploaded' to fake URLs; previews are skipped."""
    stored = []

    def fake_design(description, product_type):
        stored.append(description)
        return f"https://res.cloudinary.test/designs/{len(stored)}.png"

    monkeypatch.setattr(products, "design_image", fake_design)
    monkeypatch.setattr(products, "preview_data_url", lambda description, product_type: None)
    return stored


@pytest.fixture
def app(tmp_path, monkeypatch, stripe_stub, uploads):
    server = fakeredis.FakeServer()
    monkeypatch.setattr(redis, "from_url", lambda url, **kwargs: fakeredis.FakeRedis(server=server, **kwargs))
    app = create_app("testing", test_config={
        "DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "HOSTING_PRICE_ID": HOSTING_PRICE,
        "BASE_URL": "http://localhost",
    })
    yield app


@pytest.fixture
def ctx(app):
    """App context for calling store functions directly. Not for use with the test client."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def deployed(app):
    row = models.SiteConfig.get_one(key="deploy_site")
    row.value = True
    row.update("value")
    invalidate_config_cache("deploy_site")
    return row


@pytest.fixture
def admin_client(client):
    response = client.post("/user/login", data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 302
    return client


@pytest.fixture
def default_type(app):
    return models.ProductType.default()


@pytest.fixture
def make_product(app):
    def make(description="BEST DAD EVER", sizes=("S", "M", "L"), colors=("Black",), price=30.0, **extra):
        return products.save_product({
            "name": "Famous Since T-Shirt",
            "description": description,
            "base_price": price,
            "sizes": list(sizes),
            "colors": list(colors),
            **extra,
        })
    return make


def item(**kwargs):
    """Minimal object with an ``id`` for pure selection tests."""
    return SimpleNamespace(**kwargs)
