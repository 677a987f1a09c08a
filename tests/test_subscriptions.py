import json

import pytest

from famous_since.addons.payments.stripe import functions as stripe_functions
from famous_since.models import models
from famous_since.store import subscriptions

from conftest import HOSTING_PRICE

PERIOD_START = 1767225600  # 2026-01-01
PERIOD_END = 1769904000    # 2026-02-01


def subscription(status="active", price=HOSTING_PRICE, **extra):
    data = {
        "id": "sub_1",
        "customer": "cus_1",
        "status": status,
        "cancel_at_period_end": False,
        "current_period_start": PERIOD_START,
        "current_period_end": PERIOD_END,
        "items": {"data": [{"price": {"id": price}}]},
    }
    data.update(extra)
    return data


def event(kind, obj):
    return {"id": "evt_1", "type": kind, "data": {"object": obj}}


class TestHandleEvent:
    def test_created_is_stored(self, ctx):
        assert subscriptions.handle_event(event("customer.subscription.created", subscription()))
        row = models.Subscription.get_one(stripe_subscription_id="sub_1")
        assert row.status == "active"
        assert row.price_id == HOSTING_PRICE
        assert row.current_period_end == "2026-02-01 00:00:00"

    def test_updated_overwrites(self, ctx):
        subscriptions.handle_event(event("customer.subscription.created", subscription()))
        subscriptions.handle_event(event("customer.subscription.updated",
                                         subscription(status="past_due", cancel_at_period_end=True)))
        rows = models.Subscription.get(stripe_subscription_id="sub_1")
        assert len(rows) == 1
        assert rows[0].status == "past_due"
        assert rows[0].cancel_at_period_end is True

    def test_period_on_items(self, ctx):
        data = subscription(current_period_end=None)
        data["items"]["data"][0]["current_period_end"] = PERIOD_END
        subscriptions.handle_event(event("customer.subscription.created", data))
        assert models.Subscription.get_one(stripe_subscription_id="sub_1").current_period_end == "2026-02-01 00:00:00"

    def test_deleted_marks_canceled(self, ctx):
        subscriptions.handle_event(event("customer.subscription.created", subscription()))
        subscriptions.handle_event(event("customer.subscription.deleted", subscription(status="canceled")))
        assert models.Subscription.get_one(stripe_subscription_id="sub_1").status == "canceled"

    def test_other_prices_are_ignored(self, ctx):
        subscriptions.handle_event(event("customer.subscription.created", subscription(price="price_other")))
        assert models.Subscription.count() == 0

    @pytest.mark.parametrize("kind, status", [
        ("invoice.payment_succeeded", "active"),
        ("invoice.payment_failed", "past_due"),
    ])
    def test_invoice_events(self, ctx, stripe_stub, kind, status):
        subscriptions.handle_event(event("customer.subscription.created", subscription(status="incomplete")))
        stripe_stub.subscriptions["sub_1"] = subscription()
        assert subscriptions.handle_event(event(kind, {"id": "in_1", "subscription": "sub_1"}))
        assert models.Subscription.get_one(stripe_subscription_id="sub_1").status == status

    def test_invoice_subscription_under_parent(self, ctx, stripe_stub):
        subscriptions.handle_event(event("customer.subscription.created", subscription(status="incomplete")))
        stripe_stub.subscriptions["sub_1"] = subscription()
        invoice = {"id": "in_1", "parent": {"subscription_details": {"subscription": "sub_1"}}}
        subscriptions.handle_event(event("invoice.payment_succeeded", invoice))
        assert models.Subscription.get_one(stripe_subscription_id="sub_1").status == "active"

    def test_unknown_event(self, ctx):
        assert subscriptions.handle_event(event("charge.refunded", {"id": "ch_1"})) is False


class TestWebhookRoute:
    def test_verified_event_is_applied(self, client, monkeypatch):
        received = []

        def construct(payload, signature):
            received.append(signature)
            return json.loads(payload)

        monkeypatch.setattr(stripe_functions, "construct_event", construct)
        body = json.dumps(event("customer.subscription.created", subscription()))
        response = client.post("/api/stripe/webhooks", data=body,
                               headers={"Stripe-Signature": "t=1,v1=abc"}, content_type="application/json")

        assert response.status_code == 200
        assert response.get_json() == {"received": True, "handled": True}
        assert received == ["t=1,v1=abc"]
        assert models.Subscription.count() == 1

    def test_bad_signature_is_rejected(self, client):
        body = json.dumps(event("customer.subscription.created", subscription()))
        response = client.post("/api/stripe/webhooks", data=body,
                               headers={"Stripe-Signature": "t=1,v1=forged"}, content_type="application/json")
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid webhook signature"
        assert models.Subscription.count() == 0
