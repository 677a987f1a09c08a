import pytest

from famous_since.models import models
from famous_since.store import connect
from famous_since.utils.exceptions import ConflictError, NotFoundError, ValidationError


class TestConnect:
    def test_create_account_stores_and_links(self, ctx, stripe_stub):
        result = connect.create_account("owner@example.com", "Owner Co", "company")
        assert result == {"accountId": "acct_1", "url": "https://connect.stripe.test/acct_1"}
        row = models.StripeConnectAccount.current()
        assert row.account_id == "acct_1"
        assert row.onboarding_complete is False

    def test_one_account_per_email(self, ctx, stripe_stub):
        connect.create_account("owner@example.com", "Owner Co", "company")
        with pytest.raises(ConflictError):
            connect.create_account("owner@example.com", "Owner Co", "company")

    @pytest.mark.parametrize("email, name, kind", [
        ("", "Owner", "company"),
        ("owner@example.com", "Owner", "partnership"),
    ])
    def test_invalid_input(self, ctx, email, name, kind):
        with pytest.raises(ValidationError):
            connect.create_account(email, name, kind)

    def test_check_status_records_onboarding(self, ctx, stripe_stub):
        connect.create_account("owner@example.com", "Owner Co", "company")
        assert connect.check_status()["onboardingComplete"] is False

        stripe_stub.ready("acct_1")
        status = connect.check_status("acct_1")
        assert status == {
            "accountId": "acct_1",
            "onboardingComplete": True,
            "chargesEnabled": True,
            "payoutsEnabled": True,
            "detailsSubmitted": True,
        }
        assert models.StripeConnectAccount.current().onboarding_complete is True

    def test_check_status_without_account(self, ctx):
        with pytest.raises(NotFoundError):
            connect.check_status()

    def test_owner_account_is_set_on_every_product(self, ctx, stripe_stub, make_product, default_type):
        product = make_product()
        connect.update_owner_account("acct_9")
        assert models.Product.get_by_id(product.id).payment_account() == "acct_9"
        assert models.ProductType.get_by_id(default_type.id).stripe_account_id == "acct_9"

        connect.clear_owner_account()
        assert models.Product.get_by_id(product.id).payment_account() is None

    def test_delete_clears_products(self, ctx, stripe_stub, make_product):
        connect.create_account("owner@example.com", "Owner Co", "company")
        product = make_product()
        connect.update_owner_account("acct_1")

        assert connect.delete_account() == "acct_1"
        assert stripe_stub.deleted == ["acct_1"]
        assert models.StripeConnectAccount.current() is None
        assert models.Product.get_by_id(product.id).stripe_account_id is None

    def test_connected_accounts_lists_ready_ones(self, ctx, stripe_stub):
        stripe_stub.create_account("a@example.com", "A", "individual")
        stripe_stub.create_account("b@example.com", "B", "individual")
        stripe_stub.ready("acct_2")
        assert [a["id"] for a in connect.connected_accounts()] == ["acct_2"]
