from urllib.parse import urlsplit

import pytest

from famous_since.models import models
from famous_since.store import checkout, words
from famous_since.store.cart import CART_KEY, CUSTOM_LINE_KEY, Cart, CartItem
from famous_since.store.checkout import CHECKOUT_KEY, CheckoutState

from test_checkout import CONTACT


def location(response):
    return urlsplit(response.headers["Location"]).path


def cart_of(client):
    with client.session_transaction() as sess:
        return Cart.from_json(sess.get(CART_KEY))


class TestCatalogue:
    def test_shop_lists_products(self, client, deployed, make_product):
        make_product("BEST DAD EVER")
        response = client.get("/shop")
        assert response.status_code == 200
        assert b"BEST DAD EVER" in response.data

    def test_search(self, client, deployed, make_product):
        make_product("BEST DAD EVER")
        make_product("FIRST MARATHON")
        response = client.get("/shop?q=marathon")
        assert b"FIRST MARATHON" in response.data
        assert b"BEST DAD EVER" not in response.data

    def test_product_page(self, client, deployed, make_product):
        product = make_product()
        assert client.get(f"/product/{product.id}").status_code == 200
        assert client.get("/product/999").status_code == 404

    def test_branded_pages(self, client, deployed, app):
        hoodie = models.ProductType.new(name="Logo Hoodie", base_price=55.0, active=True, is_branded_item=True)
        assert b"Logo Hoodie" in client.get("/shop/branded").data
        assert client.get(f"/shop/branded/{hoodie.id}").status_code == 200
        default = models.ProductType.default()
        assert client.get(f"/shop/branded/{default.id}").status_code == 404


class TestCart:
    def test_add_update_remove(self, client, deployed, make_product):
        product = make_product()
        response = client.post("/cart/add", data={"product_id": product.id, "size": "M", "color": "Black",
                                                  "quantity": 2})
        assert location(response) == "/cart"
        cart = cart_of(client)
        assert cart.count == 2
        item_id = cart.items[0].id

        assert b"BEST DAD EVER" in client.get("/cart").data

        client.post(f"/cart/update/{item_id}", data={"quantity": 5})
        assert cart_of(client).count == 5

        client.post(f"/cart/remove/{item_id}")
        assert cart_of(client).items == []

    def test_add_json(self, client, deployed, make_product):
        product = make_product()
        response = client.post("/cart/add", data={"product_id": product.id, "size": "S", "color": "Black"},
                               headers={"Accept": "application/json"})
        assert response.status_code == 201
        assert response.get_json()["cart_size"] == 1

    def test_unknown_size(self, client, deployed, make_product):
        product = make_product()
        response = client.post("/cart/add", data={"product_id": product.id, "size": "5XL", "color": "Black"})
        assert location(response) == f"/product/{product.id}"
        assert cart_of(client).items == []


class TestStayFamous:
    def test_preview_redirect(self, client, deployed):
        response = client.post("/stay-famous", data={"description": "best dad!"})
        assert response.headers["Location"].endswith("/stay-famous/BEST%20DAD")
        with client.session_transaction() as sess:
            assert sess[CUSTOM_LINE_KEY] == "BEST DAD"

    def test_preview_page(self, client, deployed):
        response = client.get("/stay-famous/best%20dad")
        assert response.status_code == 200
        assert b"BEST DAD" in response.data

    def test_forbidden_word(self, client, deployed):
        words.add_word("meanie")
        response = client.post("/stay-famous", data={"description": "meanie dad"})
        assert response.status_code == 200
        assert b"positive vibes" in response.data

    def test_forbidden_preview_url(self, client, deployed):
        words.add_word("meanie")
        assert location(client.get("/stay-famous/meanie")) == "/stay-famous"

    def test_buy_creates_product_and_goes_to_checkout(self, client, deployed, uploads):
        form = {"description": "BEST DAD", "size": "M", "color": "Black", "quantity": 1}
        response = client.post("/stay-famous/buy", data=form)
        assert location(response) == "/checkout"
        product = models.Product.get_one(description="BEST DAD")
        assert product is not None
        assert uploads == ["BEST DAD"]

        cart = cart_of(client)
        assert cart.items[0].product_id == product.id
        assert cart.items[0].customization == {"topLine": "FAMOUS SINCE", "bottomLine": "BEST DAD"}

        client.post("/stay-famous/buy", data=form)
        assert models.Product.count() == 1
        assert uploads == ["BEST DAD"]
        assert cart_of(client).count == 2

    def test_add_custom_to_cart_without_product(self, client, deployed):
        response = client.post("/stay-famous/cart", data={"description": "BEST DAD", "size": "L", "color": "Black"})
        assert location(response) == "/cart"
        assert models.Product.count() == 0
        item = cart_of(client).items[0]
        assert item.is_custom
        assert item.price == 28.0


class TestCheckoutFlow:
    @pytest.fixture
    def filled_cart(self, client, deployed, make_product):
        product = make_product()
        client.post("/cart/add", data={"product_id": product.id, "size": "M", "color": "Black", "quantity": 2})
        return product

    def state_of(self, client):
        with client.session_transaction() as sess:
            return CheckoutState.load(sess)

    def test_empty_cart_goes_back(self, client, deployed):
        assert location(client.get("/checkout")) == "/cart"

    def test_steps(self, client, filled_cart, stripe_stub):
        assert client.get("/checkout").status_code == 200

        client.post("/checkout/contact", data=CONTACT)
        assert self.state_of(client).step == checkout.STEP_SHIPPING

        client.post("/checkout/shipping", data={"method": "express"})
        state = self.state_of(client)
        assert state.step == checkout.STEP_PAYMENT
        assert state.customer_id == "cus_test"

        client.post("/checkout/billing", data={"same_as_shipping": "y"})
        assert self.state_of(client).billing.city == "London"
        assert client.get("/checkout").status_code == 200

        intent = client.post("/api/create-payment-intent", json={}).get_json()
        assert intent["amount"] == 8540

        client.post("/checkout/back")
        assert self.state_of(client).step == checkout.STEP_SHIPPING

    def test_incomplete_contact(self, client, filled_cart):
        response = client.post("/checkout/contact", data=dict(CONTACT, city=""))
        assert response.status_code == 200
        assert self.state_of(client).step == checkout.STEP_CONTACT

    def test_billing_before_shipping(self, client, filled_cart):
        client.post("/checkout/billing", data={"same_as_shipping": "y"})
        assert self.state_of(client).billing.full_name == ""

    def test_discount(self, client, filled_cart):
        client.post("/checkout/discount", data={"code": "save10"})
        assert self.state_of(client).discount_code == "SAVE10"
        client.post("/checkout/discount", data={"code": "bogus"})
        state = self.state_of(client)
        assert state.invalid_coupon
        assert state.discount_code == "SAVE10"

    def test_success_records_order_once(self, client, filled_cart, stripe_stub):
        client.post("/checkout/contact", data=CONTACT)
        client.post("/checkout/shipping", data={"method": "standard"})

        response = client.get("/checkout/success?payment_intent=pi_paid")
        assert response.status_code == 200
        assert models.Order.count() == 1
        assert cart_of(client).items == []
        with client.session_transaction() as sess:
            assert CHECKOUT_KEY not in sess

        assert client.get("/checkout/success?payment_intent=pi_paid").status_code == 200
        assert models.Order.count() == 1

    def test_unpaid_intent_is_not_recorded(self, client, filled_cart, stripe_stub):
        intent = stripe_stub.create_payment_intent(100, None, {})
        response = client.get(f"/checkout/success?payment_intent={intent['id']}")
        assert location(response) == "/checkout"
        assert models.Order.count() == 0
        assert cart_of(client).count == 2


class TestUsers:
    def test_login_redirects_admin_to_dashboard(self, client):
        response = client.post("/user/login", data={"email": "ADMIN@famoussince.com", "password": "FamousSince"})
        assert location(response) == "/admin/"

    def test_bad_password(self, client):
        response = client.post("/user/login", data={"email": "admin@famoussince.com", "password": "wrong-one"})
        assert response.status_code == 200
        assert b"Invalid email or password" in response.data

    def test_next_must_be_local(self, client):
        response = client.post("/user/login", data={"email": "admin@famoussince.com", "password": "FamousSince",
                                                     "next": "https://evil.test/"})
        assert location(response) == "/admin/"

    def test_register(self, client, deployed):
        data = {"name": "Ada", "email": "ada@example.com", "password": "secret1", "confirm_password": "secret1"}
        assert location(client.post("/user/register", data=data)) == "/"
        assert models.User.get_one(email="ada@example.com").role == "CLIENT"

        client.get("/user/logout")
        again = client.post("/user/register", data=data)
        assert b"already registered" in again.data


class TestAdminAccess:
    def test_anonymous_goes_to_login(self, client):
        response = client.get("/admin/products")
        assert location(response) == "/user/login"

    def test_customers_go_home(self, client):
        models.User.new(name="Cli", email="cli@example.com", password=models.hash_password("secret1"), role="CLIENT")
        client.post("/user/login", data={"email": "cli@example.com", "password": "secret1"})
        assert location(client.get("/admin/")) == "/"


class TestAdminPages:
    @pytest.fixture
    def order(self, app, make_product):
        product = make_product()
        variant = product.get_variants()[0]
        cart = Cart()
        cart.add(CartItem(product_id=product.id, variant_id=variant.id, name=product.name, price=30.0,
                          size=variant.size, color=variant.color))
        state = CheckoutState()
        state.submit_contact(CONTACT)
        return checkout.record_order("pi_admin", cart, state)

    def test_pages_render(self, admin_client, order, default_type, stripe_stub):
        product = models.Product.get_one(description="BEST DAD EVER")
        models.ProductTypeImage.new(product_type_id=default_type.id, image_path="https://img.test/model.png")
        words.add_word("meanie")
        pages = [
            "/admin/",
            "/admin/products",
            "/admin/products?q=dad",
            "/admin/products/new",
            f"/admin/products/{product.id}",
            "/admin/homedisplay",
            "/admin/product-types",
            f"/admin/product-types/{default_type.id}",
            "/admin/exceptions",
            "/admin/orders",
            "/admin/orders?status=completed",
            f"/admin/orders/{order.id}",
            "/admin/waitlist",
            "/admin/site-config",
            "/admin/hosting",
            "/admin/stripe",
        ]
        for page in pages:
            assert admin_client.get(page).status_code == 200, page

    def test_stripe_page_with_account(self, admin_client, stripe_stub):
        admin_client.post("/admin/stripe", data={"email": "owner@example.com", "business_name": "Owner",
                                                 "business_type": "company"})
        assert models.StripeConnectAccount.count() == 1
        response = admin_client.get("/admin/stripe")
        assert response.status_code == 200
        assert b"acct_1" in response.data

    def test_create_product(self, admin_client):
        response = admin_client.post("/admin/products/new", data={
            "name": "Famous Since T-Shirt", "description": "new here", "base_price": "25",
            "product_type_id": "", "sizes": "s, m", "colors": "Black, White",
        })
        product = models.Product.get_one(description="NEW HERE")
        assert location(response) == f"/admin/products/{product.id}"
        assert len(product.get_variants()) == 4

    def test_order_status(self, admin_client, order):
        admin_client.post(f"/admin/orders/{order.id}", data={"status": "cancelled"})
        assert models.Order.get_by_id(order.id).status == "cancelled"

    def test_homedisplay(self, admin_client, make_product):
        product = make_product()
        admin_client.post("/admin/homedisplay", data={"slot_0": "random", "slot_1": str(product.id),
                                                      "slot_2": "random", "slot_3": "random"})
        assert models.HomepageDisplay.get_one(position=1).product_id == product.id

    def test_exceptions(self, admin_client):
        admin_client.post("/admin/exceptions", data={"word": "meanie", "reason": ""})
        entry = models.ForbiddenWord.get_one(word="MEANIE")
        admin_client.post(f"/admin/exceptions/{entry.id}/delete")
        assert models.ForbiddenWord.count() == 0

    def test_deploy_refused(self, admin_client, stripe_stub):
        response = admin_client.post("/admin/site-config", data={"key": "deploy_site", "value": "y"},
                                     follow_redirects=True)
        assert b"Requirements not met" in response.data
        assert models.SiteConfig.get_one(key="deploy_site").value is False

    def test_hosting_checkout(self, admin_client, stripe_stub):
        response = admin_client.post("/admin/hosting", data={"email": "owner@example.com"})
        assert response.headers["Location"] == "https://checkout.stripe.test/session"
