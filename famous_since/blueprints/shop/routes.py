from flask import (
    abort,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
    Response,
)

from . import bp
from . import forms

from famous_since.addons.payments.stripe import functions as stripe_functions
from famous_since.database.defaults import DEFAULT_COLOR
from famous_since.models import models, get_previews
from famous_since.store import checkout, products
from famous_since.store.cart import CUSTOM_LINE_KEY, Cart, CartItem, custom_cart_item
from famous_since.store.checkout import CheckoutState, REQUIRED_FIELDS_MESSAGE, STEP_PAYMENT
from famous_since.utils.error_handlers import wants_json
from famous_since.utils.exceptions import FamousSinceError, ValidationError
from famous_since.utils.logging import get_logger

log = get_logger(__name__)

TOP_LINE = "FAMOUS SINCE"


def _unique(values):
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def _variant_choices(form, product: models.Product) -> None:
    variants = product.get_variants()
    order = {size: i for i, size in enumerate(products.type_sizes(product.get_type()))}
    sizes = sorted(_unique(v.size for v in variants), key=lambda s: order.get(s, len(order)))
    form.size.choices = [(size, size) for size in sizes]
    form.color.choices = [(color, color) for color in _unique(v.color for v in variants)]


def _custom_choices(form, product_type) -> None:
    form.size.choices = [(size, size) for size in products.type_sizes(product_type)]
    form.color.choices = [(DEFAULT_COLOR, DEFAULT_COLOR)]


def _added(cart: Cart, message: str, target: str) -> Response:
    if wants_json():
        return jsonify(message=message, cart_size=cart.count), 201
    flash(message, "success")
    return redirect(target)


# ----------------------------------------------------------------------
# Catalogue
# ----------------------------------------------------------------------
@bp.route("/shop")
def shop() -> str:
    term = request.args.get("q", "").strip()
    found = models.Product.search(term) if term else get_previews()
    return render_template(
        "shop/shop.html",
        products = found,
        term = term,
        branded = models.ProductType.get(active=True, is_branded_item=True, order_by="name"),
    )


@bp.route("/shop/branded")
def branded() -> str:
    return render_template(
        "shop/branded.html",
        product_types = models.ProductType.get(active=True, is_branded_item=True, order_by="name"),
    )


@bp.route("/shop/branded/<int:type_id>")
def branded_type(type_id: int) -> str:
    product_type = models.ProductType.get_by_id(type_id)
    if not product_type or not product_type.active or not product_type.is_branded_item:
        abort(404)
    return render_template(
        "shop/branded_type.html",
        product_type = product_type,
        products = get_previews(product_type.id),
    )


@bp.route("/product/<int:product_id>")
def product(product_id: int) -> str:
    item = models.Product.get_by_id(product_id)
    if not item:
        abort(404)
    form = forms.AddToCartForm(product_id=item.id)
    _variant_choices(form, item)
    return render_template(
        "shop/product.html",
        product = item,
        variants = item.get_variants(),
        form = form,
    )


# ----------------------------------------------------------------------
# Stay Famous: personalised shirts
# ----------------------------------------------------------------------
@bp.route("/stay-famous", methods=["GET", "POST"])
def stay_famous() -> str | Response:
    form = forms.StayFamousForm()
    if form.validate_on_submit():
        description = products.sanitize_description(form.description.data)
        try:
            if not description:
                raise ValidationError("Tell us what you're famous for first.")
            products.check_forbidden_words(description)
        except FamousSinceError as e:
            form.description.errors.append(e.message)
        else:
            session[CUSTOM_LINE_KEY] = description
            return redirect(url_for("shop.stay_famous_preview", description=description))
    elif request.method == "GET" and session.get(CUSTOM_LINE_KEY):
        form.description.data = session[CUSTOM_LINE_KEY]
    return render_template("shop/stay_famous.html", form=form)


@bp.route("/stay-famous/<path:description>")
def stay_famous_preview(description: str) -> str | Response:
    description = products.sanitize_description(description)
    try:
        if not description:
            raise ValidationError("Tell us what you're famous for first.")
        products.check_forbidden_words(description)
    except FamousSinceError as e:
        flash(e.message, "warning")
        return redirect(url_for("shop.stay_famous"))

    session[CUSTOM_LINE_KEY] = description
    product_type = models.ProductType.default()
    existing = products.find_existing_product(description)
    form = forms.CustomDesignForm(description=description)
    _custom_choices(form, product_type)
    preview = existing.front_image_url if existing and existing.front_image_url else \
        products.preview_data_url(description, product_type)
    return render_template(
        "shop/stay_famous_preview.html",
        description = description,
        top_line = TOP_LINE,
        product = existing,
        product_type = product_type,
        price = float(product_type.base_price) if product_type else products.CUSTOM_BASE_PRICE,
        preview = preview,
        form = form,
    )


def _custom_form():
    product_type = models.ProductType.default()
    form = forms.CustomDesignForm()
    _custom_choices(form, product_type)
    return form, product_type


@bp.route("/stay-famous/buy", methods=["POST"])
def stay_famous_buy() -> Response:
    """Create (or reuse) the product for this text and go straight to checkout."""
    form, product_type = _custom_form()
    if not form.validate_on_submit():
        flash("Please choose a size and colour.", "warning")
        return redirect(url_for("shop.stay_famous"))
    try:
        item, created = products.create_custom_product(form.description.data, product_type)
        variant = products.variant_for(item, form.size.data, form.color.data)
    except FamousSinceError as e:
        flash(e.message, "danger")
        return redirect(url_for("shop.stay_famous"))

    cart = Cart.load(session)
    cart.add(CartItem(
        product_id = item.id,
        variant_id = variant.id,
        name = item.name,
        description = item.description,
        price = float(variant.price or item.base_price),
        quantity = form.quantity.data or 1,
        image = variant.front_image_url or item.front_image_url or "",
        size = variant.size,
        color = variant.color,
        product_type_id = item.product_type_id,
        customization = {"topLine": TOP_LINE, "bottomLine": item.description},
    ))
    cart.save(session)
    session.pop(CUSTOM_LINE_KEY, None)
    log.info("Buy now: product %s (%s) size %s", item.id, "new" if created else "existing", variant.size)
    return redirect(url_for("shop.checkout"))


@bp.route("/stay-famous/cart", methods=["POST"])
def stay_famous_cart() -> Response:
    """Add the personalised shirt to the cart without creating a product yet."""
    form, product_type = _custom_form()
    if not form.validate_on_submit() or product_type is None:
        flash("Please choose a size and colour.", "warning")
        return redirect(url_for("shop.stay_famous"))
    description = products.sanitize_description(form.description.data)
    try:
        products.check_forbidden_words(description)
    except FamousSinceError as e:
        flash(e.message, "danger")
        return redirect(url_for("shop.stay_famous"))

    existing = products.find_existing_product(description)
    item = custom_cart_item(
        product_type,
        form.size.data,
        form.color.data,
        TOP_LINE,
        description,
        price = float(product_type.base_price or products.CUSTOM_BASE_PRICE),
        image = existing.front_image_url if existing and existing.front_image_url else "",
    )
    item.quantity = form.quantity.data or 1
    cart = Cart.load(session)
    cart.add(item)
    cart.save(session)
    return _added(cart, "Added to cart", url_for("shop.cart"))


# ----------------------------------------------------------------------
# Cart
# ----------------------------------------------------------------------
@bp.route("/cart")
def cart() -> str:
    current = Cart.load(session)
    return render_template(
        "shop/cart.html",
        cart = current,
        totals = checkout.compute_totals(current.items),
    )


@bp.route("/cart/add", methods=["POST"])
def cart_add() -> Response:
    item = models.Product.get_by_id(request.form.get("product_id"))
    if not item:
        abort(404)
    form = forms.AddToCartForm()
    _variant_choices(form, item)
    if not form.validate_on_submit():
        flash("Please choose a size and colour.", "warning")
        return redirect(url_for("shop.product", product_id=item.id))
    variant = products.variant_for(item, form.size.data, form.color.data)

    current = Cart.load(session)
    current.add(CartItem(
        product_id = item.id,
        variant_id = variant.id,
        name = item.name,
        description = item.description,
        price = float(variant.price or item.base_price),
        quantity = form.quantity.data or 1,
        image = variant.front_image_url or item.front_image_url or "",
        size = variant.size,
        color = variant.color,
        product_type_id = item.product_type_id,
    ))
    current.save(session)
    return _added(current, "Added to cart", url_for("shop.cart"))


@bp.route("/cart/remove/<item_id>", methods=["POST"])
def cart_remove(item_id: str) -> Response:
    current = Cart.load(session)
    current.remove(item_id)
    current.save(session)
    return redirect(url_for("shop.cart"))


@bp.route("/cart/update/<item_id>", methods=["POST"])
def cart_update(item_id: str) -> Response:
    try:
        quantity = int(request.form.get("quantity", 1))
    except ValueError:
        flash("Quantity must be a number", "warning")
        return redirect(url_for("shop.cart"))
    current = Cart.load(session)
    current.update_quantity(item_id, quantity)
    current.save(session)
    return redirect(url_for("shop.cart"))


@bp.route("/cart/clear", methods=["POST"])
def cart_clear() -> Response:
    current = Cart.load(session)
    current.clear()
    current.save(session)
    return redirect(url_for("shop.cart"))


# ----------------------------------------------------------------------
# Checkout
# ----------------------------------------------------------------------
def _render_checkout(current: Cart, state: CheckoutState, **overrides) -> str:
    shipping = state.shipping
    page_forms = {
        "contact_form": forms.ContactForm(formdata=None, data={"email": state.email, **vars(shipping)}),
        "shipping_form": forms.ShippingMethodForm(formdata=None, data={"method": state.shipping_method}),
        "billing_form": forms.BillingForm(formdata=None, data={
            "same_as_shipping": state.same_as_shipping, **vars(state.billing),
        }),
        "discount_form": forms.DiscountForm(formdata=None),
    }
    page_forms.update(overrides)
    return render_template(
        "shop/checkout.html",
        cart = current,
        state = state,
        totals = state.totals(current.items),
        billing_ready = bool(state.billing.full_name),
        stripe_public_key = current_app.config.get("STRIPE_PUBLIC_KEY"),
        **page_forms,
    )


def _load_checkout():
    current = Cart.load(session)
    if not current.items:
        return None, None
    return current, CheckoutState.load(session)


@bp.route("/checkout", endpoint="checkout")
def checkout_page() -> str | Response:
    current, state = _load_checkout()
    if current is None:
        flash("Your cart is empty", "info")
        return redirect(url_for("shop.cart"))
    return _render_checkout(current, state)


@bp.route("/checkout/contact", methods=["POST"])
def checkout_contact() -> str | Response:
    current, state = _load_checkout()
    if current is None:
        return redirect(url_for("shop.cart"))
    form = forms.ContactForm()
    if not form.validate_on_submit():
        flash(REQUIRED_FIELDS_MESSAGE, "warning")
        return _render_checkout(current, state, contact_form=form)
    try:
        state.submit_contact(form.data)
    except FamousSinceError as e:
        flash(e.message, "warning")
        return _render_checkout(current, state, contact_form=form)
    state.save(session)
    return redirect(url_for("shop.checkout"))


@bp.route("/checkout/shipping", methods=["POST"])
def checkout_shipping() -> Response:
    current, state = _load_checkout()
    if current is None:
        return redirect(url_for("shop.cart"))
    form = forms.ShippingMethodForm()
    if form.validate_on_submit():
        try:
            state.submit_shipping(form.method.data)
        except FamousSinceError as e:
            flash(e.message, "danger")
        state.save(session)
    else:
        flash("Choose a shipping method.", "warning")
    return redirect(url_for("shop.checkout"))


@bp.route("/checkout/billing", methods=["POST"])
def checkout_billing() -> str | Response:
    current, state = _load_checkout()
    if current is None:
        return redirect(url_for("shop.cart"))
    if state.step < STEP_PAYMENT:
        flash("Complete the previous steps first.", "warning")
        return redirect(url_for("shop.checkout"))
    form = forms.BillingForm()
    if not form.validate_on_submit():
        return _render_checkout(current, state, billing_form=form)
    try:
        state.submit_billing(form.same_as_shipping.data, form.data)
    except FamousSinceError as e:
        flash(e.message, "warning")
        return _render_checkout(current, state, billing_form=form)
    state.save(session)
    return redirect(url_for("shop.checkout"))


@bp.route("/checkout/discount", methods=["POST"])
def checkout_discount() -> Response:
    current, state = _load_checkout()
    if current is None:
        return redirect(url_for("shop.cart"))
    form = forms.DiscountForm()
    if form.validate_on_submit():
        state.apply_discount(form.code.data, current.items)
        if state.invalid_coupon:
            flash("Invalid discount code", "warning")
        else:
            flash(f"Discount {state.discount_code} applied", "success")
        state.save(session)
    return redirect(url_for("shop.checkout"))


@bp.route("/checkout/back", methods=["POST"])
def checkout_back() -> Response:
    state = CheckoutState.load(session)
    state.back()
    state.save(session)
    return redirect(url_for("shop.checkout"))


@bp.route("/checkout/success")
def checkout_success() -> str | Response:
    payment_intent_id = request.args.get("payment_intent")
    if not payment_intent_id:
        return redirect(url_for("shop.cart"))
    intent = stripe_functions.retrieve_payment_intent(payment_intent_id)
    if intent.get("status") != "succeeded":
        flash(f"Your payment was not completed ({intent.get('status')}). Please try again.", "danger")
        return redirect(url_for("shop.checkout"))

    current = Cart.load(session)
    state = CheckoutState.load(session)
    if current.items:
        order = checkout.record_order(payment_intent_id, current, state)
    else:
        order = models.Order.get_one(payment_intent_id=payment_intent_id)

    current.clear()
    current.save(session)
    CheckoutState.reset(session)
    session.pop(CUSTOM_LINE_KEY, None)
    return render_template(
        "shop/success.html",
        order = order,
        items = order.get_items() if order else [],
    )
