from flask import (
    current_app,
    render_template,
    redirect,
    request,
    url_for,
    flash,
    abort,
    Response
)
from . import bp

from flask_login import current_user, login_required

from functools import wraps
from typing import Callable, Any

from famous_since.database import db
from famous_since.database.defaults import HOMEPAGE_SLOTS
from famous_since.models import models, get_previews
from famous_since.addons.payments.stripe import functions as stripe_functions
from famous_since.store import connect, deployment, homepage, product_types, products, waitlist, words
from famous_since.utils.exceptions import FamousSinceError
from famous_since.utils.logging import get_logger

import famous_since.processor as processor

from . import forms

log = get_logger(__name__)

def admin_required(f: Callable[..., Any]) -> Callable[..., Any]:
    """Anonymous users go to the login page, signed-in non-admins to the homepage."""
    @wraps(f)
    @login_required
    def decorated_view(*args: Any, **kwargs: Any) -> Any:
        if not current_user.is_admin:
            flash("That page is for store admins only.", "warning")
            return redirect(url_for('main.index'))
        return f(*args, **kwargs)
    return decorated_view


@bp.route("/")
@admin_required
def index() -> str:
    row = db.execute(
        "SELECT COUNT(*) AS n, COALESCE(SUM(total_amount), 0) AS revenue FROM order_table WHERE status = ?",
        ("completed",),
        fetch="one",
    )
    return render_template(
        "admin/index.html",
        product_count = models.Product.count(),
        order_count = int(row["n"]) if row else 0,
        revenue = float(row["revenue"]) if row else 0.0,
        waitlist_total = waitlist.total(),
        deployed = deployment.is_deployed(),
        hosting = deployment.hosting_active(),
        recent_orders = models.Order.get(order_by="created_at DESC, id DESC")[:5],
    )


# ----------------------------------------------------------------------
# Products
# ----------------------------------------------------------------------
@bp.route('/products')
@admin_required
def products_list() -> str:
    term = request.args.get("q", "").strip()
    found = models.Product.search(term) if term else get_previews()
    return render_template(
        "admin/products.html",
        products = found,
        term = term,
    )


@bp.route('/products/new', methods=["GET", "POST"])
@bp.route('/products/<int:product_id>', methods=["GET", "POST"])
@admin_required
def product(product_id: int | None = None) -> str | Response:
    item = None
    if product_id is not None:
        item = models.Product.get_by_id(product_id)
        if not item:
            abort(404)
    form = forms.ProductForm()
    if request.method == "GET" and item is not None:
        variants = item.get_variants()
        form.process(data={
            "name": item.name,
            "description": item.description,
            "base_price": item.base_price,
            "product_type_id": str(item.product_type_id or ""),
            "front_image_url": item.front_image_url,
            "back_image_url": item.back_image_url,
            "sizes": ", ".join(dict.fromkeys(v.size for v in variants)),
            "colors": ", ".join(dict.fromkeys(v.color for v in variants)),
        })
    if form.validate_on_submit():
        try:
            item = products.save_product(form.to_data(), item)
        except FamousSinceError as e:
            flash(e.message, "danger")
        else:
            flash("Product saved", "success")
            return redirect(url_for('admin.product', product_id=item.id))

    return render_template(
        'admin/product.html',
        product = item,
        form = form,
        variants = item.get_variants() if item else [],
    )


@bp.route('/products/<int:product_id>/delete', methods=["POST"])
@admin_required
def delete_product(product_id: int) -> Response:
    products.delete_product(product_id)
    flash("Product deleted", "success")
    return redirect(url_for('admin.products_list'))


@bp.route('/homedisplay', methods=["GET", "POST"])
@admin_required
def homedisplay() -> str | Response:
    catalogue = models.Product.get(order_by="description")
    form = forms.homepage_form(catalogue, homepage.load_slots())
    if form.validate_on_submit():
        selections = [form[f"slot_{position}"].data for position in range(HOMEPAGE_SLOTS)]
        homepage.save_display(selections)
        flash("Homepage display updated", "success")
        return redirect(url_for('admin.homedisplay'))
    return render_template(
        'admin/homedisplay.html',
        form = form,
        preview = homepage.homepage_products(),
    )


# ----------------------------------------------------------------------
# Product types
# ----------------------------------------------------------------------
@bp.route('/product-types', methods=["GET", "POST"])
@admin_required
def product_types_list() -> str | Response:
    form = forms.ProductTypeForm()
    if form.validate_on_submit():
        try:
            created = product_types.save_type(form.data)
        except FamousSinceError as e:
            flash(e.message, "danger")
        else:
            flash(f"{created.name} added", "success")
            return redirect(url_for('admin.product_type', type_id=created.id))
    return render_template(
        'admin/product_types.html',
        product_types = models.ProductType.get(order_by="name"),
        form = form,
    )


@bp.route('/product-types/<int:type_id>', methods=["GET", "POST"])
@admin_required
def product_type(type_id: int) -> str | Response:
    item = product_types.get_or_404(type_id)
    form = forms.ProductTypeForm(obj=item if request.method == "GET" else None)
    if form.validate_on_submit():
        try:
            product_types.save_type(form.data, item)
        except FamousSinceError as e:
            flash(e.message, "danger")
        else:
            flash("Product type saved", "success")
            return redirect(url_for('admin.product_type', type_id=item.id))
    return render_template(
        'admin/product_type.html',
        product_type = item,
        form = form,
        image_form = forms.ModelImageForm(formdata=None),
        size_form = forms.SizeForm(formdata=None),
        images = item.get_images(),
        sizes = item.get_sizes(),
    )


@bp.route('/product-types/<int:type_id>/delete', methods=["POST"])
@admin_required
def delete_product_type(type_id: int) -> Response:
    try:
        product_types.delete_type(type_id)
    except FamousSinceError as e:
        flash(e.message, "danger")
        return redirect(url_for('admin.product_type', type_id=type_id))
    flash("Product type deleted", "success")
    return redirect(url_for('admin.product_types_list'))


@bp.route('/product-types/<int:type_id>/default', methods=["POST"])
@admin_required
def default_product_type(type_id: int) -> Response:
    item = product_types.get_or_404(type_id)
    item.set_default()
    flash(f"{item.name} is now the default type", "success")
    return redirect(url_for('admin.product_types_list'))


@bp.route('/product-types/<int:type_id>/images', methods=["POST"])
@admin_required
def add_model_image(type_id: int) -> Response:
    item = product_types.get_or_404(type_id)
    form = forms.ModelImageForm()
    if not form.validate_on_submit():
        for errors in form.errors.values():
            for error in errors:
                flash(error, "danger")
        return redirect(url_for('admin.product_type', type_id=type_id))
    try:
        url = processor.upload_file(form.image.data, "product-type", context={"productTypeId": item.id})
        product_types.add_image(item, url, form.vertical_offset.data or 0, form.is_default_model.data)
    except FamousSinceError as e:
        log.error("Model image upload for type %s failed: %s", type_id, e)
        flash(e.message, "danger")
    else:
        flash("Image uploaded", "success")
    return redirect(url_for('admin.product_type', type_id=type_id))


@bp.route('/product-types/images/<int:image_id>', methods=["POST"])
@admin_required
def update_model_image(image_id: int) -> Response:
    form = forms.ModelSettingsForm()
    image = product_types.update_image(image_id, form.vertical_offset.data or 0, form.is_default_model.data)
    flash("Image updated", "success")
    return redirect(url_for('admin.product_type', type_id=image.product_type_id))


@bp.route('/product-types/images/<int:image_id>/delete', methods=["POST"])
@admin_required
def remove_model_image(image_id: int) -> Response:
    image = models.ProductTypeImage.get_by_id(image_id)
    if not image:
        abort(404)
    product_types.remove_image(image_id)
    flash("Image removed", "success")
    return redirect(url_for('admin.product_type', type_id=image.product_type_id))


@bp.route('/product-types/<int:type_id>/sizes', methods=["POST"])
@admin_required
def add_size(type_id: int) -> Response:
    item = product_types.get_or_404(type_id)
    form = forms.SizeForm()
    if form.validate_on_submit():
        try:
            product_types.add_size(item, form.size.data)
        except FamousSinceError as e:
            flash(e.message, "danger")
    return redirect(url_for('admin.product_type', type_id=type_id))


@bp.route('/product-types/sizes/<int:size_id>/delete', methods=["POST"])
@admin_required
def remove_size(size_id: int) -> Response:
    size = models.ProductSize.get_by_id(size_id)
    if not size:
        abort(404)
    product_types.remove_size(size_id)
    return redirect(url_for('admin.product_type', type_id=size.product_type_id))


# ----------------------------------------------------------------------
# Forbidden words
# ----------------------------------------------------------------------
@bp.route('/exceptions', methods=["GET", "POST"])
@admin_required
def exceptions() -> str | Response:
    form = forms.ExceptionForm()
    if form.validate_on_submit():
        try:
            entry = words.add_word(form.word.data, form.reason.data)
        except FamousSinceError as e:
            flash(e.message, "danger")
        else:
            flash(f"{entry.word} added to the exceptions list", "success")
            return redirect(url_for('admin.exceptions'))
    return render_template(
        'admin/exceptions.html',
        form = form,
        entries = models.ForbiddenWord.get(order_by="word"),
    )


@bp.route('/exceptions/<int:word_id>/delete', methods=["POST"])
@admin_required
def remove_exception(word_id: int) -> Response:
    words.remove_word(word_id)
    flash("Word removed", "success")
    return redirect(url_for('admin.exceptions'))


# ----------------------------------------------------------------------
# Orders & waitlist
# ----------------------------------------------------------------------
@bp.route('/orders')
@admin_required
def orders() -> str:
    status = request.args.get("status") or None
    filters = {"status": status} if status else {}
    found = models.Order.get(order_by="created_at DESC, id DESC", **filters)
    return render_template(
        'admin/orders.html',
        orders = found,
        status = status,
        statuses = forms.ORDER_STATUSES,
    )


@bp.route('/orders/<int:order_id>', methods=["GET", "POST"])
@admin_required
def order(order_id: int) -> str | Response:
    item = models.Order.get_by_id(order_id)
    if not item:
        abort(404)
    form = forms.OrderStatusForm(status=item.status)
    if form.validate_on_submit():
        item.status = form.status.data
        item.update("status")
        flash(f"Order #{item.id} marked {item.status}", "success")
        return redirect(url_for('admin.order', order_id=item.id))
    return render_template(
        'admin/order.html',
        order = item,
        items = item.get_items(),
        form = form,
    )


@bp.route('/waitlist')
@admin_required
def waitlist_entries() -> str:
    return render_template(
        'admin/waitlist.html',
        entries = waitlist.entries(),
        total = waitlist.total(),
    )


# ----------------------------------------------------------------------
# Site config, hosting & Stripe Connect
# ----------------------------------------------------------------------
@bp.route('/site-config', methods=["GET", "POST"])
@admin_required
def site_config() -> str | Response:
    form = forms.SiteConfigForm()
    if form.validate_on_submit():
        try:
            message = deployment.set_site_config(form.key.data, bool(form.value.data))
        except FamousSinceError as e:
            flash(e.message, "danger")
        else:
            flash(message, "success")
        return redirect(url_for('admin.site_config'))
    return render_template(
        'admin/site_config.html',
        configs = models.SiteConfig.get(order_by="key"),
        status = deployment.deployment_status(),
    )


@bp.route('/hosting', methods=["GET", "POST"])
@admin_required
def hosting() -> str | Response:
    form = forms.HostingForm(email=current_user.email)
    if form.validate_on_submit():
        checkout_session = stripe_functions.create_subscription_session(
            current_app.config["HOSTING_PRICE_ID"],
            success_url=url_for('admin.hosting', _external=True) + "?subscribed=1",
            cancel_url=url_for('admin.hosting', _external=True),
            customer_email=form.email.data,
        )
        return redirect(checkout_session["url"])
    if request.args.get("subscribed"):
        flash("Thanks! Your hosting subscription will show here once Stripe confirms it.", "success")
    return render_template(
        'admin/hosting.html',
        form = form,
        active = deployment.hosting_active(),
        subscriptions = models.Subscription.get(order_by="created_at DESC, id DESC"),
    )


@bp.route('/stripe', methods=["GET", "POST"])
@admin_required
def stripe() -> str | Response:
    form = forms.ConnectAccountForm(email=current_user.email)
    account = models.StripeConnectAccount.current()
    if form.validate_on_submit():
        try:
            created = connect.create_account(form.email.data, form.business_name.data, form.business_type.data)
        except FamousSinceError as e:
            flash(e.message, "danger")
        else:
            return redirect(created["url"])
    status = None
    if account is not None:
        try:
            status = connect.check_status(account.account_id)
        except FamousSinceError as e:
            flash(e.message, "warning")
    return render_template(
        'admin/stripe.html',
        form = form,
        account = account,
        status = status,
    )


@bp.route('/stripe/refresh')
@admin_required
def stripe_refresh() -> Response:
    """Stripe sends the owner here when an onboarding link expired."""
    account = models.StripeConnectAccount.current()
    if account is None:
        flash("No Stripe account found", "warning")
        return redirect(url_for('admin.stripe'))
    return redirect(connect.create_account_link(account.account_id))


@bp.route('/stripe/return')
@admin_required
def stripe_return() -> Response:
    try:
        status = connect.check_status()
    except FamousSinceError as e:
        flash(e.message, "warning")
    else:
        if status["onboardingComplete"]:
            flash("Stripe account connected", "success")
        else:
            flash("Stripe still needs some details before you can take payments.", "warning")
    return redirect(url_for('admin.stripe'))


@bp.route('/stripe/delete', methods=["POST"])
@admin_required
def stripe_delete() -> Response:
    try:
        account_id = connect.delete_account()
    except FamousSinceError as e:
        flash(e.message, "danger")
    else:
        flash(f"Stripe account {account_id} disconnected", "success")
    return redirect(url_for('admin.stripe'))


@bp.route('/stripe/owner', methods=["POST"])
@admin_required
def stripe_owner() -> Response:
    """Route every product's payout to the connected account, or clear it."""
    if request.form.get("action") == "clear":
        connect.clear_owner_account()
        flash("Products now pay out to the platform account", "success")
    else:
        account = models.StripeConnectAccount.current()
        if account is None:
            flash("Connect a Stripe account first", "warning")
        else:
            connect.update_owner_account(account.account_id)
            flash("All products now pay out to your Stripe account", "success")
    return redirect(url_for('admin.stripe'))
