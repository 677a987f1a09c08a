from flask import (
    render_template,
    redirect,
    url_for,
    flash,
    Response,
)
from . import bp
from . import forms

from famous_since.store import deployment, homepage, waitlist
from famous_since.utils.exceptions import FamousSinceError


@bp.route("/index")
@bp.route("/")
def index() -> str:
    return render_template(
        "main/index.html",
        slots = homepage.homepage_products(),
    )


@bp.route("/about")
def about() -> str:
    return render_template("main/about.html")


@bp.route("/coming-soon", methods=["GET", "POST"])
def coming_soon() -> str | Response:
    if deployment.is_deployed():
        return redirect(url_for('main.index'))
    form = forms.waitlistForm()
    if form.validate_on_submit():
        try:
            waitlist.join(form.first_name.data, form.last_name.data, form.email.data)
            flash("You're on the list! We'll let you know when we launch.", "success")
            return redirect(url_for('main.coming_soon'))
        except FamousSinceError as e:
            flash(e.message, "warning")
    return render_template(
        "main/coming_soon.html",
        form = form,
        waitlist_total = waitlist.total(),
    )
