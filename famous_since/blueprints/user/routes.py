from urllib.parse import urlsplit

from flask import (
    render_template,
    request,
    redirect,
    url_for,
    flash,
)

from flask_login import login_user, logout_user, current_user

from . import bp
from . import forms
from famous_since.database import db
from famous_since.models import models
from famous_since.utils.logging import get_logger

log = get_logger(__name__)


def _safe_next(target: str | None) -> str | None:
    """Only same-site paths are followed after login."""
    if not target:
        return None
    parts = urlsplit(target)
    if parts.scheme or parts.netloc or not target.startswith("/"):
        return None
    return target


@bp.route("/login", methods=["GET","POST"])
def login():
    form = forms.loginForm()
    if request.method == "GET":
        form.next.data = request.args.get("next", "")
    if form.validate_on_submit():
        user = models.User.get_one(email=form.email.data.strip().lower())
        if user and user.check_password(form.password.data):
            login_user(user)
            log.info("User %s logged in", user.id)
            default = url_for('admin.index') if user.is_admin else url_for('main.index')
            return redirect(_safe_next(form.next.data) or default)
        flash('Invalid email or password', 'danger')
    return render_template(
        "user/login.html",
        login_form = form
    )


@bp.route("/logout")
def logout():
    if current_user.is_authenticated:
        logout_user()
    return render_template("user/logout.html")


@bp.route("/register", methods=["GET", "POST"])
def register():
    form = forms.registerForm()
    if form.validate_on_submit():
        try:
            user = models.User.new(
                name = form.name.data.strip(),
                email = form.email.data.strip().lower(),
                password = models.hash_password(form.password.data),
                role = "CLIENT",
            )
        except db.IntegrityError as e:
            if not db.is_duplicate(e, 'email'):
                raise
            form.email.errors.append("This email is already registered.")
        else:
            login_user(user)
            flash("Successfully registered!", "success")
            return redirect(url_for("main.index"))

    return render_template(
        "user/register.html",
        register_form = form
    )
