from flask_wtf import FlaskForm
from wtforms import (
    BooleanField,
    EmailField,
    HiddenField,
    IntegerField,
    RadioField,
    SelectField,
    StringField,
    SubmitField,
)
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional

from famous_since.store.checkout import COUNTRY_CODES, SHIPPING_RATES
from famous_since.store.products import MAX_DESCRIPTION_LENGTH


def _countries():
    return [(name, name) for name in COUNTRY_CODES]


class StayFamousForm(FlaskForm):
    description = StringField(
        "What are you famous for?",
        validators=[DataRequired(), Length(max=MAX_DESCRIPTION_LENGTH)],
        render_kw={"placeholder": "e.g. MY FIRST MARATHON", "autocomplete": "off"},
    )
    submit = SubmitField("Preview")


class CustomDesignForm(FlaskForm):
    """Size/colour picker on the personalised preview page."""
    description = HiddenField(validators=[DataRequired()])
    size = SelectField("Size", validators=[DataRequired()])
    color = SelectField("Color", validators=[DataRequired()])
    quantity = IntegerField("Quantity", default=1, validators=[NumberRange(min=1, max=20)])


class AddToCartForm(FlaskForm):
    product_id = HiddenField(validators=[DataRequired()])
    size = SelectField("Size", validators=[DataRequired()])
    color = SelectField("Color", validators=[DataRequired()])
    quantity = IntegerField("Quantity", default=1, validators=[NumberRange(min=1, max=20)])
    submit = SubmitField("Add to cart")


class AddressMixin:
    full_name = StringField("Full name", validators=[DataRequired(), Length(max=120)])
    street_address = StringField("Street address", validators=[DataRequired(), Length(max=200)])
    apartment = StringField("Apartment, suite, etc.", validators=[Optional(), Length(max=100)])
    city = StringField("City", validators=[DataRequired()])
    state = StringField("State / Province", validators=[DataRequired()])
    country = SelectField("Country", choices=_countries(), validators=[DataRequired()])
    zip_code = StringField("ZIP / Postal code", validators=[DataRequired(), Length(max=20)])


class ContactForm(AddressMixin, FlaskForm):
    email = EmailField("Email", validators=[DataRequired(), Email()])
    submit = SubmitField("Continue to shipping")


class ShippingMethodForm(FlaskForm):
    method = RadioField(
        "Shipping method",
        choices=[
            ("standard", f"Standard (${SHIPPING_RATES['standard']:.2f})"),
            ("express", f"Express (${SHIPPING_RATES['express']:.2f})"),
        ],
        default="standard",
        validators=[DataRequired()],
    )
    submit = SubmitField("Continue to payment")


class BillingForm(FlaskForm):
    same_as_shipping = BooleanField("Billing address same as shipping", default=True)
    full_name = StringField("Full name", validators=[Optional(), Length(max=120)])
    street_address = StringField("Street address", validators=[Optional(), Length(max=200)])
    apartment = StringField("Apartment, suite, etc.", validators=[Optional(), Length(max=100)])
    city = StringField("City", validators=[Optional()])
    state = StringField("State / Province", validators=[Optional()])
    country = SelectField("Country", choices=[("", "")] + _countries(), validators=[Optional()])
    zip_code = StringField("ZIP / Postal code", validators=[Optional(), Length(max=20)])
    submit = SubmitField("Save billing address")


class DiscountForm(FlaskForm):
    code = StringField("Discount code", validators=[DataRequired(), Length(max=30)])
    submit = SubmitField("Apply")
