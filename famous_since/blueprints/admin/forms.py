from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired, FileAllowed

from wtforms import (
    BooleanField,
    EmailField,
    FloatField,
    IntegerField,
    SelectField,
    StringField,
    SubmitField,
)
from wtforms.validators import DataRequired, Email, InputRequired, Length, NumberRange, Optional
from typing import List, Tuple

from famous_since.config import Config
from famous_since.database.defaults import DEFAULT_COLOR, DEFAULT_SIZES, HOMEPAGE_SLOTS
from famous_since.models import models
from famous_since.store.connect import BUSINESS_TYPES
from famous_since.store.products import MAX_DESCRIPTION_LENGTH

ORDER_STATUSES = ["pending", "completed", "cancelled"]


def type_choices() -> List[Tuple[str, str]]:
    return [("", "None")] + [
        (str(product_type.id), product_type.name)
        for product_type in models.ProductType.get(order_by="name")
    ]


class ProductForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=120)])
    description = StringField(
        'Description',
        validators=[DataRequired(), Length(max=MAX_DESCRIPTION_LENGTH)],
        description="The printed text. Must be unique.",
    )
    base_price = FloatField('Price', validators=[InputRequired(), NumberRange(min=0)])
    product_type_id = SelectField('Product type', validators=[Optional()])
    front_image_url = StringField('Front image URL', validators=[Optional(), Length(max=500)])
    back_image_url = StringField('Back image URL', validators=[Optional(), Length(max=500)])
    sizes = StringField(
        'Sizes',
        default=", ".join(DEFAULT_SIZES),
        description="Comma separated, e.g. S, M, L",
    )
    colors = StringField('Colors', default=DEFAULT_COLOR, description="Comma separated")
    submit = SubmitField('Save product')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.product_type_id.choices = type_choices()

    def to_data(self) -> dict:
        return {
            "name": self.name.data,
            "description": self.description.data,
            "base_price": self.base_price.data,
            "product_type_id": int(self.product_type_id.data) if self.product_type_id.data else None,
            "front_image_url": self.front_image_url.data,
            "back_image_url": self.back_image_url.data,
            "sizes": (self.sizes.data or "").split(","),
            "colors": (self.colors.data or "").split(","),
        }


class ProductTypeForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    base_price = FloatField('Base price', validators=[InputRequired(), NumberRange(min=0)])
    active = BooleanField('Active', default=True)
    is_branded_item = BooleanField('Branded item', description="Listed under Shop > Branded")
    is_default = BooleanField('Default type', description="Used for personalised shirts")
    stripe_account_id = StringField('Stripe account', validators=[Optional(), Length(max=100)])
    submit = SubmitField('Save type')


class ModelImageForm(FlaskForm):
    image = FileField(
        'Model image',
        validators=[
            FileRequired(),
            FileAllowed(sorted(Config.IMAGE_EXTENSIONS), f"Images only ({', '.join(sorted(Config.IMAGE_EXTENSIONS))})!"),
        ],
    )
    vertical_offset = IntegerField('Vertical offset (px)', default=0, validators=[Optional()])
    is_default_model = BooleanField('Default model')
    submit = SubmitField('Upload image')


class ModelSettingsForm(FlaskForm):
    vertical_offset = IntegerField('Vertical offset (px)', default=0, validators=[Optional()])
    is_default_model = BooleanField('Default model')
    submit = SubmitField('Save')


class SizeForm(FlaskForm):
    size = StringField('Size', validators=[DataRequired(), Length(max=10)])
    submit = SubmitField('Add size')


class ExceptionForm(FlaskForm):
    word = StringField('Word', validators=[DataRequired(), Length(max=50)])
    reason = StringField('Reason', validators=[Optional(), Length(max=200)])
    submit = SubmitField('Add word')


def homepage_form(products: List[models.Product], current: List) -> FlaskForm:
    """One select per homepage slot: a pinned product or random."""
    choices = [("random", "Random")] + [
        (str(product.id), f"{product.description} ({product.name})") for product in products
    ]
    attrs = {}
    for position in range(HOMEPAGE_SLOTS):
        pinned = current[position] if position < len(current) else None
        attrs[f"slot_{position}"] = SelectField(
            f"Slot {position + 1}",
            choices=choices,
            default=str(pinned) if pinned is not None else "random",
        )
    attrs["submit"] = SubmitField('Save display')
    return type('HomepageForm', (FlaskForm,), attrs)()


class OrderStatusForm(FlaskForm):
    status = SelectField('Status', choices=[(s, s.capitalize()) for s in ORDER_STATUSES])
    submit = SubmitField('Update')


class SiteConfigForm(FlaskForm):
    key = StringField(validators=[DataRequired()])
    value = BooleanField()
    submit = SubmitField('Save')


class ConnectAccountForm(FlaskForm):
    email = EmailField('Email', validators=[DataRequired(), Email()])
    business_name = StringField('Business name', validators=[DataRequired(), Length(max=120)])
    business_type = SelectField(
        'Business type',
        choices=[(t, t.replace("_", " ").capitalize()) for t in BUSINESS_TYPES],
        validators=[DataRequired()],
    )
    submit = SubmitField('Connect with Stripe')


class HostingForm(FlaskForm):
    email = EmailField('Billing email', validators=[DataRequired(), Email()])
    submit = SubmitField('Subscribe to hosting')

