from flask import Blueprint
from famous_since.blueprints import register_blueprint
from famous_since.utils.extensions import csrf

bp = Blueprint('api', __name__)

from . import routes

# JSON clients and Stripe's webhook do not carry a form token.
csrf.exempt(bp)

register_blueprint(bp, url_prefix='/api')
