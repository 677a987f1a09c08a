from flask import Blueprint
from famous_since.blueprints import register_blueprint

bp = Blueprint('shop', __name__)

from . import routes

register_blueprint(bp)
