import os
from typing import Any, Dict, Optional

from flask import Flask, session

from .config import config_by_name
from .database import db
from .utils.extensions import init_extensions, login_manager
from .utils.logging import setup_logging


def _prepare_database() -> None:
    """Sync the schema, then seed the admin, settings, default shirt and homepage slots."""
    from .database import default_list
    from .database.schema import schema
    from .models import models
    from .utils.site_config import cache_config

    db.checkDB(schema)
    models.set_defaults(default_list=default_list)
    cache_config()


def _install_hooks(app: Flask) -> None:
    from .models import models
    from .store.cart import Cart
    from .store.deployment import gate

    app.before_request(gate)

    @login_manager.user_loader
    def load_user(user_id: str) -> models.User | None:
        return models.User.get_by_id(user_id)

    @app.context_processor
    def inject_cart() -> Dict[str, Any]:
        return {"cart_count": Cart.load(session).count}


def create_app(config_name: Optional[str] = None, test_config: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Build the storefront app. ``config_name`` picks a class from
    ``config_by_name`` (``FLASK_ENV`` when omitted); ``test_config`` is applied last.
    """
    config_name = config_name or os.getenv("FLASK_ENV", "default")
    app = Flask(__name__, instance_relative_config=True)

    config_class = config_by_name[config_name]
    app.config.from_object(config_class)
    app.config.from_envvar("FAMOUS_SINCE_SETTINGS", silent=True)
    if test_config:
        app.config.update(test_config)
    config_class.init_app(app)

    setup_logging(app)
    init_extensions(app)
    db.init_app(app)

    from .blueprints import init_blueprints
    from .utils.error_handlers import register_error_handlers

    with app.app_context():
        _prepare_database()
    _install_hooks(app)
    init_blueprints(app)
    register_error_handlers(app)

    app.logger.info("Famous Since ready (%s, %s database)", config_name, db.backend)
    return app
