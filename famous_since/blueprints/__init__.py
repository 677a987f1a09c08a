"""
Each blueprint package calls ``register_blueprint`` when imported; the app
factory then calls ``init_blueprints(app)`` once. The registry outlives any
single app, so the test suite can build many apps from the same blueprints.
"""
from typing import Dict, Optional, Tuple

from flask import Blueprint, Flask

from famous_since.utils.logging import get_logger

log = get_logger(__name__)

BLUEPRINTS: Dict[str, Tuple[Blueprint, Optional[str]]] = {}


def register_blueprint(bp: Blueprint, *, url_prefix: Optional[str] = None) -> None:
    BLUEPRINTS[bp.name] = (bp, url_prefix)


def init_blueprints(app: Flask) -> None:
    for name, (bp, prefix) in BLUEPRINTS.items():
        app.register_blueprint(bp, url_prefix=prefix)
        log.debug("Mounted %s at %s", name, prefix or "/")
    log.info("Mounted blueprints: %s", ", ".join(BLUEPRINTS))


from . import admin, api, main, shop, user  # noqa: E402,F401
