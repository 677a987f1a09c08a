from typing import TYPE_CHECKING

import redis
from flask import Flask
from flask_login import LoginManager
from flask_wtf import CSRFProtect
from redis.exceptions import RedisError

from famous_since.utils.logging import get_logger

if TYPE_CHECKING:
    from redis import Redis

log = get_logger(__name__)

login_manager = LoginManager()
login_manager.login_view = "user.login"
login_manager.login_message = "Please sign in to continue."
login_manager.login_message_category = "warning"

csrf = CSRFProtect()


class RedisClient:
    """Holds the app's Redis connection; values come back as ``str``."""

    def __init__(self) -> None:
        self._client: "Redis[str] | None" = None

    def init_app(self, app: Flask) -> None:
        self._client = redis.from_url(app.config["REDIS_URL"], decode_responses=True)
        app.extensions["redis"] = self

    @property
    def client(self) -> "Redis[str]":
        if self._client is None:
            raise RuntimeError("RedisClient.init_app() has not been called")
        return self._client

    def available(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError as e:
            log.warning("Redis ping failed: %s", e)
            return False


redis_client = RedisClient()


def init_extensions(app: Flask) -> None:
    login_manager.init_app(app)
    csrf.init_app(app)
    redis_client.init_app(app)
    if not redis_client.available():
        log.warning("Redis at %s is unreachable, site config will be read from the database", app.config["REDIS_URL"])
