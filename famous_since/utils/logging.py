"""
Logging for the storefront.

``setup_logging(app)`` is called once by the app factory; modules then ask for
``get_logger(__name__)`` and get a child of the Flask logger. Every record is
stamped with the request path (or ``-`` outside a request) so checkout and
webhook lines can be told apart in a shared log.
"""
import logging
import logging.handlers
import os
from typing import Optional

from flask import Flask, current_app, has_app_context, has_request_context, request

from famous_since.config import DEFAULT_LOG_DATEFMT, DEFAULT_LOG_FORMAT, DEFAULT_LOG_LEVEL

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("stripe", "urllib3", "PIL", "werkzeug")

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class RequestFilter(logging.Filter):
    """Adds ``record.path`` and turns stray byte messages into text."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.path = request.path if has_request_context() else "-"
        if isinstance(record.msg, bytes):
            record.msg = record.msg.decode("utf-8", errors="replace")
        return True


def _level_for(app: Flask) -> int:
    if app.debug:
        return logging.DEBUG
    name = str(app.config.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _file_handler(app: Flask, path: str) -> Optional[logging.Handler]:
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
        )
    except OSError as exc:
        app.logger.warning("File logging disabled, cannot open %s: %s", path, exc)
        return None


def setup_logging(app: Flask) -> None:
    """
    Point the root logger and ``app.logger`` at the same handlers.
    Running it again (one app per test) replaces the previous handlers.
    """
    level = _level_for(app)
    formatter = logging.Formatter(
        app.config.get("LOG_FORMAT") or DEFAULT_LOG_FORMAT,
        datefmt=app.config.get("LOG_DATEFMT") or DEFAULT_LOG_DATEFMT,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if app.config.get("LOG_FILE"):
        handler = _file_handler(app, app.config["LOG_FILE"])
        if handler is not None:
            handlers.append(handler)

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(RequestFilter())

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(level)

    app.logger.handlers = list(handlers)
    app.logger.setLevel(level)
    app.logger.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    app.logger.debug("Logging at %s to %d handler(s)", logging.getLevelName(level), len(handlers))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """``get_logger(__name__)`` gives ``<app logger>.<last module part>``."""
    base = current_app.logger if has_app_context() else logging.getLogger("famous_since")
    if not name or name == "__main__":
        return base
    return base.getChild(name.rsplit(".", 1)[-1])
