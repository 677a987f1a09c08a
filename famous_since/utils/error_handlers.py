"""
Flask error handlers. API callers (``/api/...``, JSON requests) get
``{"error", "details"}``; browsers get a page from ``templates/errors``.
"""
from flask import Flask, Response, jsonify, render_template, request
from werkzeug.exceptions import HTTPException

from famous_since.utils.exceptions import FamousSinceError
from famous_since.utils.logging import get_logger

log = get_logger(__name__)

PAGE_TEMPLATES = {403: "errors/403.html", 404: "errors/404.html"}


def wants_json() -> bool:
    if request.path.startswith("/api/") or request.is_json:
        return True
    return request.accept_mimetypes.accept_json and not request.accept_mimetypes.accept_html


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException) -> tuple[Response | str, int]:
        code = error.code or 500
        if wants_json():
            return jsonify(error=error.name, details={"description": error.description}), code
        template = PAGE_TEMPLATES.get(code)
        if template:
            return render_template(template), code
        return render_template("errors/error.html", error=error), code

    @app.errorhandler(FamousSinceError)
    def famous_since_error(error: FamousSinceError) -> tuple[Response | str, int]:
        log.warning("%s (%d): %s %s", type(error).__name__, error.status_code, error, error.payload or "")
        if wants_json():
            return jsonify(error=error.message, details=error.payload), error.status_code
        return render_template("errors/error.html", error=error), error.status_code

    @app.errorhandler(500)
    def internal_error(error: Exception) -> tuple[Response | str, int]:
        original = getattr(error, "original_exception", None) or error
        log.error("Unhandled %s on %s", type(original).__name__, request.path, exc_info=original)
        if wants_json():
            return jsonify(error="internal_server_error", details={}), 500
        return render_template("errors/500.html"), 500
