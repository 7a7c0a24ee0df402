from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from jsonpad.extensions.logging import get_logger

logger = get_logger(__name__, class_name="ErrorHandler")


def add_error_handlers_middleware(app):
    """
    Render every error as a JSON document.

    These bodies are what the JSON-P stage tunnels when ``JSONP_RETURN_ERRORS``
    is enabled, so they must carry a JSON content type.
    """

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        # flask_smorest.abort stores its keyword arguments on ``data``
        message = (getattr(e, "data", None) or {}).get("message") or e.description
        logger.error(f"[ERROR] {request.method} {request.path} {e.code} - {message}")
        return jsonify({
            "ok": False,
            "code": e.name.upper().replace(" ", "_"),
            "message": message,
        }), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        # Non-HTTP (crash)
        logger.critical(f"[CRITICAL] {request.method} {request.path} Unhandled error: {e}", exc_info=True)
        return jsonify({
            "ok": False,
            "code": "INTERNAL_ERROR",
            "message": "Internal Server Error",
        }), 500
