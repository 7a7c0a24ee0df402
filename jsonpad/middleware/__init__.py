from flask import Flask

from jsonpad.middleware.errors import add_error_handlers_middleware
from jsonpad.middleware.jsonp import JSONPMiddleware, JSONPOptions


def add_jsonp_middleware(app: Flask) -> JSONPMiddleware:
    """Wrap the WSGI callable of ``app`` in the JSON-P stage."""
    options = JSONPOptions.from_config(app.config)
    app.wsgi_app = JSONPMiddleware(app.wsgi_app, options)
    app.logger.debug(
        "[INIT] JSON-P enabled param=%s carriage_return=%s return_errors=%s",
        options.callback_param,
        options.carriage_return,
        options.return_errors,
    )
    return app.wsgi_app


def init_middleware(app: Flask) -> None:
    """
    Register ALL global middlewares in the correct order.

    The order matters:
        1. errors → every failure becomes a JSON body
        2. jsonp → outermost WSGI wrapper, so it must be installed once the
           app is fully configured; it sees the final status, headers and body
    """

    # Error handlers (global)
    add_error_handlers_middleware(app)

    # WSGI middlewares
    add_jsonp_middleware(app)
