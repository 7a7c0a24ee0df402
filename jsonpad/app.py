from flask import Flask

from jsonpad.config import Config
from jsonpad.extensions import (
    logging as log_ext
)
from jsonpad.routes import init_routes
from jsonpad.middleware import init_middleware


def create_app(config_object=Config) -> Flask:
    """
    Factory to create Flask app instance
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Logging
    log_ext.setup_logging()
    logger = log_ext.get_logger(__name__)
    app.logger = logger

    # Routes
    init_routes(app)

    # Middleware, last so the JSON-P stage wraps the finished app
    init_middleware(app)

    logger.info("[INIT] JSONPad API")

    return app


# Gunicorn entry point
app = create_app()

# Run locally for testing
if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000, debug=True)
