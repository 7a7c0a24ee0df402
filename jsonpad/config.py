import os

_TRUE_VALUES = {"1", "true", "yes", "on"}


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean switch from the environment."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


class Config:
    """Base application configuration."""

    # Application Settings
    PROPAGATE_EXCEPTIONS = True

    # API Settings
    API_TITLE = "JSONPad API"
    API_VERSION = "1.0.0"
    API_DESCRIPTION = "JSON API with JSONP support for script-tag clients"
    OPENAPI_VERSION = "3.0.3"

    # JSONP Settings
    JSONP_CALLBACK_PARAM = os.getenv("JSONP_CALLBACK_PARAM", "callback")
    JSONP_CARRIAGE_RETURN = env_flag("JSONP_CARRIAGE_RETURN")
    JSONP_RETURN_ERRORS = env_flag("JSONP_RETURN_ERRORS")
    JSONP_CALLBACK_PATTERN = os.getenv("JSONP_CALLBACK_PATTERN") or None
