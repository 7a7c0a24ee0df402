
import sys
import time
import os
import logging
import threading
from typing import Any, Dict, Optional

_CONFIGURED = False
_LOCK = threading.Lock()
_VERBOSE_FORMAT = (
    "[%(asctime)s.%(msecs)03d] "
    "[+%(delta_ms)sms] "
    "[%(levelname)s] "
    "[service=%(service)s] "
    "[module=%(module_name)s] "
    "[class=%(class_name)s] "
    "[func=%(func_name)s] "
    "[file=%(pathname)s:%(lineno)d] "
    "[thread=%(threadName)s pid=%(process)d] "
    "- %(message)s"
)
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_THREAD_LOCAL = threading.local()


def _populate_fields(record: logging.LogRecord, service: Optional[str]) -> None:
    record.module_name = getattr(record, "module_name", record.module)
    record.func_name = getattr(record, "func_name", record.funcName)
    record.class_name = getattr(record, "class_name", "-") or "-"
    record.service = getattr(record, "service", service) or "-"


class _ContextFilter(logging.Filter):
    """Fill the optional structured fields so every handler can format them."""
    def __init__(self, service: Optional[str] = None) -> None:
        super().__init__()
        self._service: Optional[str] = service

    def filter(self, record: logging.LogRecord) -> bool:
        _populate_fields(record, self._service)
        return True


class StructuredFormatter(logging.Formatter):
    def __init__(self, fmt: str = _VERBOSE_FORMAT, datefmt: str = _DATE_FORMAT, service: Optional[str] = None):
        super().__init__(fmt=fmt, datefmt=datefmt, style="%")
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        # Records created by non-root loggers skip the root filter
        _populate_fields(record, self._service)

        # Milliseconds since the previous record on this thread
        now = time.perf_counter()
        last = getattr(_THREAD_LOCAL, "last_log_ts", None)
        delta_ms = 0.0 if last is None else (now - last) * 1000.0
        _THREAD_LOCAL.last_log_ts = now
        record.delta_ms = f"{delta_ms:.3f}"

        return super().format(record)


class _LoggerAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Any:
        extra = kwargs.setdefault("extra", {})
        for key, value in self.extra.items():
            extra.setdefault(key, value)
        return msg, kwargs

    def error(self, msg, *args, **kwargs):
        if "exc_info" not in kwargs and sys.exc_info()[0] is not None:
            kwargs["exc_info"] = True
        return super().error(msg, *args, **kwargs)


def setup_logging() -> None:
    """Configure root logger with structured logging handlers."""

    global _CONFIGURED
    with _LOCK:
        if _CONFIGURED:
            return

        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        service = os.getenv("SERVICE_NAME", "jsonpad")

        root = logging.getLogger()
        root.setLevel(log_level)
        root.handlers.clear()
        root.filters.clear()

        formatter = StructuredFormatter(service=service)
        root.addFilter(_ContextFilter(service=service))

        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

        logging.captureWarnings(True)

        _CONFIGURED = True


def get_logger(name: Optional[str] = None, **context: Any) -> logging.Logger:
    """Return a structured logger optionally pre-bound with context."""
    if not _CONFIGURED:
        setup_logging()

    base_logger = logging.getLogger(name or "jsonpad")
    base_logger.propagate = True
    if context:
        return _LoggerAdapter(base_logger, context)
    return base_logger
