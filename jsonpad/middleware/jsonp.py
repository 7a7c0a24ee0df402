"""
JSON-P support for any WSGI application.

The stage strips the callback and ``_`` parameters from the query string
before the wrapped application sees it, so caches sitting behind it do not
store one copy per callback name. JSON responses are then padded with the
requested callback. With ``return_errors`` enabled, error responses are
tunnelled through a ``200`` so that script-tag loaders can still read them::

    cb({"a": 1})
    cb(null, {"statusCode": 404, "headers": {...}, "body": "..."})

Nothing changes when no callback is requested.
"""

import json
import re
from dataclasses import dataclass, replace
from itertools import chain
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import unquote_plus

from werkzeug.datastructures import Headers
from werkzeug.wrappers import Request
from werkzeug.wsgi import ClosingIterator

from jsonpad.extensions.logging import get_logger

logger = get_logger(__name__, class_name="JSONPMiddleware")

JAVASCRIPT_MIMETYPE = "application/javascript"
CACHE_BUSTER_PARAM = "_"
TUNNEL_STATUS = "200 OK"

_JSON_CONTENT_TYPE = re.compile("json", re.IGNORECASE)

WSGIEnviron = Dict[str, Any]
WSGIApp = Callable[[WSGIEnviron, Callable], Iterable[bytes]]
ResponseTriple = Tuple[str, Headers, Iterable[bytes]]


@dataclass(frozen=True)
class JSONPOptions:
    """Settings of a :class:`JSONPMiddleware`, fixed once constructed."""

    callback_param: str = "callback"
    carriage_return: bool = False
    return_errors: bool = False
    callback_pattern: Optional[str] = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "JSONPOptions":
        """Build options from ``JSONP_*`` keys of a Flask style config mapping."""
        defaults = cls()
        return cls(
            callback_param=config.get("JSONP_CALLBACK_PARAM") or defaults.callback_param,
            carriage_return=bool(config.get("JSONP_CARRIAGE_RETURN", defaults.carriage_return)),
            return_errors=bool(config.get("JSONP_RETURN_ERRORS", defaults.return_errors)),
            callback_pattern=config.get("JSONP_CALLBACK_PATTERN") or None,
        )


def strip_query_params(query_string: str, names: Iterable[str]) -> str:
    """
    Remove every parameter whose key is one of ``names`` from a raw query string.

    The remaining parameters keep their order and their original encoding.

    Args:
        query_string (str): Raw ``QUERY_STRING`` value.
        names (Iterable[str]): Decoded parameter names to drop.

    Returns:
        str: The rewritten query string.
    """
    names = set(names)
    kept = [
        segment
        for segment in query_string.split("&")
        if unquote_plus(segment.split("=", 1)[0]) not in names
    ]
    return "&".join(kept)


def is_json_content_type(content_type: Optional[str]) -> bool:
    return bool(content_type) and _JSON_CONTENT_TYPE.search(content_type) is not None


def status_code(status: str) -> int:
    return int(status.split(None, 1)[0])


def _to_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, bytes):
        return chunk
    if isinstance(chunk, (bytearray, memoryview)):
        return bytes(chunk)
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return str(chunk).encode("utf-8")


def drain_body(body: Iterable[Any]) -> bytes:
    """
    Read a response body into a single buffer and release it.

    ``close()`` is called exactly once when the body provides it, whether
    iteration completes or fails. Failures propagate.
    """
    try:
        return b"".join(_to_bytes(chunk) for chunk in body)
    finally:
        close = getattr(body, "close", None)
        if close is not None:
            close()


def headers_to_json(headers: Headers) -> Dict[str, Any]:
    """
    Map response headers to a JSON object.

    A header sent once maps to its value, a repeated header to the list of its
    values. Names are grouped case-insensitively and keep the spelling and
    position of their first occurrence.
    """
    grouped: Dict[str, List[str]] = {}
    spelling: Dict[str, str] = {}
    for key, value in headers.items():
        folded = key.lower()
        if folded not in spelling:
            spelling[folded] = key
            grouped[key] = []
        grouped[spelling[folded]].append(value)
    return {key: values[0] if len(values) == 1 else values for key, values in grouped.items()}


def encode_error_envelope(status: int, headers: Headers, body: bytes) -> str:
    return json.dumps(
        {
            "statusCode": status,
            "headers": headers_to_json(headers),
            "body": body.decode("utf-8", errors="replace"),
        },
        separators=(",", ":"),
    )


class JSONPMiddleware:
    """
    WSGI middleware padding JSON responses of ``app`` with a JSON-P callback.

    Args:
        app: The wrapped WSGI application.
        options (JSONPOptions): Settings, defaults apply when omitted.
        **overrides: ``callback_param``, ``carriage_return``, ``return_errors``
            or ``callback_pattern`` replacing the matching option.
    """

    def __init__(self, app: WSGIApp, options: Optional[JSONPOptions] = None, **overrides: Any) -> None:
        self.app = app
        self.options = replace(options or JSONPOptions(), **overrides)
        pattern = self.options.callback_pattern
        self._callback_re = re.compile(pattern) if pattern else None

    def __call__(self, environ: WSGIEnviron, start_response: Callable) -> Iterable[bytes]:
        status, headers, body = self.handle(environ)
        start_response(status, headers.to_wsgi_list())
        return body

    def handle(self, environ: WSGIEnviron) -> ResponseTriple:
        """
        Run the wrapped application for ``environ`` and pad its response.

        Returns:
            ResponseTriple: ``(status, headers, body)``. ``body`` is the wrapped
            application's own iterable unless the response was rewritten.
        """
        path = environ.get("PATH_INFO", "")

        # Done before calling the app, so caching layers behind this stage
        # do not store a copy per callback name.
        callback = self._extract_callback(environ)
        environ["QUERY_STRING"] = strip_query_params(
            environ.get("QUERY_STRING", ""),
            (CACHE_BUSTER_PARAM, self.options.callback_param),
        )

        status, headers, body = self._call_app(environ)

        is_json = is_json_content_type(headers.get("Content-Type"))
        tunnel = self._is_tunnelable_error(status)

        if callback and (is_json or tunnel):
            payload = drain_body(body)
            if tunnel:
                # Error is tunnelled through the JSON-P call
                envelope = encode_error_envelope(status_code(status), headers, payload)
                padded = f"{callback}(null, {envelope})".encode("utf-8")
                logger.debug("[JSONP] %s tunnelled %s as %s", path, status, TUNNEL_STATUS)
                status = TUNNEL_STATUS
            else:
                padded = b"".join((callback.encode("utf-8"), b"(", payload, b")"))
                logger.debug("[JSONP] %s padded with callback %s", path, callback)
            headers["Content-Type"] = JAVASCRIPT_MIMETYPE
            headers["Content-Length"] = str(len(padded))
            return status, headers, [padded]

        if self.options.carriage_return and is_json:
            payload = drain_body(body) + b"\n"
            headers["Content-Length"] = str(len(payload))
            logger.debug("[JSONP] %s appended carriage return", path)
            return status, headers, [payload]

        return status, headers, body

    def _extract_callback(self, environ: WSGIEnviron) -> Optional[str]:
        args = Request(environ, populate_request=False, shallow=True).args
        values = args.getlist(self.options.callback_param)
        callback = values[-1] if values else None
        if not callback:
            return None
        if self._callback_re is not None and not self._callback_re.fullmatch(callback):
            logger.warning(
                "[JSONP] Rejected callback name %r for %s",
                callback,
                environ.get("PATH_INFO", ""),
            )
            return None
        return callback

    def _is_tunnelable_error(self, status: str) -> bool:
        return self.options.return_errors and status_code(status) >= 400

    def _call_app(self, environ: WSGIEnviron) -> ResponseTriple:
        """
        Call the wrapped application and capture its response.

        The returned body is the application's iterable unless output was
        pushed through ``write()`` or had to be pulled to receive the headers.
        """
        captured: List[Tuple[str, List[Tuple[str, str]]]] = []
        written: List[bytes] = []

        def start_response(status, headers, exc_info=None):
            # Nothing was sent upstream yet, so a later call simply replaces
            # the status and headers.
            captured[:] = [(status, headers)]
            return written.append

        app_iter = self.app(environ, start_response)

        if not captured:
            # start_response may be deferred until the first chunk is produced
            close = getattr(app_iter, "close", None)
            iterator = iter(app_iter)
            try:
                for chunk in iterator:
                    written.append(chunk)
                    if captured:
                        break
            except BaseException:
                if close is not None:
                    close()
                raise
            if not captured:
                if close is not None:
                    close()
                raise RuntimeError("WSGI application returned without calling start_response")
            app_iter = ClosingIterator(chain(written, iterator), close)
        elif written:
            app_iter = ClosingIterator(chain(written, app_iter), getattr(app_iter, "close", None))

        status, headers = captured[0]
        return status, Headers(headers), app_iter
