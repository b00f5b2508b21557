"""HTTP response with a write-once terminal.

Handlers shape the response (status, headers, content type) and then
finish it with exactly one terminal write: ``send``, ``json``,
``send_status``, ``redirect`` or ``end``. Every write after that raises
``ResponseAlreadySent``.
"""

import json as json_module
import logging
import re
from http import HTTPStatus
from typing import Any

from wren._internal.types import FinishCallback
from wren.errors import ResponseAlreadySent

logger = logging.getLogger("wren.server")

_DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"
_HEADER_NAME = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


def _check_header(name: str, value: str) -> None:
    if not isinstance(name, str) or not _HEADER_NAME.fullmatch(name):
        msg = f"Invalid header name {name!r}."
        raise ValueError(msg)
    if not isinstance(value, str):
        msg = f"Header {name!r} value must be str, got {type(value).__name__}."
        raise ValueError(msg)
    if "\r" in value or "\n" in value:
        msg = f"Header {name!r} value contains a line break."
        raise ValueError(msg)
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        msg = f"Header {name!r} value {value!r} is not latin-1 encodable."
        raise ValueError(msg) from None


def reason_phrase(status: int) -> str:
    """Standard reason phrase for *status*, or the number itself."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return str(status)


class Response:
    """A mutable response that can be finished only once.

    Shaping methods return ``self`` so calls chain::

        res.status(201).set_header("Location", "/users/7").json(user)
    """

    __slots__ = ("_finish_callbacks", "_headers", "_sent", "body", "status_code")

    def __init__(self) -> None:
        self.status_code: int = 200
        self.body: bytes = b""
        self._headers: dict[str, tuple[str, str]] = {}
        self._sent: bool = False
        self._finish_callbacks: list[FinishCallback] = []

    def __repr__(self) -> str:
        state = "sent" if self._sent else "open"
        return f"<Response {self.status_code} {state}>"

    # -- State --

    @property
    def sent(self) -> bool:
        """True once a terminal write has happened."""
        return self._sent

    @property
    def headers(self) -> tuple[tuple[str, str], ...]:
        """Headers in insertion order, with their original casing."""
        return tuple(self._headers.values())

    @property
    def text(self) -> str:
        """Body as string."""
        return self.body.decode("utf-8")

    def get_header(self, name: str) -> str | None:
        entry = self._headers.get(name.lower())
        return entry[1] if entry else None

    # -- Shaping (allowed until the terminal write) --

    def status(self, code: int) -> "Response":
        """Set the status code."""
        self._check_open()
        self.status_code = code
        return self

    def set_header(self, name: str, value: str) -> "Response":
        """Set a header, replacing any previous value with the same name.

        Raises ``ValueError`` when the name is not an HTTP token or the
        value cannot be sent as a latin-1 header line.
        """
        self._check_open()
        _check_header(name, value)
        self._headers[name.lower()] = (name, value)
        return self

    def remove_header(self, name: str) -> "Response":
        self._check_open()
        self._headers.pop(name.lower(), None)
        return self

    def content_type(self, value: str) -> "Response":
        """Set the Content-Type header."""
        return self.set_header("Content-Type", value)

    def on_finish(self, callback: FinishCallback) -> None:
        """Run *callback(response)* once, right after the terminal write."""
        self._finish_callbacks.append(callback)

    # -- Terminal writes --

    def send(self, body: str | bytes | dict[str, Any] | list[Any] | None = None) -> None:
        """Finish the response with *body*.

        ``str`` defaults to HTML, ``bytes`` to octet-stream, and dicts or
        lists are serialized as JSON. An explicit Content-Type wins.
        """
        if isinstance(body, dict | list):
            self.json(body)
            return
        self._check_open()
        if body is None:
            data = b""
        elif isinstance(body, str):
            data = body.encode("utf-8")
            self._default_content_type(_DEFAULT_CONTENT_TYPE)
        elif isinstance(body, bytes | bytearray | memoryview):
            data = bytes(body)
            self._default_content_type("application/octet-stream")
        else:
            msg = (
                f"Cannot send a body of type {type(body).__name__}; "
                "use str, bytes, dict, list or None."
            )
            raise TypeError(msg)
        self._finish(data)

    def json(self, obj: Any) -> None:
        """Finish the response with *obj* serialized as JSON."""
        self._check_open()
        data = json_module.dumps(obj, separators=(",", ":")).encode("utf-8")
        self._default_content_type("application/json")
        self._finish(data)

    def send_status(self, code: int) -> None:
        """Finish the response with *code* and its reason phrase as the body."""
        self.status(code).content_type("text/plain; charset=utf-8")
        self.send(reason_phrase(code))

    def redirect(self, url: str, status: int = 302) -> None:
        """Finish the response as a redirect to *url*."""
        self.status(status).set_header("Location", url)
        self.send(f"{reason_phrase(status)}. Redirecting to {url}")

    def end(self) -> None:
        """Finish the response with whatever has been set, and no body."""
        self._check_open()
        self._finish(b"")

    # -- Internal --

    def _default_content_type(self, value: str) -> None:
        if "content-type" not in self._headers:
            self._headers["content-type"] = ("Content-Type", value)

    def _check_open(self) -> None:
        if self._sent:
            msg = "Response already sent; no further writes are allowed."
            raise ResponseAlreadySent(msg)

    def _finish(self, data: bytes) -> None:
        self.body = data
        self._sent = True
        callbacks, self._finish_callbacks = self._finish_callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Response finish callback %r failed", callback)
