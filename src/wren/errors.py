"""Wren exception hierarchy.

Shared across Router, Dispatcher, App, and middleware so every module
raises and catches the same types.
"""

from dataclasses import dataclass


class WrenError(Exception):
    """Base for all wren-specific errors."""


class ConfigurationError(WrenError):
    """Raised when app configuration is invalid.

    Typically raised at registration time, before the app serves requests.
    """


class MalformedRegistration(ConfigurationError):
    """A route pattern or handler could not be registered.

    Raised immediately by ``register``/``use`` so a broken route table
    fails process startup instead of the first request.
    """


class ResponseAlreadySent(WrenError):
    """A handler tried to write to a response that was already finished."""


class ContinuationError(WrenError):
    """``next`` was called twice, or after its handler returned."""


class ChainStalled(WrenError):
    """A handler returned without responding or calling ``next``."""

    def __init__(self, handler_name: str) -> None:
        self.handler_name = handler_name
        super().__init__(
            f"Handler {handler_name!r} returned without sending a response "
            "or calling next()."
        )


@dataclass(frozen=True, slots=True)
class HTTPError(WrenError):
    """An error that maps directly to an HTTP status code.

    Raise it (or pass it to ``next``) from any handler. When no error
    handler recovers, the default error response uses its status,
    detail, and headers.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """400: the request body or parameters could not be understood."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class NotFound(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """404: no handler produced a response for the request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """413: the request body exceeded ``AppConfig.max_body_size``."""

    def __init__(self, limit: int, detail: str = "") -> None:
        super().__init__(
            status=413,
            detail=detail or f"Request body exceeds the {limit} byte limit",
        )
