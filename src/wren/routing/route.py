"""Handler, Route and RouteMatch frozen dataclasses."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from wren._internal.types import ErrorHandlerFunc, HandlerFunc
from wren.errors import MalformedRegistration
from wren.routing.pattern import PathPattern

if TYPE_CHECKING:
    from wren.routing.router import Router

ANY = "*"
"""Method wildcard: the route answers every HTTP method."""


class HandlerKind(Enum):
    NORMAL = "normal"
    ERROR = "error"

    @property
    def arity(self) -> int:
        return 4 if self is HandlerKind.ERROR else 3


@dataclass(frozen=True, slots=True)
class Handler:
    """A handler tagged with its calling convention.

    Normal handlers are called ``(request, response, next)``; error
    handlers are called ``(error, request, response, next)``. The tag is
    fixed when the handler is registered, never guessed per request.
    """

    func: Callable[..., Any]
    kind: HandlerKind = HandlerKind.NORMAL

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", None) or type(self.func).__name__

    @property
    def is_error_handler(self) -> bool:
        return self.kind is HandlerKind.ERROR


def error_handler(func: ErrorHandlerFunc) -> Handler:
    """Tag *func* as an error handler for ``use``/``register``.

    Usage::

        def on_error(err, req, res, next):
            res.status(500).send("Something broke!")

        app.use(error_handler(on_error))
    """
    return as_handler(Handler(func, HandlerKind.ERROR))


def as_handler(obj: Handler | HandlerFunc) -> Handler:
    """Normalize *obj* to a ``Handler``, validating its arity.

    Plain callables become normal handlers. Raises ``MalformedRegistration``
    when *obj* is not callable or cannot accept the positional arguments
    its kind is called with.
    """
    handler = obj if isinstance(obj, Handler) else Handler(obj)
    if not callable(handler.func):
        msg = f"Handler must be callable, got {type(handler.func).__name__}."
        raise MalformedRegistration(msg)

    try:
        sig = inspect.signature(handler.func)
    except (TypeError, ValueError):
        # Some builtins expose no signature; accept them as-is.
        return handler

    try:
        sig.bind(*([None] * handler.kind.arity))
    except TypeError:
        expected = (
            "(error, request, response, next)"
            if handler.is_error_handler
            else "(request, response, next)"
        )
        msg = (
            f"{handler.kind.value.capitalize()} handler {handler.name!r} must accept "
            f"{expected}; its signature is {sig}."
        )
        raise MalformedRegistration(msg) from None
    return handler


@dataclass(frozen=True, slots=True)
class Route:
    """A registered (method, pattern, handlers) binding.

    ``prefix`` routes come from ``use()``: they answer any path below their
    pattern. ``router`` is set when a sub-router is mounted; such a route
    has no handlers of its own.
    """

    method: str
    pattern: PathPattern
    handlers: tuple[Handler, ...] = ()
    prefix: bool = False
    router: Router | None = None

    @property
    def path(self) -> str:
        return self.pattern.source

    def matches_method(self, method: str) -> bool:
        if self.method == ANY or self.method == method:
            return True
        return method == "HEAD" and self.method == "GET"


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful lookup.

    ``matched_path`` is the portion of the path the pattern consumed;
    ``remaining_path`` is what a mounted router sees (always starts with ``/``).
    """

    route: Route
    params: dict[str, str]
    matched_path: str
    remaining_path: str = "/"
