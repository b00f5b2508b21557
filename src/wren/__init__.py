"""Wren: an Express-style routing and middleware core for ASGI.

Handlers are called ``(request, response, next)`` in registration order;
error handlers are called ``(error, request, response, next)``.

Basic usage::

    from wren import App

    app = App()

    @app.get("/users/:id")
    def show_user(req, res, next):
        res.json({"id": req.params["id"]})

    app.run()

Serving with ``app.run()`` needs the server extra (``pip install wren[server]``).
"""

__version__ = "0.1.0"
__all__ = [
    "ANY",
    "AbortSignal",
    "App",
    "AppConfig",
    "BadRequest",
    "ChainStalled",
    "ConfigurationError",
    "ContinuationError",
    "DispatchResult",
    "DispatchState",
    "Dispatcher",
    "HTTPError",
    "Handler",
    "MalformedRegistration",
    "NotFound",
    "PayloadTooLarge",
    "Request",
    "Response",
    "ResponseAlreadySent",
    "Router",
    "WrenError",
    "error_handler",
    "get_request",
]

_ERRORS = frozenset(
    {
        "BadRequest",
        "ChainStalled",
        "ConfigurationError",
        "ContinuationError",
        "HTTPError",
        "MalformedRegistration",
        "NotFound",
        "PayloadTooLarge",
        "ResponseAlreadySent",
        "WrenError",
    }
)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import wren`` fast while providing a clean top-level API.
    """
    if name == "App":
        from wren.app import App

        return App

    if name == "AppConfig":
        from wren.config import AppConfig

        return AppConfig

    if name == "Request":
        from wren.http.request import Request

        return Request

    if name == "Response":
        from wren.http.response import Response

        return Response

    if name in ("ANY", "Handler", "Router", "error_handler"):
        import wren.routing

        return getattr(wren.routing, name)

    if name in ("AbortSignal", "DispatchResult", "DispatchState", "Dispatcher"):
        import wren.dispatch

        return getattr(wren.dispatch, name)

    if name in _ERRORS:
        import wren.errors

        return getattr(wren.errors, name)

    if name == "get_request":
        from wren.context import get_request

        return get_request

    msg = f"module 'wren' has no attribute {name!r}"
    raise AttributeError(msg)
