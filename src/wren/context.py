"""Request-scoped context via ContextVar.

``request_var`` holds the ``Request`` being dispatched in the current
task. The ASGI handler sets it before dispatch and resets it after.
Accessing it outside a request raises ``LookupError``.

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    free-threading. No locks needed.
"""

from contextvars import ContextVar

from wren.http.request import Request

request_var: ContextVar[Request] = ContextVar("wren_request")
"""The current request. Set by the ASGI handler before dispatch."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()
