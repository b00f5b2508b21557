"""Middleware protocol and the ``Next`` continuation type.

A middleware is any callable matching::

    def my_mw(request: Request, response: Response, next: Next) -> None: ...

``def`` and ``async def`` both work. No base class required; the
signature is checked when the middleware is registered, not its lineage.
"""

from typing import Any, Protocol

from wren.http.request import Request
from wren.http.response import Response


class Next(Protocol):
    """The one-shot continuation handed to each handler."""

    def __call__(self, error: Any = None) -> None: ...

    def route(self) -> None: ...


class Middleware(Protocol):
    """Protocol for wren middleware.

    Accepts both functions and callable objects::

        # Function middleware
        def timing(request: Request, response: Response, next: Next) -> None:
            start = time.monotonic()
            response.on_finish(lambda res: print(time.monotonic() - start))
            next()

        # Class middleware
        class RateLimiter:
            async def __call__(self, request, response, next) -> None:
                ...
    """

    def __call__(self, request: Request, response: Response, next: Next) -> Any: ...
