"""Invoke helpers: call sync or async handlers uniformly.

Wren handlers can be ``def`` or ``async def``. Any code that calls
a user-provided handler must handle both cases. This module provides
a single helper so the sync/async check lives in exactly one place.

Usage::

    from wren._internal.invoke import invoke

    await invoke(handler.func, request, response, next)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any) -> Any:
    """Call *func* and await the result if it's awaitable.

    Works with both sync and async callables::

        def timing(req, res, next):
            req.state["start"] = time.monotonic()
            next()

        async def load_user(req, res, next):
            req.state["user"] = await users.get(req.params["id"])
            next()
    """
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
