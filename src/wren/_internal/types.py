"""Shared type aliases used across wren modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Normal handler: (request, response, next), sync or async
HandlerFunc: TypeAlias = Callable[..., Any]

# Error handler: (error, request, response, next), sync or async
ErrorHandlerFunc: TypeAlias = Callable[..., Any]

# Response finish callback: receives the finished Response
FinishCallback: TypeAlias = Callable[[Any], None]
