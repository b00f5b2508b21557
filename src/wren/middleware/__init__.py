"""Middleware: ordinary ``(request, response, next)`` handlers.

A middleware is any callable matching:
    def mw(request: Request, response: Response, next: Next) -> None

Register it with ``app.use(mw)`` or ``app.use("/prefix", mw)``.

Built-in middleware:
    CORSMiddleware -- Cross-Origin Resource Sharing
    JSONBody -- Parse application/json bodies into request.body
    RequestLogger -- One access log line per finished response
    SecurityHeadersMiddleware -- X-Frame-Options, X-Content-Type-Options, Referrer-Policy
    URLEncodedBody -- Parse form bodies into request.body
"""

from wren.middleware.body import JSONBody, URLEncodedBody
from wren.middleware.cors import CORSConfig, CORSMiddleware
from wren.middleware.protocol import Middleware, Next
from wren.middleware.request_logger import RequestLogger
from wren.middleware.security_headers import (
    SecurityHeadersConfig,
    SecurityHeadersMiddleware,
)

__all__ = [
    "CORSConfig",
    "CORSMiddleware",
    "JSONBody",
    "Middleware",
    "Next",
    "RequestLogger",
    "SecurityHeadersConfig",
    "SecurityHeadersMiddleware",
    "URLEncodedBody",
]
