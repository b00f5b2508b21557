"""Security headers middleware: X-Frame-Options, X-Content-Type-Options, Referrer-Policy.

Sets common security headers (clickjacking, MIME sniffing, referrer
leakage) on the response before the rest of the chain runs, and drops
any ``X-Powered-By`` header.
"""

from dataclasses import dataclass

from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class SecurityHeadersConfig:
    """Configuration for security headers.

    All values are applied as-is. Use standard header values.
    ``None`` leaves a header out.
    """

    x_frame_options: str = "DENY"
    x_content_type_options: str = "nosniff"
    referrer_policy: str = "strict-origin-when-cross-origin"
    content_security_policy: str | None = (
        "default-src 'self'; base-uri 'self'; frame-ancestors 'none'; object-src 'none'"
    )
    strict_transport_security: str | None = None


class SecurityHeadersMiddleware:
    """Add security headers to every response.

    Handlers later in the chain may still override any of these headers
    before they finish the response.

    Usage::

        from wren.middleware import SecurityHeadersMiddleware

        app.use(SecurityHeadersMiddleware())

    Or with custom config::

        app.use(SecurityHeadersMiddleware(SecurityHeadersConfig(
            x_frame_options="SAMEORIGIN",
            strict_transport_security="max-age=63072000; includeSubDomains",
        )))
    """

    __slots__ = ("config",)

    def __init__(self, config: SecurityHeadersConfig | None = None) -> None:
        self.config = config or SecurityHeadersConfig()

    def __call__(self, request: Request, response: Response, next: Next) -> None:
        config = self.config
        response.remove_header("X-Powered-By")
        response.set_header("X-Frame-Options", config.x_frame_options)
        response.set_header("X-Content-Type-Options", config.x_content_type_options)
        response.set_header("Referrer-Policy", config.referrer_policy)
        if config.content_security_policy:
            response.set_header("Content-Security-Policy", config.content_security_policy)
        if config.strict_transport_security:
            response.set_header("Strict-Transport-Security", config.strict_transport_security)
        next()
