"""CORS middleware.

Answers preflight requests itself and adds the CORS headers to every
other response from an allowed origin before passing control on.
"""

from dataclasses import dataclass

from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS middleware configuration.

    All fields have secure defaults (nothing is allowed).
    Override what you need::

        CORSConfig(
            allow_origins=("https://example.com",),
            allow_methods=("GET", "POST"),
        )
    """

    allow_origins: tuple[str, ...] = ()
    allow_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
    allow_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = False
    max_age: int = 600  # 10 minutes


class CORSMiddleware:
    """Standards-compliant CORS middleware.

    Handles:
    - Preflight ``OPTIONS`` requests (finishes with 204 and CORS headers)
    - Simple and actual requests (sets CORS headers, then ``next()``)
    - Credential support (``Access-Control-Allow-Credentials``)
    - Wildcard origins (``"*"``) when credentials are disabled

    Usage::

        app.use(CORSMiddleware(CORSConfig(
            allow_origins=("https://example.com",),
            allow_methods=("GET", "POST", "PUT"),
            allow_headers=("Content-Type", "Authorization"),
        )))
    """

    __slots__ = ("config",)

    def __init__(self, config: CORSConfig | None = None) -> None:
        self.config = config or CORSConfig()

    def _is_allowed_origin(self, origin: str) -> bool:
        if "*" in self.config.allow_origins:
            return True
        return origin in self.config.allow_origins

    def _set_cors_headers(self, response: Response, origin: str) -> None:
        cfg = self.config

        if "*" in cfg.allow_origins and not cfg.allow_credentials:
            response.set_header("Access-Control-Allow-Origin", "*")
        else:
            response.set_header("Access-Control-Allow-Origin", origin)
            response.set_header("Vary", "Origin")

        if cfg.allow_credentials:
            response.set_header("Access-Control-Allow-Credentials", "true")

        if cfg.expose_headers:
            response.set_header("Access-Control-Expose-Headers", ", ".join(cfg.expose_headers))

    def _preflight(self, response: Response, origin: str, request_method: str | None) -> None:
        cfg = self.config
        self._set_cors_headers(response, origin)

        if request_method:
            response.set_header("Access-Control-Allow-Methods", ", ".join(cfg.allow_methods))
        if cfg.allow_headers:
            response.set_header("Access-Control-Allow-Headers", ", ".join(cfg.allow_headers))
        response.set_header("Access-Control-Max-Age", str(cfg.max_age))

        response.status(204).end()

    def __call__(self, request: Request, response: Response, next: Next) -> None:
        origin = request.headers.get("origin")

        # No Origin header, or an origin we don't serve: not our business
        if origin is None or not self._is_allowed_origin(origin):
            next()
            return

        if request.method == "OPTIONS":
            self._preflight(response, origin, request.headers.get("access-control-request-method"))
            return

        self._set_cors_headers(response, origin)
        next()
