"""Access log middleware.

Logs one line per finished response through the ``wren.access`` logger.
The line is written from a ``Response.on_finish`` callback, so timing
covers every handler after this one, including error handlers and the
default error response.

Formats::

    combined  1.2.3.4 - - [10/Jun/2024:10:55:36 +0000] "GET /api HTTP/1.1" 200 12 "-" "curl/8.0"
    common    1.2.3.4 - - [10/Jun/2024:10:55:36 +0000] "GET /api HTTP/1.1" 200 12
    short     1.2.3.4 GET /api HTTP/1.1 200 12 - 0.512 ms
    tiny      GET /api 200 12 - 0.512 ms
    json      {"method": "GET", "path": "/api", "status": 200, ...}
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from wren.errors import ConfigurationError
from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import Next

logger = logging.getLogger("wren.access")

FORMATS = frozenset({"combined", "common", "short", "tiny", "json"})


@dataclass(frozen=True, slots=True)
class AccessRecord:
    """Everything one access log line can show."""

    remote_addr: str
    timestamp: datetime
    method: str
    url: str
    http_version: str
    status: int
    content_length: int
    referrer: str
    user_agent: str
    duration_ms: float
    request_id: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "remote_addr": self.remote_addr,
            "timestamp": self.timestamp.isoformat(),
            "method": self.method,
            "url": self.url,
            "http_version": self.http_version,
            "status": self.status,
            "content_length": self.content_length,
            "referrer": self.referrer,
            "user_agent": self.user_agent,
            "duration_ms": round(self.duration_ms, 3),
        }
        if self.request_id is not None:
            data["request_id"] = self.request_id
        return data

    def format(self, fmt: str) -> str:
        if fmt == "json":
            return json.dumps(self.to_dict())

        request_line = f"{self.method} {self.url} HTTP/{self.http_version}"
        if fmt == "tiny":
            return f"{self.method} {self.url} {self.status} {self.content_length} - {self.duration_ms:.3f} ms"
        if fmt == "short":
            return (
                f"{self.remote_addr} {request_line} {self.status} "
                f"{self.content_length} - {self.duration_ms:.3f} ms"
            )

        clf_time = self.timestamp.strftime("%d/%b/%Y:%H:%M:%S %z")
        line = f'{self.remote_addr} - - [{clf_time}] "{request_line}" {self.status} {self.content_length}'
        if fmt == "common":
            return line
        return f'{line} "{self.referrer}" "{self.user_agent}"'


class RequestLogger:
    """Log each request once its response is finished.

    Register it first so it sees every request, including the ones
    rejected by later middleware::

        app.use(RequestLogger())                  # combined format
        app.use(RequestLogger(format="json"))
        app.use(RequestLogger(skip_paths=("/health",)))

    With ``include_request_id`` the middleware sets an ``X-Request-ID``
    response header and adds the id to the log record.
    """

    __slots__ = ("format", "include_request_id", "level", "skip_paths")

    def __init__(
        self,
        format: str = "combined",
        *,
        level: int = logging.INFO,
        skip_paths: tuple[str, ...] = (),
        include_request_id: bool = False,
    ) -> None:
        if format not in FORMATS:
            msg = f"Unknown access log format {format!r}; expected one of {sorted(FORMATS)}."
            raise ConfigurationError(msg)
        self.format = format
        self.level = level
        self.skip_paths = frozenset(skip_paths)
        self.include_request_id = include_request_id

    def __call__(self, request: Request, response: Response, next: Next) -> None:
        if request.path in self.skip_paths:
            next()
            return

        started = time.perf_counter()
        request_id: str | None = None
        if self.include_request_id:
            request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
            response.set_header("X-Request-ID", request_id)

        def write_line(res: Response) -> None:
            record = AccessRecord(
                remote_addr=request.ip or "-",
                timestamp=datetime.now(UTC),
                method=request.method,
                url=request.url,
                http_version=request.http_version,
                status=res.status_code,
                content_length=len(res.body),
                referrer=request.headers.get("referer") or "-",
                user_agent=request.headers.get("user-agent") or "-",
                duration_ms=(time.perf_counter() - started) * 1000,
                request_id=request_id,
            )
            logger.log(self.level, record.format(self.format))

        response.on_finish(write_line)
        next()
