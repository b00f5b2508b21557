"""HTTP request.

Transport metadata (method, path, query, headers, raw body) is fixed at
creation. ``path`` stays percent-encoded and is relative to ``root_path``,
the mount point an ASGI server or proxy reports. Two fields are written during dispatch: ``params`` by the
dispatcher before each handler runs, and ``body`` by body-parsing
middleware. ``state`` is free for middleware to share per-request data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from wren._internal.asgi import HTTPScope, Scope
from wren.http.headers import Headers
from wren.http.query import QueryParams


@dataclass(slots=True, eq=False)
class Request:
    """A single inbound HTTP request.

    Build one from an ASGI scope with ``from_asgi`` or directly with
    ``build`` (tests, in-process dispatch)::

        request = Request.build("GET", "/search?q=cats")
        request.query["q"]  # "cats"
    """

    method: str
    path: str
    query: QueryParams = field(default_factory=QueryParams)
    headers: Headers = field(default_factory=Headers)
    raw_body: bytes = b""
    http_version: str = "1.1"
    client: tuple[str, int] | None = None
    root_path: str = ""

    # Written during dispatch
    params: dict[str, str] = field(default_factory=dict)
    base_path: str = ""
    body: Any = None
    state: dict[str, Any] = field(default_factory=dict)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Full request URL (path + query string)."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw}"
        return self.path

    @property
    def ip(self) -> str | None:
        """The client address, as reported by the transport."""
        return self.client[0] if self.client else None

    def is_content_type(self, mime: str) -> bool:
        """True if the Content-Type media type equals *mime* (parameters ignored)."""
        ct = self.content_type
        if not ct:
            return False
        return ct.split(";", 1)[0].strip().lower() == mime.lower()

    def text(self) -> str:
        """Decode the raw body as UTF-8."""
        return self.raw_body.decode("utf-8")

    # -- Factories --

    @classmethod
    def build(
        cls,
        method: str,
        target: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
    ) -> Request:
        """Create a Request from a method and a request target (``/path?query``)."""
        path, _, query_string = target.partition("?")
        return cls(
            method=method.upper(),
            path=path or "/",
            query=QueryParams(query_string),
            headers=Headers.from_mapping(headers),
            raw_body=body,
        )

    @classmethod
    def from_asgi(cls, scope: Scope, body: bytes = b"") -> Request:
        """Create a Request from an ASGI scope and an already-read body."""
        http = HTTPScope.from_scope(scope)
        return cls(
            method=http.method,
            path=http.path,
            query=QueryParams(http.query_string),
            headers=Headers.from_raw(http.headers),
            raw_body=body,
            http_version=http.http_version,
            client=http.client,
            root_path=http.root_path,
        )
