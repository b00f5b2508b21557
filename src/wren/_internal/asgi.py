"""Typed ASGI definitions.

Raw aliases for the ASGI callables plus a typed view of the HTTP scope.
Internal only -- handlers interact with Request, not these.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from dataclasses import dataclass
from typing import Any, TypeAlias
from urllib.parse import quote

Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]

# Characters a server may leave unescaped in a request path (RFC 3986 pchar).
_PATH_SAFE = "/:@!$&'()*+,;=~"


@dataclass(frozen=True, slots=True)
class HTTPScope:
    """Typed HTTP scope parsed from a raw ASGI scope dict.

    ``path`` is still percent-encoded and excludes ``root_path``. The
    route matcher decodes parameters exactly once, so an encoded ``/``
    stays inside its segment.
    """

    method: str
    path: str
    query_string: bytes
    root_path: str
    headers: tuple[tuple[bytes, bytes], ...]
    http_version: str
    client: tuple[str, int] | None

    @classmethod
    def from_scope(cls, scope: Scope) -> "HTTPScope":
        """Parse raw ASGI scope into typed object."""
        client = scope.get("client")
        root_path = scope.get("root_path", "")
        return cls(
            method=scope["method"].upper(),
            path=_encoded_path(scope, root_path),
            query_string=scope.get("query_string", b""),
            root_path=root_path,
            headers=tuple(scope.get("headers", ())),
            http_version=scope.get("http_version", "1.1"),
            client=tuple(client) if client else None,
        )


def _encoded_path(scope: Scope, root_path: str) -> str:
    raw_path = scope.get("raw_path")
    if raw_path:
        path = raw_path.decode("latin-1")
    else:
        # Servers that omit raw_path only give the decoded form; re-encode it.
        path = quote(scope["path"], safe=_PATH_SAFE)
    if root_path:
        prefix = quote(root_path, safe=_PATH_SAFE).rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            path = path[len(prefix) :]
    return path or "/"
