"""ASGI response sending. Translates a finished Response into ASGI messages."""

from wren._internal.asgi import Send
from wren.http.response import Response


def body_allowed(status: int, method: str = "GET") -> bool:
    """Whether a response to *method* with *status* carries a body."""
    # RFC 9110: 1xx, 204, and 304 responses and HEAD replies have no body.
    if method == "HEAD":
        return False
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(response: Response, send: Send, *, method: str = "GET") -> None:
    """Send *response* as one ``http.response.start`` and one body message.

    Content-Length always reflects the full body, even for HEAD, where the
    body itself is dropped.
    """
    raw_headers: list[tuple[bytes, bytes]] = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in response.headers
        if name.lower() != "content-length"
    ]
    if body_allowed(response.status_code):
        raw_headers.append((b"content-length", str(len(response.body)).encode("latin-1")))
    body = response.body if body_allowed(response.status_code, method) else b""

    await send(
        {
            "type": "http.response.start",
            "status": response.status_code,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )
