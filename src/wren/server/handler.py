"""ASGI handler. Translates ASGI scope/messages to wren types.

The only component that touches raw ASGI for HTTP requests. It reads the
body under the configured size limit, builds the Request, runs the
dispatcher with a disconnect watcher and an optional deadline, and sends
the finished Response back through ASGI ``send()``.
"""

import logging
from contextvars import Token

import anyio

from wren._internal.asgi import Receive, Scope, Send
from wren.config import AppConfig
from wren.context import request_var
from wren.dispatch import AbortSignal, Dispatcher, DispatchResult, DispatchState
from wren.errors import HTTPError, PayloadTooLarge
from wren.http.request import Request
from wren.http.response import Response
from wren.server.errors import send_default_error, send_not_found
from wren.server.sender import send_response

logger = logging.getLogger("wren.server")


async def read_body(receive: Receive, *, limit: int) -> bytes | None:
    """Read the complete request body.

    Returns ``None`` if the client disconnected before the body ended.
    Raises ``PayloadTooLarge`` as soon as more than *limit* bytes arrive.
    """
    chunks: list[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            return None
        chunk = message.get("body", b"")
        size += len(chunk)
        if size > limit:
            raise PayloadTooLarge(limit)
        chunks.append(chunk)
        if not message.get("more_body", False):
            return b"".join(chunks)


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatcher: Dispatcher,
    config: AppConfig,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    try:
        body = await read_body(receive, limit=config.max_body_size)
    except PayloadTooLarge as exc:
        request = Request.from_asgi(scope)
        response = Response()
        send_default_error(response, request, exc, debug=config.debug)
        await send_response(response, send, method=request.method)
        return
    if body is None:
        logger.debug("Client disconnected while sending %s %s", scope["method"], scope["path"])
        return

    request = Request.from_asgi(scope, body)
    response = Response()
    signal = AbortSignal()
    result: DispatchResult | None = None

    token: Token[Request] = request_var.set(request)
    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(_watch_disconnect, receive, signal)
            with anyio.move_on_after(config.request_timeout):
                result = await dispatcher.dispatch(request, response, abort=signal)
            tg.cancel_scope.cancel()
    finally:
        request_var.reset(token)

    if result is None:
        logger.warning(
            "%s %s exceeded the %ss request timeout",
            request.method,
            request.path,
            config.request_timeout,
        )
        send_default_error(
            response,
            request,
            HTTPError(status=503, detail="Request timed out"),
            debug=config.debug,
        )
    elif result.state is DispatchState.ABORTED:
        logger.info("%s %s aborted: %s", request.method, request.path, signal.reason)
        return
    elif result.state is DispatchState.DONE:
        send_not_found(response, request)

    await send_response(response, send, method=request.method)


async def _watch_disconnect(receive: Receive, signal: AbortSignal) -> None:
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            signal.abort("client disconnected")
            return
