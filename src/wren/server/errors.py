"""Fallback responses at the end of a dispatch.

``send_default_error`` is the last stop of the error channel: it runs
when a handler failed and no error handler recovered. ``send_not_found``
answers a dispatch that ran out of handlers without a response.
"""

import logging
import traceback
from typing import Any

from wren.errors import HTTPError
from wren.http.request import Request
from wren.http.response import Response, reason_phrase
from wren.server.terminal_errors import log_error

logger = logging.getLogger("wren.server")


def error_status(error: Any) -> int:
    """The HTTP status an unrecovered *error* maps to."""
    if isinstance(error, HTTPError) and 400 <= error.status < 600:
        return error.status
    return 500


def send_default_error(
    response: Response,
    request: Request,
    error: Any,
    *,
    debug: bool = False,
) -> None:
    """Report *error* and, if nothing was sent yet, answer with its status.

    ``HTTPError`` keeps its status, detail, and headers. Anything else
    becomes a 500; its traceback is included in the body only in debug mode.
    """
    status = error_status(error)
    if status >= 500:
        log_error(error, request, status=status)
    else:
        logger.debug("%d %s %s - %s", status, request.method, request.path, error)

    if response.sent:
        return

    if isinstance(error, HTTPError):
        body = error.detail or reason_phrase(status)
        for name, value in error.headers:
            try:
                response.set_header(name, value)
            except ValueError:
                logger.warning("Dropped invalid header %r from %r", name, error)
    else:
        body = reason_phrase(status)

    if debug and status >= 500 and isinstance(error, BaseException):
        body = "".join(traceback.format_exception(error))

    response.status(status).content_type("text/plain; charset=utf-8")
    response.send(body)


def send_not_found(response: Response, request: Request) -> None:
    """Answer a request no handler responded to."""
    if response.sent:
        return
    logger.debug("404 %s %s - no handler responded", request.method, request.path)
    response.status(404).content_type("text/plain; charset=utf-8")
    response.send(f"Cannot {request.method} {request.path}")
