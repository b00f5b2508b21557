"""Body-parsing middleware.

The ASGI handler reads the whole body into ``request.raw_body`` before
dispatch. These parsers decode it into ``request.body`` when the
Content-Type matches, and pass through untouched otherwise.
"""

import json
import logging
from urllib.parse import parse_qs

from wren.errors import BadRequest
from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import Next

logger = logging.getLogger("wren.dispatch")


class JSONBody:
    """Parse ``application/json`` bodies.

    Usage::

        app.use(JSONBody())

        @app.post("/users")
        def create_user(req, res, next):
            res.status(201).json(req.body)

    In ``strict`` mode only objects and arrays are accepted at the top
    level. Invalid JSON is passed to ``next`` as ``BadRequest``.
    """

    __slots__ = ("strict",)

    def __init__(self, *, strict: bool = True) -> None:
        self.strict = strict

    def __call__(self, request: Request, response: Response, next: Next) -> None:
        if request.body is not None or not request.is_content_type("application/json"):
            next()
            return
        if not request.raw_body:
            request.body = {}
            next()
            return

        try:
            data = json.loads(request.raw_body)
        except (UnicodeDecodeError, ValueError) as exc:
            logger.debug("Rejected JSON body for %s %s: %s", request.method, request.path, exc)
            next(BadRequest(f"Invalid JSON body: {exc}"))
            return

        if self.strict and not isinstance(data, dict | list):
            next(BadRequest("JSON body must be an object or an array"))
            return

        request.body = data
        next()


class URLEncodedBody:
    """Parse ``application/x-www-form-urlencoded`` bodies.

    ``request.body`` becomes a flat dict (last value wins). Repeated
    fields keep every value in ``request.state["form_lists"]``.
    """

    __slots__ = ()

    def __call__(self, request: Request, response: Response, next: Next) -> None:
        if request.body is not None or not request.is_content_type(
            "application/x-www-form-urlencoded"
        ):
            next()
            return

        try:
            text = request.text()
        except UnicodeDecodeError:
            next(BadRequest("Form body is not valid UTF-8"))
            return

        lists = parse_qs(text, keep_blank_values=True)
        request.body = {key: values[-1] for key, values in lists.items()}
        request.state["form_lists"] = lists
        next()
