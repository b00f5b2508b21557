"""Route table: ordered registration and lazy lookup.

Routes are appended in registration order and looked up in that same
order. Ties are never broken by specificity: if ``/users/:id`` is
registered before ``/users/all``, a request for ``/users/all`` reaches the
parameter route first.
"""

import logging
import re
from collections.abc import Callable, Iterator
from typing import Any, TypeAlias

from wren._internal.types import HandlerFunc
from wren.errors import MalformedRegistration
from wren.routing.pattern import compile_pattern
from wren.routing.route import ANY, Handler, Route, RouteMatch, as_handler

logger = logging.getLogger("wren.dispatch")

PathArg: TypeAlias = str | re.Pattern[str]
HandlerArg: TypeAlias = Handler | HandlerFunc


class Router:
    """An ordered, append-only route table.

    Usage::

        router = Router()
        router.get("/users/:id", load_user, show_user)
        router.use(log_request)

        @router.post("/users")
        def create_user(req, res, next):
            res.status(201).json(req.body)

        for match in router.lookup("GET", "/users/42"):
            ...

    A router can be mounted on an app or another router with
    ``use("/prefix", router)``; its routes then see paths relative to
    the prefix.
    """

    __slots__ = ("_frozen", "_routes", "case_sensitive", "strict")

    def __init__(self, *, case_sensitive: bool = False, strict: bool = False) -> None:
        self.case_sensitive = case_sensitive
        self.strict = strict
        self._routes: list[Route] = []
        self._frozen = False

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"<Router routes={len(self._routes)}>"

    @property
    def routes(self) -> tuple[Route, ...]:
        """All registered routes, in registration order."""
        return tuple(self._routes)

    # -- Registration --

    def register(self, method: str, path: PathArg, *handlers: HandlerArg) -> Route:
        """Append a route for *method* (or ``ANY``) and *path*.

        Raises ``MalformedRegistration`` for a bad pattern, an empty
        handler list, or a handler with the wrong arity.
        """
        self._check_not_frozen()
        if not handlers:
            msg = f"No handlers given for route {method} {path!r}."
            raise MalformedRegistration(msg)
        method = method.upper() if method != ANY else ANY
        route = Route(
            method=method,
            pattern=compile_pattern(
                path,
                case_sensitive=self.case_sensitive,
                strict=self.strict,
            ),
            handlers=tuple(as_handler(h) for h in handlers),
        )
        self._routes.append(route)
        logger.debug("Registered %s %s (%d handlers)", method, route.path, len(route.handlers))
        return route

    def use(self, *args: Any) -> None:
        """Append middleware layers or mount routers.

        The first argument may be a path prefix (default ``/``). Every
        following argument is a handler or a ``Router``::

            router.use(parse_json)
            router.use("/api", auth, api_router)

        Consecutive handlers share one layer; each router gets its own.
        """
        self._check_not_frozen()
        path: PathArg = "/"
        items = list(args)
        if items and isinstance(items[0], str | re.Pattern):
            path = items.pop(0)
        if not items:
            msg = f"use({path!r}) requires at least one handler or router."
            raise MalformedRegistration(msg)

        pattern = compile_pattern(path, end=False, case_sensitive=self.case_sensitive)
        pending: list[Handler] = []
        for item in items:
            if isinstance(item, Router):
                if item is self:
                    msg = "A router cannot be mounted on itself."
                    raise MalformedRegistration(msg)
                if item._mounts(self):
                    msg = f"Mounting {item!r} would create a cycle."
                    raise MalformedRegistration(msg)
                if pending:
                    self._routes.append(Route(ANY, pattern, tuple(pending), prefix=True))
                    pending = []
                self._routes.append(Route(ANY, pattern, prefix=True, router=item))
            else:
                pending.append(as_handler(item))
        if pending:
            self._routes.append(Route(ANY, pattern, tuple(pending), prefix=True))

    def route(
        self,
        path: PathArg,
        *,
        methods: list[str] | None = None,
    ) -> Callable[[HandlerFunc], HandlerFunc]:
        """Register a handler for several methods via decorator.

        ``methods`` defaults to ``["GET"]``.
        """

        def decorator(func: HandlerFunc) -> HandlerFunc:
            for method in methods or ["GET"]:
                self.register(method, path, func)
            return func

        return decorator

    def get(self, path: PathArg, *handlers: HandlerArg) -> Any:
        """Register GET handlers, or return a decorator when none are given."""
        return self._shortcut("GET", path, handlers)

    def post(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._shortcut("POST", path, handlers)

    def put(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._shortcut("PUT", path, handlers)

    def patch(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._shortcut("PATCH", path, handlers)

    def delete(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._shortcut("DELETE", path, handlers)

    def head(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._shortcut("HEAD", path, handlers)

    def options(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._shortcut("OPTIONS", path, handlers)

    def all(self, path: PathArg, *handlers: HandlerArg) -> Any:
        """Register handlers answering every method."""
        return self._shortcut(ANY, path, handlers)

    def _shortcut(self, method: str, path: PathArg, handlers: tuple[HandlerArg, ...]) -> Any:
        if handlers:
            return self.register(method, path, *handlers)

        def decorator(func: HandlerFunc) -> HandlerFunc:
            self.register(method, path, func)
            return func

        return decorator

    # -- Lookup --

    def lookup(self, method: str, path: str) -> Iterator[RouteMatch]:
        """Lazily yield every route matching *method* and *path*, in order.

        Mounted routers are yielded as single matches; the dispatcher
        descends into them with ``remaining_path``.
        """
        method = method.upper()
        for route in self._routes:
            if not route.matches_method(method):
                continue
            found = route.pattern.match(path)
            if found is None:
                continue
            remaining = path[len(found.path) :] if route.prefix else ""
            if not remaining.startswith("/"):
                remaining = "/" + remaining
            yield RouteMatch(
                route=route,
                params=found.params,
                matched_path=found.path,
                remaining_path=remaining,
            )

    def _mounts(self, other: "Router") -> bool:
        """True if *other* is reachable through this router's mounts."""
        for route in self._routes:
            child = route.router
            if child is not None and (child is other or child._mounts(other)):
                return True
        return False

    # -- Lifecycle --

    def freeze(self) -> None:
        """Freeze this router and every mounted router. No more routes can be added."""
        self._frozen = True
        for route in self._routes:
            if route.router is not None and not route.router._frozen:
                route.router.freeze()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the route table after the app has started serving "
                "requests. Register routes and middleware before the first request."
            )
            raise RuntimeError(msg)
