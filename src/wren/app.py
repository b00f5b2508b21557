"""Wren application class.

Mutable during setup (routes, middleware, error handlers, hooks).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

import threading
from collections.abc import Callable
from typing import Any

from wren._internal.asgi import Receive, Scope, Send
from wren._internal.invoke import invoke
from wren._internal.types import ErrorHandlerFunc, HandlerFunc
from wren.config import AppConfig
from wren.dispatch import AbortSignal, Dispatcher, DispatchResult
from wren.http.request import Request
from wren.http.response import Response
from wren.routing.route import Route, error_handler
from wren.routing.router import HandlerArg, PathArg, Router
from wren.server.handler import handle_request


class App:
    """The wren application.

    Owns one ``Router`` and one ``Dispatcher``. Registration mirrors the
    router::

        app = App()

        @app.get("/users/:id")
        def show_user(req, res, next):
            res.json({"id": req.params["id"]})

        @app.errorhandler
        def on_error(err, req, res, next):
            res.status(500).send("Something broke!")

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread freezes the route table, even when several ASGI workers
        call ``__call__()`` concurrently on first request.
    """

    __slots__ = (
        "_dispatcher",
        "_freeze_lock",
        "_frozen",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._router = Router(
            case_sensitive=self.config.case_sensitive_routing,
            strict=self.config.strict_routing,
        )
        self._dispatcher = Dispatcher(self._router, debug=self.config.debug)
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

    @property
    def router(self) -> Router:
        return self._router

    # -- Route registration --

    def use(self, *args: Any) -> "App":
        """Add middleware or mount a router; see ``Router.use``."""
        self._router.use(*args)
        return self

    def register(self, method: str, path: PathArg, *handlers: HandlerArg) -> Route:
        return self._router.register(method, path, *handlers)

    def route(
        self,
        path: PathArg,
        *,
        methods: list[str] | None = None,
    ) -> Callable[[HandlerFunc], HandlerFunc]:
        """Register a handler for one or more methods via decorator.

        Usage::

            @app.route("/users", methods=["GET", "POST"])
            def users(req, res, next):
                ...
        """
        return self._router.route(path, methods=methods)

    def get(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._router.get(path, *handlers)

    def post(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._router.post(path, *handlers)

    def put(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._router.put(path, *handlers)

    def patch(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._router.patch(path, *handlers)

    def delete(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._router.delete(path, *handlers)

    def head(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._router.head(path, *handlers)

    def options(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._router.options(path, *handlers)

    def all(self, path: PathArg, *handlers: HandlerArg) -> Any:
        return self._router.all(path, *handlers)

    def errorhandler(self, func: ErrorHandlerFunc) -> ErrorHandlerFunc:
        """Append *func* as an error handler at the current chain position.

        Error handlers see failures raised (or passed to ``next``) by any
        handler registered before them.
        """
        self._router.use(error_handler(func))
        return func

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator.

        Hooks run in registration order during ASGI lifespan shutdown.
        """
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Dispatch --

    async def dispatch(
        self,
        request: Request,
        response: Response | None = None,
        *,
        abort: AbortSignal | None = None,
    ) -> DispatchResult:
        """Run *request* through the handler chain in-process.

        No 404 is written for the ``DONE`` outcome; that is left to the
        caller, as the ASGI handler does.
        """
        self._ensure_frozen()
        return await self._dispatcher.dispatch(request, response, abort=abort)

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Freeze the app and serve it with pounce.

        Args:
            host: Override bind host.
            port: Override bind port.
        """
        self._ensure_frozen()

        from wren.server.dev import run_server

        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            workers=self.config.workers,
            reload=self.config.debug,
            log_level=self.config.log_level,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()
        await handle_request(
            scope,
            receive,
            send,
            dispatcher=self._dispatcher,
            config=self.config,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        await invoke(hook)
                except Exception as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    await invoke(hook)
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """MUST only be called while holding _freeze_lock."""
        self._router.freeze()
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and hooks before calling app.run()."
            )
            raise RuntimeError(msg)
