"""Dispatcher: runs one request through its handler chain.

The chain is every handler of every matching route, in registration
order, produced lazily from the route table. Dispatch is a loop over
that chain with an explicit state:

    RUNNING    invoke the next normal handler (error handlers are skipped)
    ERRORED    invoke the next error handler (normal handlers are skipped)
    RESPONDED  a handler finished the response (terminal)
    DONE       the chain ran out in RUNNING (terminal; caller sends 404)
    ABORTED    the abort hook fired (terminal; nothing more is written)

Each handler gets a fresh one-shot ``Continuation``. Handler failures
never escape ``dispatch``: exceptions, ``next(error)``, and handlers that
return without deciding all become transitions into ERRORED.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import anyio

from wren._internal.invoke import invoke
from wren.errors import ChainStalled, ContinuationError
from wren.http.request import Request
from wren.http.response import Response
from wren.routing.route import Handler, Route
from wren.routing.router import Router
from wren.server.errors import send_default_error

logger = logging.getLogger("wren.dispatch")


class DispatchState(Enum):
    RUNNING = "running"
    ERRORED = "errored"
    RESPONDED = "responded"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of one dispatch.

    ``error`` is set when a failure was not recovered by any error handler
    (the default error response was sent) or happened after the response
    was already finished.
    """

    state: DispatchState
    response: Response
    error: Any = None
    handled: int = 0

    @property
    def responded(self) -> bool:
        return self.state is DispatchState.RESPONDED

    @property
    def unrecovered(self) -> bool:
        return self.error is not None


class Continuation:
    """The ``next`` capability handed to a single handler invocation.

    Call it once: ``next()`` continues, ``next(error)`` diverts to the
    error handlers, ``next.route()`` skips the rest of the current route.
    It expires when the handler returns.
    """

    __slots__ = ("_called", "_expired", "_owner", "error", "skip_route")

    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._called = False
        self._expired = False
        self.error: Any = None
        self.skip_route = False

    def __repr__(self) -> str:
        return f"<Continuation for {self._owner!r} called={self._called}>"

    def __call__(self, error: Any = None) -> None:
        self._consume()
        self.error = error

    def route(self) -> None:
        """Skip the remaining handlers of the current route."""
        self._consume()
        self.skip_route = True

    @property
    def called(self) -> bool:
        return self._called

    def _consume(self) -> None:
        if self._expired:
            msg = f"next() for {self._owner!r} was called after the handler returned."
            raise ContinuationError(msg)
        if self._called:
            msg = f"next() was called more than once by {self._owner!r}."
            raise ContinuationError(msg)
        self._called = True

    def _expire(self) -> None:
        self._expired = True


class AbortSignal:
    """Hook for aborting a dispatch from outside the chain.

    ``abort()`` stops the chain before its next handler and cancels the
    handler currently awaiting, if any. Safe to call from another task::

        signal = AbortSignal()
        tg.start_soon(watch_disconnect, receive, signal)
        result = await dispatcher.dispatch(request, response, abort=signal)
    """

    __slots__ = ("_aborted", "_reason", "_scope")

    def __init__(self) -> None:
        self._aborted = False
        self._reason = ""
        self._scope: anyio.CancelScope | None = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> str:
        return self._reason

    def bind(self, scope: anyio.CancelScope) -> None:
        """Attach the cancel scope of the handler now running."""
        self._scope = scope
        if self._aborted:
            scope.cancel()

    def unbind(self) -> None:
        self._scope = None

    def abort(self, reason: str = "aborted") -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        if self._scope is not None:
            self._scope.cancel()


@dataclass(frozen=True, slots=True)
class _Step:
    handler: Handler
    route: Route
    params: dict[str, str]
    base_path: str


class Dispatcher:
    """Runs requests against a frozen ``Router``.

    One dispatcher is built per app at startup and shared by every
    request; it holds no per-request state.
    """

    __slots__ = ("debug", "router")

    def __init__(self, router: Router, *, debug: bool = False) -> None:
        self.router = router
        self.debug = debug

    def chain(self, method: str, path: str) -> Iterator[_Step]:
        """Lazily flatten matching routes into handler steps."""
        return _walk(self.router, method, path, "")

    async def dispatch(
        self,
        request: Request,
        response: Response | None = None,
        *,
        abort: AbortSignal | None = None,
    ) -> DispatchResult:
        """Run *request* to a terminal state and report how it ended."""
        if response is None:
            response = Response()

        state = DispatchState.RUNNING
        error: Any = None
        handled = 0
        skip_route: Route | None = None

        for step in self.chain(request.method, request.path):
            if abort is not None and abort.aborted:
                state = DispatchState.ABORTED
                break
            if skip_route is not None:
                if step.route is skip_route:
                    continue
                skip_route = None
            if step.handler.is_error_handler != (state is DispatchState.ERRORED):
                continue

            request.params = dict(step.params)
            request.base_path = step.base_path
            next_ = Continuation(step.handler.name)
            raised: Exception | None = None
            handled += 1

            with anyio.CancelScope() as scope:
                if abort is not None:
                    abort.bind(scope)
                try:
                    if state is DispatchState.ERRORED:
                        await invoke(step.handler.func, error, request, response, next_)
                    else:
                        await invoke(step.handler.func, request, response, next_)
                except Exception as exc:
                    raised = exc
                finally:
                    next_._expire()
                    if abort is not None:
                        abort.unbind()

            if scope.cancelled_caught:
                state = DispatchState.ABORTED
                break

            if response.sent:
                if raised is not None:
                    logger.error(
                        "%s raised after the response was sent",
                        step.handler.name,
                        exc_info=raised,
                    )
                    error = raised
                else:
                    error = None
                    if next_.called:
                        logger.debug("%s responded and called next(); next() ignored", step.handler.name)
                state = DispatchState.RESPONDED
                break

            if raised is not None:
                state, error = DispatchState.ERRORED, raised
            elif not next_.called:
                state, error = DispatchState.ERRORED, ChainStalled(step.handler.name)
            elif next_.error is not None:
                state, error = DispatchState.ERRORED, next_.error
            else:
                if state is DispatchState.ERRORED:
                    logger.debug("%s recovered from %r", step.handler.name, error)
                state, error = DispatchState.RUNNING, None
                if next_.skip_route:
                    skip_route = step.route
                continue

            logger.debug("%s failed with %r; entering error channel", step.handler.name, error)

        if abort is not None and abort.aborted and state is not DispatchState.RESPONDED:
            state = DispatchState.ABORTED
        elif state is DispatchState.RUNNING:
            state = DispatchState.DONE
        elif state is DispatchState.ERRORED:
            send_default_error(response, request, error, debug=self.debug)
            state = DispatchState.RESPONDED

        return DispatchResult(state=state, response=response, error=error, handled=handled)


def _walk(router: Router, method: str, path: str, base_path: str) -> Iterator[_Step]:
    for match in router.lookup(method, path):
        route = match.route
        if route.router is not None:
            yield from _walk(
                route.router,
                method,
                match.remaining_path,
                base_path + match.matched_path,
            )
            continue
        step_base = base_path + match.matched_path if route.prefix else base_path
        for handler in route.handlers:
            yield _Step(handler, route, match.params, step_base)
