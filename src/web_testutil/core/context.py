"""Per-test-run context: failure reporting and error collection.

One ``RunContext`` belongs to one test run. Waiters record timeout failures
on it so they surface even when the caller drops the returned future, and
``collect()`` gathers unhandled event-loop errors so ``verify_loaded()`` can
tell whether the code under test loaded cleanly.
"""

from __future__ import annotations

import asyncio
import contextlib
import contextvars
import sys
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator

from web_testutil.core.errors import LoadError

if TYPE_CHECKING:
    from web_testutil.runner.logging import WaitLogger


@dataclass
class RunContext:
    """State of one test run."""

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    failures: list[str] = field(default_factory=list)
    errors: list[BaseException] = field(default_factory=list)
    document: Any = None
    logger: WaitLogger | None = None

    def reset(self) -> None:
        self.failures.clear()
        self.errors.clear()

    def record_failure(self, message: str) -> None:
        self.failures.append(str(message))

    def record_error(self, error: BaseException) -> None:
        self.errors.append(error)
        print(f"web-testutil: collected error: {error!r}", file=sys.stderr)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    def verify_loaded(self) -> None:
        """Raise ``LoadError`` if any error was collected during the run."""
        if self.errors:
            raise LoadError(self.errors)

    @contextlib.contextmanager
    def collect(self, loop: asyncio.AbstractEventLoop | None = None) -> Iterator[RunContext]:
        """Record unhandled errors of *loop* while the block runs.

        The previous exception handler is restored on exit. Errors are
        recorded and then passed on to the default handler, so they are
        still reported as usual.
        """
        loop = loop or asyncio.get_running_loop()
        previous = loop.get_exception_handler()

        def _handler(lp: asyncio.AbstractEventLoop, ctx: dict[str, Any]) -> None:
            exc = ctx.get("exception")
            if exc is None:
                exc = RuntimeError(ctx.get("message", "unhandled event loop error"))
            self.record_error(exc)
            if previous is not None:
                previous(lp, ctx)
            else:
                lp.default_exception_handler(ctx)

        loop.set_exception_handler(_handler)
        try:
            yield self
        finally:
            loop.set_exception_handler(previous)


_current: contextvars.ContextVar[RunContext | None] = contextvars.ContextVar(
    "web_testutil_run_context", default=None
)
_default = RunContext()


def current_context() -> RunContext:
    """Return the active run context.

    Code running outside any ``use_context`` block (e.g. a task created
    before the block was entered) sees the default context instead. The
    default lives for the whole process, so failures recorded on it pile up
    until someone resets it; the pytest plugin does that before each test.
    """
    ctx = _current.get()
    return ctx if ctx is not None else _default


def set_default_context(ctx: RunContext, reset_previous: bool = False) -> RunContext:
    """Replace the default context; returns the previous one.

    With *reset_previous*, the outgoing default is cleared first, dropping
    whatever it recorded while no run was active.
    """
    global _default
    previous, _default = _default, ctx
    if reset_previous:
        previous.reset()
    return previous


@contextlib.contextmanager
def use_context(ctx: RunContext) -> Iterator[RunContext]:
    """Make *ctx* the active run context for the duration of the block."""
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


def fail(message: Any, context: RunContext | None = None) -> None:
    """Record a test failure with *message* as its description."""
    (context or current_context()).record_failure(str(message))


def async_fail(
    done: Callable[[], Any], context: RunContext | None = None
) -> Callable[[Any], None]:
    """Build a callback that fails the test on a truthy error, then calls *done*.

    The callback accepts either an error value or a finished future, so it
    works both as an error continuation and with ``future.add_done_callback``::

        wait_for(check).add_done_callback(async_fail(done))
    """

    def _callback(error: Any = None) -> None:
        if isinstance(error, asyncio.Future):
            error = None if error.cancelled() else error.exception()
        if error:
            fail(error, context)
        done()

    return _callback
