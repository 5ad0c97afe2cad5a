"""Wait until a condition holds, polling on the event loop's timers.

``wait_for`` returns an ``asyncio.Future`` instead of blocking: the check runs
right away and then every ``interval_ms`` via ``loop.call_at``, with a
separate timer for the deadline. Whichever path settles the wait first
cancels both timers.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from web_testutil.constants import DEFAULT_INTERVAL_MS, DEFAULT_TIMEOUT_MS
from web_testutil.core.context import RunContext, current_context
from web_testutil.core.errors import ConfigError, TimeoutError
from web_testutil.runner.logging import WaitLogger

Check = Union[Callable[[], Any], str]

# Fraction of an interval a poll may run late and still keep its slot.
_SLOT_TOLERANCE = 0.1


class WaitConfig(BaseModel):
    """Immutable settings of one wait."""

    model_config = ConfigDict(frozen=True)

    check: Check
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, gt=0)

    def describe(self) -> str:
        if isinstance(self.check, str):
            return f"selector {self.check!r}"
        return getattr(self.check, "__qualname__", None) or repr(self.check)


@dataclass
class PollState:
    """Timers and progress of one in-flight wait. Owned by that wait only."""

    started_at: float
    interval_handle: Optional[asyncio.Handle] = None
    timeout_handle: Optional[asyncio.TimerHandle] = None
    ticks: int = 0
    settled: Optional[str] = None

    def close(self) -> None:
        """Cancel both timers. Safe to call more than once."""
        if self.interval_handle is not None:
            self.interval_handle.cancel()
            self.interval_handle = None
        if self.timeout_handle is not None:
            self.timeout_handle.cancel()
            self.timeout_handle = None


def _as_predicate(check: Check, document: Any) -> Callable[[], Any]:
    if not isinstance(check, str):
        return check
    if document is None:
        raise ConfigError(
            f"Selector check {check!r} needs a document with a query_selector() method"
        )
    selector = check
    return lambda: document.query_selector(selector)


class _Poll:
    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        config: WaitConfig,
        predicate: Callable[[], Any],
        context: RunContext,
        logger: WaitLogger | None,
    ):
        self.loop = loop
        self.config = config
        self.predicate = predicate
        self.context = context
        self.logger = logger
        self.state = PollState(started_at=loop.time())
        self.future: asyncio.Future[None] = loop.create_future()
        self.future.add_done_callback(self._on_future_done)

    def start(self) -> None:
        self.state.timeout_handle = self.loop.call_at(
            self.state.started_at + self.config.timeout_ms / 1000.0, self._on_timeout
        )
        self.state.interval_handle = self.loop.call_soon(self._tick)

    def _tick(self) -> None:
        if self.state.settled:
            return
        if self.future.done():
            self._settle("cancelled")
            return
        self.state.interval_handle = None
        self.state.ticks += 1
        try:
            ok = bool(self.predicate())
        except Exception as exc:
            self._settle("rejected", exc)
            return
        if ok:
            self._settle("resolved")
            return
        self.state.interval_handle = self.loop.call_at(self._next_slot(), self._tick)

    def _next_slot(self) -> float:
        """Next poll time on the fixed cadence from the start time.

        Slots that went by while the loop was stalled are skipped, so two
        checks are never much less than one interval apart.
        """
        interval = self.config.interval_ms / 1000.0
        elapsed = (self.loop.time() - self.state.started_at) / interval
        slot = max(self.state.ticks, math.ceil(elapsed + 1 - _SLOT_TOLERANCE))
        return self.state.started_at + slot * interval

    def _on_timeout(self) -> None:
        if self.state.settled:
            return
        handle = self.state.interval_handle
        deadline = self.state.started_at + self.config.timeout_ms / 1000.0
        if (
            isinstance(handle, asyncio.TimerHandle)
            and not handle.cancelled()
            and handle.when() <= deadline
        ):
            # A poll due at the same moment still gets its chance to succeed.
            handle.cancel()
            self._tick()
            if self.state.settled:
                return
        error = TimeoutError(self.config.timeout_ms, f"check: {self.config.describe()}")
        self.context.record_failure(str(error))
        self._settle("timeout", error)

    def _on_future_done(self, future: asyncio.Future) -> None:
        if future.cancelled() and not self.state.settled:
            self._settle("cancelled")

    def _settle(self, outcome: str, error: BaseException | None = None) -> None:
        if self.state.settled:
            return
        self.state.settled = outcome
        self.state.close()
        if self.logger is not None:
            self.logger.log_wait(
                check=self.config.describe(),
                outcome=outcome,
                ticks=self.state.ticks,
                elapsed_ms=(self.loop.time() - self.state.started_at) * 1000.0,
                timeout_ms=self.config.timeout_ms,
                interval_ms=self.config.interval_ms,
                error=repr(error) if error is not None else None,
            )
        if self.future.done():
            return
        if error is None:
            self.future.set_result(None)
        else:
            self.future.set_exception(error)


def wait_for(
    check: Check,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    interval_ms: int = DEFAULT_INTERVAL_MS,
    *,
    document: Any = None,
    context: RunContext | None = None,
    logger: WaitLogger | None = None,
) -> asyncio.Future[None]:
    """Poll *check* until it returns a truthy value.

    Parameters
    ----------
    check:
        Zero-argument callable, or a selector string meaning "an element
        matching this selector is present in *document*".
    timeout_ms:
        Time after which the wait fails. Default 1000 ms.
    interval_ms:
        Time between checks. Default 50 ms.
    document:
        Object with a ``query_selector(selector)`` method, used for selector
        checks. Defaults to the run context's document.
    context:
        Run context that records the timeout failure. Defaults to
        :func:`current_context`.
    logger:
        Receives one record when the wait settles. Defaults to the run
        context's logger.

    Returns
    -------
    asyncio.Future
        Resolves with ``None`` once the check passes. Fails with the check's
        own exception if it raises, or with :class:`TimeoutError` after
        *timeout_ms*; a timeout is also recorded as a test failure on the run
        context so it is reported even when the future is never awaited.

    Raises
    ------
    pydantic.ValidationError
        When *timeout_ms* or *interval_ms* is not a positive integer.
    ConfigError
        When *check* is a selector and no document is available.
    RuntimeError
        When called without a running event loop.
    """
    config = WaitConfig(check=check, timeout_ms=timeout_ms, interval_ms=interval_ms)
    context = context or current_context()
    if document is None:
        document = context.document
    predicate = _as_predicate(config.check, document)
    loop = asyncio.get_running_loop()
    poll = _Poll(loop, config, predicate, context, logger or context.logger)
    poll.start()
    return poll.future
