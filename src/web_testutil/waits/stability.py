"""Wait until a probe returns the same value twice in a row."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from web_testutil.constants import DEFAULT_INTERVAL_MS, DEFAULT_TIMEOUT_MS
from web_testutil.waits.waiter import wait_for


class Sentinel:
    """A marker value that never compares equal, not even to itself."""

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __eq__(self, other: object) -> bool:
        return False

    def __ne__(self, other: object) -> bool:
        return True

    __hash__ = object.__hash__

    def __repr__(self) -> str:
        return self.name


# Return this from a probe to say "not settled yet", e.g. while still loading.
UNSTABLE = Sentinel("UNSTABLE")
_UNSET = Sentinel("UNSET")


class StabilityCheck:
    """Predicate that is true when the probe repeats its previous value."""

    def __init__(self, probe: Callable[[], Any]):
        self.probe = probe
        self.previous_value: Any = _UNSET

    def __call__(self) -> bool:
        current = self.probe()
        previous = self.previous_value
        self.previous_value = current
        if isinstance(current, Sentinel) or isinstance(previous, Sentinel):
            return False
        return bool(current == previous)

    def __repr__(self) -> str:
        name = getattr(self.probe, "__qualname__", None) or repr(self.probe)
        return f"stable({name})"


def wait_until_stable(
    probe: Callable[[], Any],
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    interval_ms: int = DEFAULT_INTERVAL_MS,
    **kwargs: Any,
) -> asyncio.Future[None]:
    """Poll *probe* until two consecutive calls return equal values.

    Values are compared with ``==``. A probe alternating between two values,
    or returning :data:`UNSTABLE`, never becomes stable and times out.
    Keyword arguments are passed on to :func:`wait_for`.
    """
    return wait_for(StabilityCheck(probe), timeout_ms, interval_ms, **kwargs)
