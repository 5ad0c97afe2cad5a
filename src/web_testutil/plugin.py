"""pytest plugin: per-test run context and configured waiters.

Every test runs with its own :class:`RunContext` active. Failures recorded on
it (wait timeouts, :func:`fail`, :func:`async_fail`) fail the test after its
body returns, even if the test never awaited the wait that timed out.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest

from web_testutil.config import ConfigStore, ToolkitConfig
from web_testutil.core.context import RunContext, set_default_context, use_context
from web_testutil.core.errors import ConfigError
from web_testutil.runner.logging import WaitLogger
from web_testutil.waits.stability import wait_until_stable
from web_testutil.waits.waiter import Check, wait_for

_CONFIG_KEY = pytest.StashKey[ToolkitConfig]()
_LOGGER_KEY = pytest.StashKey[WaitLogger]()
_CONTEXT_KEY = pytest.StashKey[RunContext]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("web-testutil")
    group.addoption(
        "--web-testutil-config",
        default=None,
        metavar="FILE",
        help="Path to web-testutil.yaml (default: project root).",
    )


def pytest_configure(config: pytest.Config) -> None:
    try:
        toolkit = ConfigStore(config.getoption("--web-testutil-config")).load()
    except ConfigError as exc:
        raise pytest.UsageError(str(exc)) from exc
    logger = WaitLogger(toolkit.log.path, echo=toolkit.log.echo)
    logger.open()
    config.stash[_CONFIG_KEY] = toolkit
    config.stash[_LOGGER_KEY] = logger


def pytest_unconfigure(config: pytest.Config) -> None:
    logger = config.stash.get(_LOGGER_KEY, None)
    if logger is not None:
        logger.close()


def _context_for(item: pytest.Item) -> RunContext:
    ctx = item.stash.get(_CONTEXT_KEY, None)
    if ctx is None:
        ctx = RunContext(logger=item.config.stash.get(_LOGGER_KEY, None))
        item.stash[_CONTEXT_KEY] = ctx
    return ctx


@pytest.hookimpl(wrapper=True)
def pytest_runtest_call(item: pytest.Item):
    ctx = _context_for(item)
    previous = set_default_context(ctx, reset_previous=True)
    try:
        with use_context(ctx):
            result = yield
    finally:
        set_default_context(previous)
    if ctx.failures:
        pytest.fail("\n".join(ctx.failures), pytrace=False)
    return result


class Waiter:
    """``wait_for`` / ``wait_until_stable`` bound to configured defaults."""

    def __init__(self, config: ToolkitConfig, context: RunContext):
        self.config = config
        self.context = context

    def _kwargs(self, timeout_ms: int | None, interval_ms: int | None, extra: dict[str, Any]) -> dict[str, Any]:
        extra.setdefault("context", self.context)
        return {
            "timeout_ms": self.config.wait.timeout_ms if timeout_ms is None else timeout_ms,
            "interval_ms": self.config.wait.interval_ms if interval_ms is None else interval_ms,
            **extra,
        }

    def wait_for(self, check: Check, timeout_ms: int | None = None, interval_ms: int | None = None, **kwargs: Any):
        return wait_for(check, **self._kwargs(timeout_ms, interval_ms, kwargs))

    def wait_until_stable(
        self, probe: Callable[[], Any], timeout_ms: int | None = None, interval_ms: int | None = None, **kwargs: Any
    ):
        return wait_until_stable(probe, **self._kwargs(timeout_ms, interval_ms, kwargs))


@pytest.fixture()
def web_testutil_config(request: pytest.FixtureRequest) -> ToolkitConfig:
    return request.config.stash[_CONFIG_KEY]


@pytest.fixture()
def run_context(request: pytest.FixtureRequest) -> RunContext:
    """The run context of the current test."""
    return _context_for(request.node)


@pytest.fixture()
def waiter(web_testutil_config: ToolkitConfig, run_context: RunContext) -> Waiter:
    return Waiter(web_testutil_config, run_context)
