"""Browser test utilities: caller script location and condition waits."""

__version__ = "0.1.0"

from web_testutil.core.context import RunContext, async_fail, current_context, fail, use_context
from web_testutil.core.errors import (
    ConfigError,
    LoadError,
    LocationError,
    TimeoutError,
    WebTestUtilError,
)
from web_testutil.locate.stack import locate, script_dir, script_path, script_url
from web_testutil.waits.stability import UNSTABLE, wait_until_stable
from web_testutil.waits.waiter import wait_for

__all__ = [
    "__version__",
    "ConfigError",
    "LoadError",
    "LocationError",
    "RunContext",
    "TimeoutError",
    "UNSTABLE",
    "WebTestUtilError",
    "async_fail",
    "current_context",
    "fail",
    "locate",
    "script_dir",
    "script_path",
    "script_url",
    "use_context",
    "wait_for",
    "wait_until_stable",
]
