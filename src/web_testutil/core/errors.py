"""Custom exception hierarchy."""


class WebTestUtilError(Exception):
    """Base exception for web-testutil."""


class LocationError(WebTestUtilError):
    """The stack trace could not be used to identify the calling script."""


class TimeoutError(WebTestUtilError):
    """A waited-for condition did not become true in time."""

    def __init__(self, timeout_ms: int, detail: str = ""):
        self.timeout_ms = timeout_ms
        self.detail = detail
        msg = f"wait_for timed out after {timeout_ms}ms"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class ConfigError(WebTestUtilError):
    """Invalid or missing configuration."""


class LoadError(WebTestUtilError):
    """Errors were collected while loading the code under test."""

    def __init__(self, errors: list[BaseException]):
        self.errors = list(errors)
        first = f": {self.errors[0]!r}" if self.errors else ""
        super().__init__(f"{len(self.errors)} error(s) raised during load{first}")
