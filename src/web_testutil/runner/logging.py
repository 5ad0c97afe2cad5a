"""Structured per-wait logging."""

from __future__ import annotations

import json
import pathlib
import sys
import time
from typing import Any


class WaitLogger:
    """Append-only structured log of settled waits."""

    def __init__(self, path: str | pathlib.Path | None = None, echo: bool = False):
        self._log_path = pathlib.Path(path) if path else None
        self.echo = echo
        self._fh = None

    @property
    def path(self) -> pathlib.Path | None:
        return self._log_path

    def open(self) -> None:
        if self._log_path is None:
            return
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self._log_path, "a", encoding="utf-8")

    def close(self) -> None:
        if self._fh:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> WaitLogger:
        self.open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def log_wait(
        self,
        check: str,
        outcome: str,
        ticks: int,
        elapsed_ms: float,
        timeout_ms: int,
        interval_ms: int,
        error: str | None = None,
    ) -> None:
        entry = {
            "timestamp": time.time(),
            "check": check,
            "outcome": outcome,
            "ticks": ticks,
            "elapsed_ms": round(elapsed_ms, 1),
            "timeout_ms": timeout_ms,
            "interval_ms": interval_ms,
            "error": error,
        }
        line = json.dumps(entry, ensure_ascii=False, default=str)
        if self._fh:
            self._fh.write(line + "\n")
            self._fh.flush()
        if self.echo:
            print(line, file=sys.stderr)

    def read_last_n(self, n: int = 20) -> list[dict[str, Any]]:
        if self._log_path is None or not self._log_path.exists():
            return []
        lines = self._log_path.read_text(encoding="utf-8").strip().splitlines()
        return [json.loads(l) for l in lines[-n:]]
