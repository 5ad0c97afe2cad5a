"""Tests for the web-testutil CLI."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from web_testutil.cli import EXIT_CONFIG_ERROR, EXIT_LOCATION_ERROR, main

TRACE = """Error
    at getScriptUrl (http://localhost:9876/base/src/testUtil.js:25:10)
    at Object.<anonymous> (http://localhost:9876/base/tests/foo.js:3:22)
"""


@pytest.fixture()
def runner():
    return CliRunner()


@pytest.fixture()
def config_path(tmp_path):
    return str(tmp_path / "web-testutil.yaml")


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "web-testutil" in result.output


def test_locate_browser_trace(runner, tmp_path, config_path):
    trace = tmp_path / "trace.txt"
    trace.write_text(TRACE)
    result = runner.invoke(main, ["--config", config_path, "locate", str(trace), "--dialect", "browser"])
    assert result.exit_code == 0, result.output
    assert "path:      tests/foo.js" in result.output
    assert "directory: tests" in result.output


def test_locate_uses_configured_dialect(runner, tmp_path, config_path):
    (tmp_path / "web-testutil.yaml").write_text("locator:\n  dialect: browser\n  base_segment: base\n")
    trace = tmp_path / "trace.txt"
    trace.write_text(TRACE)
    result = runner.invoke(main, ["--config", config_path, "locate", str(trace)])
    assert result.exit_code == 0, result.output
    assert "tests/foo.js" in result.output


def test_locate_unusable_trace(runner, tmp_path, config_path):
    trace = tmp_path / "trace.txt"
    trace.write_text("Error\n    at <anonymous>\n")
    result = runner.invoke(main, ["--config", config_path, "locate", str(trace), "--dialect", "browser"])
    assert result.exit_code == EXIT_LOCATION_ERROR
    assert "Could not find script path" in result.output


def test_config_init_and_show(runner, config_path):
    result = runner.invoke(main, ["--config", config_path, "config", "init"])
    assert result.exit_code == 0
    assert "Created" in result.output

    again = runner.invoke(main, ["--config", config_path, "config", "init"])
    assert "already exists" in again.output

    shown = runner.invoke(main, ["--config", config_path, "config", "show"])
    assert shown.exit_code == 0
    assert "timeout_ms: 1000" in shown.output
    assert "interval_ms: 50" in shown.output


def test_config_show_invalid(runner, tmp_path, config_path):
    (tmp_path / "web-testutil.yaml").write_text("wait: {interval_ms: -1}\n")
    result = runner.invoke(main, ["--config", config_path, "config", "show"])
    assert result.exit_code == EXIT_CONFIG_ERROR


def test_log_without_path(runner, config_path):
    result = runner.invoke(main, ["--config", config_path, "log"])
    assert result.exit_code == EXIT_CONFIG_ERROR


def test_log_tail(runner, tmp_path, config_path):
    log = tmp_path / "waits.log"
    records = [
        {"check": "is_ready", "outcome": "resolved", "ticks": 2, "elapsed_ms": 50.0, "error": None},
        {"check": "selector '#x'", "outcome": "timeout", "ticks": 21, "elapsed_ms": 1000.0,
         "error": "TimeoutError()"},
    ]
    log.write_text("\n".join(json.dumps(r) for r in records) + "\n")
    (tmp_path / "web-testutil.yaml").write_text(f"log:\n  path: {log.as_posix()}\n")

    result = runner.invoke(main, ["--config", config_path, "log", "-n", "1"])
    assert result.exit_code == 0, result.output
    assert "timeout" in result.output
    assert "is_ready" not in result.output
