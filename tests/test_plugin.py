"""Tests for the pytest plugin (run in a nested pytest session)."""

import pytest


def test_timeout_fails_test_even_if_not_awaited(pytester):
    pytester.makepyfile(
        """
        import asyncio
        import pytest
        from web_testutil import wait_for

        @pytest.mark.asyncio
        async def test_dropped_wait():
            future = wait_for(lambda: False, timeout_ms=20, interval_ms=5)
            await asyncio.sleep(0.1)
            future.exception()
        """
    )
    result = pytester.runpytest()
    result.assert_outcomes(failed=1)
    result.stdout.fnmatch_lines(["*wait_for timed out after 20ms*"])


def test_successful_wait_passes(pytester):
    pytester.makepyfile(
        """
        import pytest
        from web_testutil import wait_for, wait_until_stable

        @pytest.mark.asyncio
        async def test_ok():
            await wait_for(lambda: True)
            await wait_until_stable(lambda: 42, interval_ms=5)
        """
    )
    result = pytester.runpytest()
    result.assert_outcomes(passed=1)


def test_fail_helper_fails_test(pytester):
    pytester.makepyfile(
        """
        from web_testutil import fail

        def test_manual():
            fail("spinner never went away")
        """
    )
    result = pytester.runpytest()
    result.assert_outcomes(failed=1)
    result.stdout.fnmatch_lines(["*spinner never went away*"])


def test_failures_do_not_leak_between_tests(pytester):
    pytester.makepyfile(
        """
        from web_testutil import fail

        def test_first():
            fail("only here")

        def test_second():
            pass
        """
    )
    result = pytester.runpytest()
    result.assert_outcomes(failed=1, passed=1)


def test_run_context_fixture_is_active(pytester):
    pytester.makepyfile(
        """
        from web_testutil import current_context

        def test_ctx(run_context):
            assert current_context() is run_context
            assert run_context.failures == []
        """
    )
    result = pytester.runpytest()
    result.assert_outcomes(passed=1)


def test_waiter_fixture_uses_config(pytester):
    config = pytester.makefile(".yaml", **{"web-testutil": "wait:\n  timeout_ms: 30\n  interval_ms: 5\n"})
    pytester.makepyfile(
        """
        import pytest
        from web_testutil import TimeoutError

        def test_defaults(waiter):
            assert waiter.config.wait.timeout_ms == 30
            assert waiter.config.wait.interval_ms == 5

        @pytest.mark.asyncio
        async def test_times_out(waiter):
            with pytest.raises(TimeoutError):
                await waiter.wait_for(lambda: False)
        """
    )
    result = pytester.runpytest(f"--web-testutil-config={config}")
    result.assert_outcomes(passed=1, failed=1)
    result.stdout.fnmatch_lines(["*wait_for timed out after 30ms*"])


def test_invalid_config_is_usage_error(pytester):
    config = pytester.makefile(".yaml", **{"web-testutil": "wait: {timeout_ms: -5}\n"})
    pytester.makepyfile("def test_nothing():\n    pass\n")
    result = pytester.runpytest(f"--web-testutil-config={config}")
    assert result.ret == pytest.ExitCode.USAGE_ERROR


def test_wait_log_written(pytester, tmp_path):
    log = tmp_path / "waits.log"
    config = pytester.makefile(".yaml", **{"web-testutil": f"log:\n  path: {log.as_posix()}\n"})
    pytester.makepyfile(
        """
        import pytest
        from web_testutil import wait_for

        @pytest.mark.asyncio
        async def test_logged():
            await wait_for(lambda: True)
        """
    )
    result = pytester.runpytest(f"--web-testutil-config={config}")
    result.assert_outcomes(passed=1)
    assert '"outcome": "resolved"' in log.read_text()
