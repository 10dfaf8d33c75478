"""
Tests for the deadlock retry loop.
"""
from types import SimpleNamespace

import aiomysql
import pytest

from db import tx
from db.tx import is_retryable, run_with_retry


@pytest.fixture
def sleeps(monkeypatch):
    calls = []

    async def fake_sleep(delay):
        calls.append(delay)

    monkeypatch.setattr(tx, "asyncio", SimpleNamespace(sleep=fake_sleep))
    return calls


def _flaky(errors, result="ok"):
    state = {"calls": 0}

    async def fn():
        state["calls"] += 1
        if errors:
            raise errors.pop(0)
        return result

    return fn, state


class TestIsRetryable:
    def test_deadlock_and_lock_timeout(self):
        assert is_retryable(aiomysql.OperationalError(1213, "Deadlock found"))
        assert is_retryable(aiomysql.OperationalError(1205, "Lock wait timeout exceeded"))

    def test_other_errors(self):
        assert not is_retryable(aiomysql.OperationalError(2003, "Can't connect"))
        assert not is_retryable(ValueError("nope"))


class TestRunWithRetry:
    @pytest.mark.asyncio
    async def test_retries_transient_conflicts(self, sleeps):
        fn, state = _flaky([aiomysql.OperationalError(1213, "Deadlock found")])
        assert await run_with_retry(fn, attempts=3, base_delay=0.1) == "ok"
        assert state["calls"] == 2
        assert sleeps == [0.1]

    @pytest.mark.asyncio
    async def test_backoff_doubles(self, sleeps):
        fn, _state = _flaky([aiomysql.OperationalError(1205, "timeout"), aiomysql.OperationalError(1213, "deadlock")])
        await run_with_retry(fn, attempts=3, base_delay=0.05)
        assert sleeps == [0.05, 0.1]

    @pytest.mark.asyncio
    async def test_gives_up_after_last_attempt(self, sleeps):
        fn, state = _flaky([aiomysql.OperationalError(1213, "deadlock") for _ in range(3)])
        with pytest.raises(aiomysql.OperationalError):
            await run_with_retry(fn, attempts=3)
        assert state["calls"] == 3

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, sleeps):
        fn, state = _flaky([aiomysql.OperationalError(2013, "Lost connection")])
        with pytest.raises(aiomysql.OperationalError):
            await run_with_retry(fn, attempts=5)
        assert state["calls"] == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_domain_errors_pass_straight_through(self, sleeps):
        fn, state = _flaky([KeyError("x")])
        with pytest.raises(KeyError):
            await run_with_retry(fn)
        assert state["calls"] == 1
