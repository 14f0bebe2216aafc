"""Recovery Policy: tests for bounded retry returning an Outcome."""

import asyncio

import pytest

from coach.services.recovery_policy import RecoveryPolicy


def _flaky(failures: int, value="ok"):
    calls = {"n": 0}

    async def op():
        calls["n"] += 1
        if calls["n"] <= failures:
            raise RuntimeError(f"boom {calls['n']}")
        return value

    return op, calls


async def test_success_first_try():
    op, calls = _flaky(0)
    outcome = await RecoveryPolicy(delay_ms=0).run(op)
    assert outcome.ok
    assert outcome.value == "ok"
    assert outcome.attempts == 1
    assert calls["n"] == 1


async def test_recovers_after_transient_failures():
    op, calls = _flaky(2)
    outcome = await RecoveryPolicy(max_attempts=3, delay_ms=0).run(op)
    assert outcome.ok
    assert outcome.attempts == 3


async def test_degrades_after_max_attempts_without_raising():
    op, calls = _flaky(10)
    outcome = await RecoveryPolicy(max_attempts=2, delay_ms=0).run(op)
    assert not outcome.ok
    assert outcome.value is None
    assert isinstance(outcome.fault, RuntimeError)
    assert str(outcome.fault) == "boom 2"
    assert calls["n"] == 2


async def test_sleeps_between_attempts(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    op, _ = _flaky(2)
    await RecoveryPolicy(max_attempts=3, delay_ms=250).run(op)
    assert delays == [0.25, 0.25]


async def test_cancellation_passes_through():
    async def op():
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await RecoveryPolicy(delay_ms=0).run(op)


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RecoveryPolicy(max_attempts=0)
