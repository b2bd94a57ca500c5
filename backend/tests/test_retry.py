"""Bounded retry tests."""

import logging

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from onboarding.services import retry as retry_module
from onboarding.services.retry import retry_call, with_retry


def _operational() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection reset"))


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    """Record backoff delays instead of sleeping."""
    recorded: list[float] = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(retry_module.asyncio, "sleep", fake_sleep)
    return recorded


@pytest.mark.unit
@pytest.mark.asyncio
class TestRetry:

    async def test_success_first_attempt(self, sleeps):
        calls = []

        async def op():
            calls.append(1)
            return "ok"

        assert await retry_call(op, attempts=3, base_delay=1.0) == "ok"
        assert len(calls) == 1
        assert sleeps == []

    async def test_recovers_after_transient_failure(self, sleeps):
        calls = []

        async def op():
            calls.append(1)
            if len(calls) < 3:
                raise _operational()
            return "ok"

        assert await retry_call(op, attempts=3, base_delay=1.0) == "ok"
        assert len(calls) == 3
        # linear backoff: attempt * base delay
        assert sleeps == [1.0, 2.0]

    async def test_gives_up_after_max_attempts(self, sleeps, caplog):
        calls = []
        error = _operational()

        async def op():
            calls.append(1)
            raise error

        with caplog.at_level(logging.WARNING, logger="onboarding.retry"):
            with pytest.raises(OperationalError) as exc_info:
                await retry_call(op, attempts=3, base_delay=0.5)

        assert exc_info.value is error
        assert len(calls) == 3
        assert sleeps == [0.5, 1.0]
        levels = [r.levelno for r in caplog.records]
        assert levels.count(logging.WARNING) == 2
        assert levels.count(logging.ERROR) == 1

    async def test_non_transient_error_not_retried(self, sleeps):
        calls = []

        async def op():
            calls.append(1)
            raise IntegrityError("INSERT", {}, Exception("duplicate"))

        with pytest.raises(IntegrityError):
            await retry_call(op, attempts=3, base_delay=1.0)
        assert len(calls) == 1
        assert sleeps == []

    async def test_invalid_attempts(self):
        async def op():
            return None

        with pytest.raises(ValueError):
            await retry_call(op, attempts=0)

    async def test_decorator(self, sleeps):
        calls = []

        class Flaky:
            @with_retry(attempts=2, base_delay=0.25)
            async def load(self, value):
                calls.append(value)
                if len(calls) == 1:
                    raise ConnectionError("dropped")
                return value * 2

        assert await Flaky().load(21) == 42
        assert calls == [21, 21]
        assert sleeps == [0.25]
        assert Flaky.load.__name__ == "load"
