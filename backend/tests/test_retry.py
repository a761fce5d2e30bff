"""Tests for the retry helper and transient error classification."""

from unittest.mock import AsyncMock

import httpx
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from payplan.core.errors import DataIntegrityError, TransientInfrastructureError
from payplan.core.retry import RetryPolicy, is_transient_error, with_retry


class TestIsTransientError:
    @pytest.mark.parametrize(
        "error",
        [
            TransientInfrastructureError("db down"),
            OperationalError("SELECT 1", {}, Exception("server closed the connection")),
            httpx.ConnectTimeout("timed out"),
            TimeoutError(),
            ConnectionResetError(),
            RuntimeError("read ECONNRESET"),
            RuntimeError("connect ETIMEDOUT 10.0.0.1:5432"),
            RuntimeError("connect ECONNREFUSED"),
            RuntimeError("Connection terminated unexpectedly"),
        ],
    )
    def test_transient(self, error) -> None:
        assert is_transient_error(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            ValueError("invalid input syntax for type date"),
            DataIntegrityError("bad timezone"),
            IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")),
            KeyError("status"),
        ],
    )
    def test_permanent(self, error) -> None:
        assert is_transient_error(error) is False


class TestRetryPolicy:
    def test_default_delays_double(self) -> None:
        policy = RetryPolicy()
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_custom_base_delay(self) -> None:
        assert RetryPolicy(base_delay=0.5).delay_for(3) == 2.0


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_attempt(self) -> None:
        sleep = AsyncMock()
        fn = AsyncMock(return_value=42)

        outcome = await with_retry(fn, RetryPolicy(), sleep=sleep)

        assert outcome.succeeded
        assert outcome.value == 42
        assert outcome.attempts == 1
        assert outcome.delays == []
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_two_transient_failures_then_success(self) -> None:
        sleep = AsyncMock()
        fn = AsyncMock(
            side_effect=[
                TransientInfrastructureError("connection reset"),
                TransientInfrastructureError("timeout"),
                7,
            ]
        )

        outcome = await with_retry(fn, RetryPolicy(), sleep=sleep)

        assert outcome.succeeded
        assert outcome.value == 7
        assert outcome.attempts == 3
        assert outcome.delays == [1.0, 2.0]
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self) -> None:
        sleep = AsyncMock()
        fn = AsyncMock(side_effect=TransientInfrastructureError("timeout"))

        outcome = await with_retry(fn, RetryPolicy(max_attempts=3), sleep=sleep)

        assert not outcome.succeeded
        assert isinstance(outcome.error, TransientInfrastructureError)
        assert outcome.attempts == 3
        assert fn.await_count == 3
        assert outcome.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_transient_error_stops_immediately(self) -> None:
        sleep = AsyncMock()
        fn = AsyncMock(side_effect=ValueError("column does not exist"))

        outcome = await with_retry(fn, RetryPolicy(), sleep=sleep)

        assert not outcome.succeeded
        assert isinstance(outcome.error, ValueError)
        assert outcome.attempts == 1
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_custom_classifier(self) -> None:
        sleep = AsyncMock()
        fn = AsyncMock(side_effect=[KeyError("x"), "ok"])
        policy = RetryPolicy(is_transient=lambda exc: isinstance(exc, KeyError), base_delay=0.1)

        outcome = await with_retry(fn, policy, sleep=sleep)

        assert outcome.value == "ok"
        assert outcome.delays == [0.1]
