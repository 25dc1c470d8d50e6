"""Tests for retry policy and executors.

Validates:
- Attempt counts and failure history length
- Ordering and timestamps
- Wait behavior (no suspension without retries)
- Shared aggregators, async and thread offloading
- Cancellation at and during attempts
"""

from __future__ import annotations

import asyncio
import threading
import time
from datetime import timedelta
from io import StringIO

import orjson
import pytest
from pydantic import ValidationError

from faultline.foundation.config import clear_settings_cache
from faultline.foundation.errors import InputValidationError, RetryExhaustedError, failure_kind
from faultline.runtime.aggregate import FailureAggregator
from faultline.runtime.observability import configure_logging
from faultline.runtime.retry import (
    NO_RETRY,
    ExponentialBackoff,
    LinearBackoff,
    RetryOutcome,
    RetryPolicy,
    execute_with_retry,
    execute_with_retry_sync,
)
from faultline.runtime.retry import policy as policy_module

from .support import Flaky, FlakyError

KIND = failure_kind(FlakyError)


# ═════════════════════════════════════════════════════════════════════════════
# Policy
# ═════════════════════════════════════════════════════════════════════════════


class TestRetryPolicy:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_retries == 0
        assert policy.wait_between_retries == 0.0
        assert policy.max_attempts == 1

    def test_negative_values_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RetryPolicy(max_retries=-1)
        with pytest.raises(ValidationError):
            RetryPolicy(wait_between_retries=-0.5)

    def test_timedelta_wait(self) -> None:
        assert RetryPolicy(wait_between_retries=timedelta(milliseconds=1500)).wait_between_retries == 1.5

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            NO_RETRY.max_retries = 3  # type: ignore[misc]

    def test_delay_uses_wait_without_backoff(self) -> None:
        policy = RetryPolicy(max_retries=3, wait_between_retries=2.0)
        assert [policy.get_delay(i) for i in range(3)] == [2.0, 2.0, 2.0]

    def test_delay_uses_backoff(self) -> None:
        policy = RetryPolicy(max_retries=3, wait_between_retries=9.0, backoff=LinearBackoff(step=0.5))
        assert [policy.get_delay(i) for i in range(3)] == [9.0, 9.5, 10.0]

    def test_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FAULTLINE_RETRY_MAX_RETRIES", "4")
        monkeypatch.setenv("FAULTLINE_RETRY_WAIT_SECONDS", "0.25")
        clear_settings_cache()

        policy = RetryPolicy.from_settings()
        assert policy.max_retries == 4
        assert policy.wait_between_retries == 0.25


class TestBackoff:
    def test_linear_grows_from_base(self) -> None:
        assert [LinearBackoff(step=0.5).delay(i, 1.0) for i in range(3)] == [1.0, 1.5, 2.0]

    def test_linear_capped(self) -> None:
        assert LinearBackoff(step=10, cap=15).delay(5, 1.0) == 15

    def test_exponential_without_jitter(self) -> None:
        backoff = ExponentialBackoff(cap=5.0)
        assert [backoff.delay(i, 1.0) for i in range(4)] == [1.0, 2.0, 4.0, 5.0]

    def test_exponential_jitter_bounds(self) -> None:
        backoff = ExponentialBackoff(jitter=0.5)
        assert all(1.0 <= backoff.delay(0, 2.0) <= 3.0 for _ in range(50))

    def test_durations_accept_timedelta(self) -> None:
        assert LinearBackoff(step=timedelta(milliseconds=250), cap=timedelta(seconds=2)).delay(20, 0.0) == 2.0

    @pytest.mark.parametrize("kwargs", [{"step": -1}, {"cap": -0.1}])
    def test_linear_rejects_negative(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValidationError):
            LinearBackoff(**kwargs)

    @pytest.mark.parametrize("kwargs", [{"factor": 0.5}, {"jitter": 1.5}, {"jitter": -0.1}])
    def test_exponential_rejects_invalid(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValidationError):
            ExponentialBackoff(**kwargs)


# ═════════════════════════════════════════════════════════════════════════════
# Sync Executor
# ═════════════════════════════════════════════════════════════════════════════


class TestExecuteSync:
    @pytest.mark.parametrize("max_retries", [0, 1, 3])
    def test_always_failing_records_every_attempt(self, max_retries: int) -> None:
        """N retries on a persistent failure -> N+1 failures, in call order."""
        op = Flaky(failures=100)
        outcome = execute_with_retry_sync(op, RetryPolicy(max_retries=max_retries))

        assert not outcome.succeeded
        assert outcome.attempts == op.calls == max_retries + 1
        assert len(outcome.failures) == max_retries + 1
        assert [f.message for f in outcome.failures] == [f"attempt {i} failed" for i in range(1, max_retries + 2)]
        assert all(f.kind == KIND for f in outcome.failures)
        stamps = [f.timestamp for f in outcome.failures]
        assert stamps == sorted(stamps)

    @pytest.mark.parametrize("k", [1, 2, 4])
    def test_success_on_attempt_k(self, k: int) -> None:
        """Success on attempt k -> k-1 failures and no further attempts."""
        op = Flaky(failures=k - 1, value=42)
        outcome = execute_with_retry_sync(op, RetryPolicy(max_retries=5))

        assert outcome.succeeded
        assert outcome.value == 42
        assert outcome.attempts == op.calls == k
        assert len(outcome.failures) == k - 1

    def test_zero_retries_never_sleeps(self, monkeypatch: pytest.MonkeyPatch) -> None:
        sleeps: list[float] = []
        monkeypatch.setattr(policy_module.time, "sleep", sleeps.append)
        op = Flaky(failures=1)

        outcome = execute_with_retry_sync(op, RetryPolicy(max_retries=0, wait_between_retries=5))

        assert op.calls == 1
        assert outcome.attempts == 1
        assert len(outcome.failures) == 1
        assert sleeps == []

    def test_waits_between_attempts_only(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """No wait after the last attempt."""
        sleeps: list[float] = []
        monkeypatch.setattr(policy_module.time, "sleep", sleeps.append)

        execute_with_retry_sync(Flaky(failures=100), RetryPolicy(max_retries=3, wait_between_retries=0.5))

        assert sleeps == [0.5, 0.5, 0.5]

    def test_feeds_aggregator(self) -> None:
        agg = FailureAggregator()
        outcome = execute_with_retry_sync(Flaky(failures=2), RetryPolicy(max_retries=2), agg)

        assert outcome.succeeded
        assert agg.snapshot() == outcome.failures

    def test_aggregator_accumulates_across_calls(self) -> None:
        agg = FailureAggregator()
        first = execute_with_retry_sync(Flaky(failures=1), RetryPolicy(max_retries=1), agg)
        second = execute_with_retry_sync(Flaky(failures=5, exc=KeyError), RetryPolicy(max_retries=1), agg)

        assert len(first.failures) == 1
        assert len(second.failures) == 2
        assert agg.snapshot() == first.failures + second.failures
        assert agg.count_by_kind() == {KIND: 1, "KeyError": 2}

    def test_on_retry_callback(self) -> None:
        calls: list[tuple[int, str, float]] = []
        policy = RetryPolicy(
            max_retries=2,
            on_retry=lambda attempt, failure, delay: calls.append((attempt, failure.message, delay)),
        )
        execute_with_retry_sync(Flaky(failures=100), policy)

        assert calls == [(0, "attempt 1 failed", 0.0), (1, "attempt 2 failed", 0.0)]

    def test_base_exceptions_propagate(self) -> None:
        def interrupt() -> None:
            raise KeyboardInterrupt

        agg = FailureAggregator()
        with pytest.raises(KeyboardInterrupt):
            execute_with_retry_sync(interrupt, RetryPolicy(max_retries=3), agg)
        assert len(agg) == 0

    def test_default_policy_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FAULTLINE_RETRY_MAX_RETRIES", "2")
        clear_settings_cache()
        op = Flaky(failures=100)

        outcome = execute_with_retry_sync(op)
        assert outcome.attempts == 3

    def test_logs_retries_and_exhaustion(self) -> None:
        buf = StringIO()
        configure_logging(format="json", output=buf)

        execute_with_retry_sync(Flaky(failures=100), RetryPolicy(max_retries=1))

        events = [orjson.loads(line) for line in buf.getvalue().splitlines()]
        assert [e["event"] for e in events] == ["retrying", "retries exhausted"]
        assert events[0]["logger"] == "faultline.retry"
        assert events[0]["kind"] == KIND
        assert events[1]["attempts"] == 2

    def test_undecodable_message_under_json_logging(self) -> None:
        """File names from os.listdir may carry lone surrogates."""
        buf = StringIO()
        configure_logging(format="json", output=buf)

        def process() -> None:
            raise RuntimeError("cannot process file-\udcff.csv")

        outcome = execute_with_retry_sync(process, RetryPolicy(max_retries=2))

        assert outcome.attempts == 3
        assert not outcome.succeeded
        assert outcome.failures[0].message == "cannot process file-\udcff.csv"
        events = [orjson.loads(line) for line in buf.getvalue().splitlines()]
        assert [e["event"] for e in events] == ["retrying", "retrying", "retries exhausted"]
        assert events[0]["error"] == "cannot process file-\\udcff.csv"

    def test_rejects_coroutine_function(self) -> None:
        calls = 0

        async def op() -> None:
            nonlocal calls
            calls += 1
            raise FlakyError("never awaited")

        agg = FailureAggregator()
        with pytest.raises(InputValidationError, match="execute_with_retry"):
            execute_with_retry_sync(op, RetryPolicy(max_retries=2), agg)
        assert calls == 0
        assert len(agg) == 0

    def test_rejects_awaitable_result(self) -> None:
        async def fetch() -> str:
            return "late"

        with pytest.raises(InputValidationError, match="awaitable"):
            execute_with_retry_sync(lambda: fetch(), RetryPolicy(max_retries=2))


class TestRetryOutcome:
    def test_raise_for_failure(self) -> None:
        outcome = execute_with_retry_sync(Flaky(failures=100), RetryPolicy(max_retries=2))

        with pytest.raises(RetryExhaustedError) as info:
            outcome.raise_for_failure()

        assert info.value.failures == outcome.failures
        assert info.value.attempts == 3
        assert outcome.exhausted
        assert not outcome

    def test_success_returns_value(self) -> None:
        outcome = execute_with_retry_sync(lambda: "ok", NO_RETRY)
        assert outcome.raise_for_failure() == "ok"
        assert outcome
        assert outcome.last_failure is None
        assert outcome == RetryOutcome((), 1, succeeded=True, value="ok")


# ═════════════════════════════════════════════════════════════════════════════
# Async Executor
# ═════════════════════════════════════════════════════════════════════════════


class TestExecuteAsync:
    @pytest.mark.asyncio
    async def test_coroutine_operation(self) -> None:
        calls = 0

        async def op() -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise FlakyError(f"attempt {calls} failed")
            return "ok"

        outcome = await execute_with_retry(op, RetryPolicy(max_retries=5))

        assert outcome.succeeded
        assert outcome.value == "ok"
        assert outcome.attempts == 3
        assert [f.message for f in outcome.failures] == ["attempt 1 failed", "attempt 2 failed"]

    @pytest.mark.asyncio
    async def test_always_failing(self) -> None:
        op = Flaky(failures=100)
        outcome = await execute_with_retry(op, RetryPolicy(max_retries=2))

        assert not outcome.succeeded
        assert op.calls == 3
        assert len(outcome.failures) == 3

    @pytest.mark.asyncio
    async def test_sync_operation_runs_off_loop(self) -> None:
        """Plain callables are offloaded to a worker thread."""
        loop_thread = threading.current_thread()
        seen: list[threading.Thread] = []

        def op() -> str:
            seen.append(threading.current_thread())
            return "ok"

        outcome = await execute_with_retry(op, NO_RETRY)

        assert outcome.value == "ok"
        assert seen and seen[0] is not loop_thread

    @pytest.mark.asyncio
    async def test_zero_retries_never_suspends(self, monkeypatch: pytest.MonkeyPatch) -> None:
        sleeps: list[float] = []
        real_sleep = asyncio.sleep

        async def recording_sleep(delay: float, *args: object) -> None:
            sleeps.append(delay)
            await real_sleep(0)

        monkeypatch.setattr(policy_module.asyncio, "sleep", recording_sleep)
        op = Flaky(failures=100)

        outcome = await execute_with_retry(op, RetryPolicy(max_retries=0, wait_between_retries=10))

        assert op.calls == 1
        assert len(outcome.failures) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_wait_does_not_block_loop(self) -> None:
        """Other tasks progress while the executor waits between attempts."""
        ticks = 0

        async def ticker() -> None:
            nonlocal ticks
            for _ in range(5):
                ticks += 1
                await asyncio.sleep(0.01)

        start = time.perf_counter()
        outcome, _ = await asyncio.gather(
            execute_with_retry(Flaky(failures=100), RetryPolicy(max_retries=2, wait_between_retries=0.05)),
            ticker(),
        )

        assert not outcome.succeeded
        assert ticks == 5
        assert time.perf_counter() - start >= 0.1

    @pytest.mark.asyncio
    async def test_shared_aggregator_across_concurrent_calls(self) -> None:
        agg = FailureAggregator()
        outcomes = await asyncio.gather(*(
            execute_with_retry(Flaky(failures=100), RetryPolicy(max_retries=3, wait_between_retries=0.001), agg)
            for _ in range(10)
        ))

        assert len(agg) == sum(len(o.failures) for o in outcomes) == 40
        shared = agg.snapshot()
        for outcome in outcomes:
            # Each call's own history is an ordered subsequence of the shared one
            positions = [next(i for i, g in enumerate(shared) if g is f) for f in outcome.failures]
            assert positions == sorted(positions)

    @pytest.mark.asyncio
    async def test_cancel_during_wait(self) -> None:
        """Cancellation at the wait keeps the failures recorded so far."""
        agg = FailureAggregator()
        waiting = asyncio.Event()
        policy = RetryPolicy(max_retries=3, wait_between_retries=10, on_retry=lambda *_: waiting.set())

        task = asyncio.create_task(execute_with_retry(Flaky(failures=100), policy, agg))
        await waiting.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert [f.kind for f in agg] == [KIND]

    @pytest.mark.asyncio
    async def test_cancel_during_attempt_is_recorded(self) -> None:
        agg = FailureAggregator()
        started = asyncio.Event()

        async def hang() -> None:
            started.set()
            await asyncio.sleep(10)

        task = asyncio.create_task(execute_with_retry(hang, RetryPolicy(max_retries=3), agg))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(agg) == 1
        assert agg[0].kind == failure_kind(asyncio.CancelledError)
