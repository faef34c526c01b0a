"""Tests for the circuit breaker state machine."""

import asyncio

import pytest

from idea_evolver.api_client import LLMRequest, ResilientClient
from idea_evolver.circuit_breaker import CircuitBreaker, CircuitOpenError, CircuitState
from idea_evolver.llm_client import ProviderError

from conftest import make_provider


def _trip(breaker: CircuitBreaker, times: int) -> None:
    for _ in range(times):
        breaker.before_call()
        breaker.record_failure()


def test_breaker_starts_closed(clock):
    breaker = CircuitBreaker("llm", clock=clock)
    assert breaker.state == CircuitState.CLOSED
    breaker.before_call()


def test_breaker_opens_at_threshold(clock):
    breaker = CircuitBreaker("llm", failure_threshold=5, clock=clock)

    _trip(breaker, 4)
    assert breaker.state == CircuitState.CLOSED

    _trip(breaker, 1)
    assert breaker.is_open
    with pytest.raises(CircuitOpenError) as exc_info:
        breaker.before_call()
    assert "OPEN" in str(exc_info.value)
    assert exc_info.value.retry_after == pytest.approx(60.0)


def test_success_resets_failure_count(clock):
    breaker = CircuitBreaker("llm", failure_threshold=3, clock=clock)
    _trip(breaker, 2)
    breaker.record_success()
    assert breaker.failure_count == 0

    _trip(breaker, 2)
    assert breaker.state == CircuitState.CLOSED


def test_half_open_allows_exactly_one_trial(clock):
    breaker = CircuitBreaker("llm", failure_threshold=1, cooldown_seconds=60, clock=clock)
    _trip(breaker, 1)

    clock.advance(59)
    with pytest.raises(CircuitOpenError):
        breaker.before_call()

    clock.advance(2)
    breaker.before_call()
    assert breaker.state == CircuitState.HALF_OPEN

    with pytest.raises(CircuitOpenError):
        breaker.before_call()


def test_half_open_success_closes(clock):
    breaker = CircuitBreaker("llm", failure_threshold=1, cooldown_seconds=10, clock=clock)
    _trip(breaker, 1)
    clock.advance(10)

    breaker.before_call()
    breaker.record_success()

    assert breaker.state == CircuitState.CLOSED
    breaker.before_call()


def test_half_open_failure_reopens(clock):
    breaker = CircuitBreaker("llm", failure_threshold=1, cooldown_seconds=10, clock=clock)
    _trip(breaker, 1)
    clock.advance(10)

    breaker.before_call()
    breaker.record_failure()

    assert breaker.is_open
    with pytest.raises(CircuitOpenError):
        breaker.before_call()


def test_reset_and_status(clock):
    breaker = CircuitBreaker("llm", failure_threshold=2, cooldown_seconds=30, clock=clock)
    _trip(breaker, 2)
    assert breaker.get_status()["state"] == "open"

    breaker.reset()
    status = breaker.get_status()
    assert status == {
        "name": "llm",
        "state": "closed",
        "failure_count": 0,
        "failure_threshold": 2,
        "cooldown_seconds": 30,
    }


@pytest.mark.asyncio
async def test_sixth_call_fails_fast_without_network(clock):
    primary = make_provider(side_effect=ProviderError("upstream down", status_code=500))
    breaker = CircuitBreaker("llm", failure_threshold=5, cooldown_seconds=60, clock=clock)
    client = ResilientClient(primary, breaker=breaker, retries=0, base_delay=0)

    for _ in range(5):
        with pytest.raises(ProviderError):
            await client.execute(LLMRequest(prompt="hi"))
    assert primary.complete.await_count == 5

    with pytest.raises(CircuitOpenError):
        await client.execute(LLMRequest(prompt="hi"))
    assert primary.complete.await_count == 5

    # after the cooldown one trial call goes through again
    clock.advance(60)
    primary.complete.side_effect = None
    primary.complete.return_value = "back"
    assert await client.execute(LLMRequest(prompt="hi")) == "back"
    assert breaker.state == CircuitState.CLOSED


def test_failure_at_clock_zero_still_counts_towards_cooldown(clock):
    clock.now = 0.0
    breaker = CircuitBreaker("llm", failure_threshold=1, cooldown_seconds=10, clock=clock)
    _trip(breaker, 1)

    clock.advance(10)
    breaker.before_call()
    assert breaker.state == CircuitState.HALF_OPEN


@pytest.mark.asyncio
async def test_cancelled_trial_call_frees_the_half_open_slot(clock):
    hang = asyncio.Event()

    async def never_answers(*args, **kwargs):
        await hang.wait()

    primary = make_provider(side_effect=never_answers)
    breaker = CircuitBreaker("llm", failure_threshold=1, cooldown_seconds=10, clock=clock)
    client = ResilientClient(primary, breaker=breaker, retries=0, base_delay=0)
    _trip(breaker, 1)
    clock.advance(10)

    call = asyncio.ensure_future(client.execute(LLMRequest(prompt="hi")))
    await asyncio.sleep(0)
    assert breaker.state == CircuitState.HALF_OPEN
    call.cancel()
    with pytest.raises(asyncio.CancelledError):
        await call

    primary.complete.side_effect = None
    primary.complete.return_value = "back"
    assert await client.execute(LLMRequest(prompt="hi")) == "back"
    assert breaker.state == CircuitState.CLOSED
