from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import threading
import time

import pytest

from breakerlab.breaker import CircuitBreaker, CircuitState, ManualClock, TransitionEvent
from breakerlab.config import BreakerConfig


class DependencyError(RuntimeError):
    pass


def _wait_for(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            pytest.fail("condition not reached in time")
        time.sleep(0.005)


def _opened_breaker(clock: ManualClock, trials: int) -> CircuitBreaker:
    breaker = CircuitBreaker(
        BreakerConfig(minimum_calls=1, window_size=1, open_cooldown_sec=5.0, half_open_trial_count=trials),
        clock=clock,
    )

    def fail() -> str:
        raise DependencyError("down")

    with pytest.raises(DependencyError):
        breaker.execute(fail, lambda: "fallback")
    assert breaker.state is CircuitState.OPEN
    return breaker


def test_open_breaker_never_calls_operation_under_contention() -> None:
    clock = ManualClock()
    breaker = _opened_breaker(clock, trials=1)
    clock.advance(4.99)
    calls: list[int] = []

    def operation() -> str:
        calls.append(1)
        return "ok"

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: breaker.execute(operation, lambda: "fallback"), range(200)))

    assert calls == []
    assert results == ["fallback"] * 200


def test_single_half_open_entry_and_bounded_probes() -> None:
    clock = ManualClock()
    breaker = _opened_breaker(clock, trials=3)
    events: list[TransitionEvent] = []
    breaker.subscribe(events.append)
    clock.advance(5.0)

    callers = 20
    barrier = threading.Barrier(callers)
    release = threading.Event()
    probes: list[int] = []
    fallbacks: list[int] = []

    def operation() -> str:
        probes.append(1)
        release.wait(timeout=5.0)
        return "ok"

    def fallback() -> str:
        fallbacks.append(1)
        return "fallback"

    def caller(_: int) -> str:
        barrier.wait(timeout=5.0)
        return breaker.execute(operation, fallback)

    with ThreadPoolExecutor(max_workers=callers) as pool:
        futures = [pool.submit(caller, i) for i in range(callers)]
        _wait_for(lambda: len(fallbacks) + len(probes) == callers)
        assert len(probes) == 3
        assert breaker.state is CircuitState.HALF_OPEN
        release.set()
        results = [f.result(timeout=5.0) for f in futures]

    assert results.count("ok") == 3
    assert results.count("fallback") == callers - 3
    transitions = [(e.from_state, e.to_state) for e in events]
    assert transitions == [
        (CircuitState.OPEN, CircuitState.HALF_OPEN),
        (CircuitState.HALF_OPEN, CircuitState.CLOSED),
    ]


def test_racing_probe_failure_reopens_once() -> None:
    clock = ManualClock()
    breaker = _opened_breaker(clock, trials=2)
    events: list[TransitionEvent] = []
    breaker.subscribe(events.append)
    clock.advance(5.0)

    first_started = threading.Event()
    release_first = threading.Event()

    def slow_success() -> str:
        first_started.set()
        release_first.wait(timeout=5.0)
        return "ok"

    def fail() -> str:
        raise DependencyError("still down")

    with ThreadPoolExecutor(max_workers=2) as pool:
        slow = pool.submit(breaker.execute, slow_success, lambda: "fallback")
        assert first_started.wait(timeout=5.0)
        with pytest.raises(DependencyError):
            breaker.execute(fail, lambda: "fallback")
        assert breaker.state is CircuitState.OPEN
        release_first.set()
        assert slow.result(timeout=5.0) == "ok"

    snapshot = breaker.snapshot()
    assert snapshot.state is CircuitState.OPEN
    assert snapshot.half_open_attempts == 0
    assert snapshot.half_open_admitted == 0
    assert [e.to_state for e in events] == [CircuitState.HALF_OPEN, CircuitState.OPEN]


def test_concurrent_failures_open_exactly_once() -> None:
    breaker = CircuitBreaker(
        BreakerConfig(failure_threshold=0.5, minimum_calls=10, window_size=10, open_cooldown_sec=60.0),
        clock=ManualClock(),
    )
    events: list[TransitionEvent] = []
    breaker.subscribe(events.append)
    calls: list[int] = []
    lock = threading.Lock()

    def fail() -> str:
        with lock:
            calls.append(1)
        time.sleep(0.001)
        raise DependencyError("down")

    def caller(_: int) -> str:
        try:
            return breaker.execute(fail, lambda: "fallback")
        except DependencyError:
            return "error"

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(caller, range(80)))

    assert breaker.state is CircuitState.OPEN
    assert [(e.from_state, e.to_state) for e in events] == [(CircuitState.CLOSED, CircuitState.OPEN)]
    assert results.count("error") == len(calls)
    assert len(calls) >= 10
    assert results.count("fallback") == 80 - len(calls)
