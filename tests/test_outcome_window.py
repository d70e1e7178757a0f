from __future__ import annotations

from hypothesis import given, strategies as st
import pytest

from breakerlab.breaker import OutcomeWindow


def test_empty_window_has_zero_ratio() -> None:
    window = OutcomeWindow(4)
    assert window.size == 0
    assert window.failure_ratio() == 0.0


def test_window_evicts_oldest() -> None:
    window = OutcomeWindow(3)
    for outcome in (False, True, True, True):
        window.record(outcome)
    assert window.size == 3
    assert window.failures == 0
    assert window.failure_ratio() == 0.0


def test_clear_resets_counts() -> None:
    window = OutcomeWindow(2)
    window.record(False)
    window.record(False)
    window.clear()
    assert len(window) == 0
    assert window.failures == 0
    window.record(True)
    assert window.failure_ratio() == 0.0


def test_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        OutcomeWindow(0)


@given(
    capacity=st.integers(min_value=1, max_value=20),
    outcomes=st.lists(st.booleans(), max_size=60),
)
def test_window_tracks_last_outcomes(capacity: int, outcomes: list[bool]) -> None:
    window = OutcomeWindow(capacity)
    for outcome in outcomes:
        window.record(outcome)
    tail = outcomes[-capacity:] if outcomes else []
    assert window.size == len(tail) <= capacity
    assert window.failures == tail.count(False)
    if tail:
        assert window.failure_ratio() == tail.count(False) / len(tail)
    else:
        assert window.failure_ratio() == 0.0
