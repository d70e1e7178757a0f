from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from breakerlab.breaker.clock import Clock, MonotonicClock
from breakerlab.breaker.window import OutcomeWindow

if TYPE_CHECKING:
    from breakerlab.config.models import BreakerConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True, slots=True)
class TransitionEvent:
    name: str
    from_state: CircuitState
    to_state: CircuitState
    timestamp: float
    failure_ratio: float


@dataclass(frozen=True, slots=True)
class BreakerSnapshot:
    name: str
    state: CircuitState
    last_transition_time: float
    window_size: int
    failure_ratio: float
    half_open_admitted: int
    half_open_attempts: int
    half_open_successes: int

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "state": self.state.value,
            "last_transition_time": self.last_transition_time,
            "window_size": self.window_size,
            "failure_ratio": self.failure_ratio,
            "half_open_admitted": self.half_open_admitted,
            "half_open_attempts": self.half_open_attempts,
            "half_open_successes": self.half_open_successes,
        }


@dataclass(frozen=True, slots=True)
class _Permit:
    state: CircuitState
    cycle: int


TransitionListener = Callable[[TransitionEvent], None]


class CircuitBreaker:
    """Count-window circuit breaker shared by every caller of one dependency.

    All state inspection and mutation happens under a single lock; the
    protected operation, the fallback and transition listeners always run
    with the lock released. Each state change starts a new cycle, and an
    outcome is only applied if the call was admitted in the current cycle.
    """

    def __init__(
        self,
        config: BreakerConfig,
        clock: Clock | None = None,
        name: str = "default",
    ) -> None:
        self.config = config
        self.name = name
        self._clock = clock or MonotonicClock()
        self._lock = threading.Lock()
        self._listeners: list[TransitionListener] = []
        self._window = OutcomeWindow(config.window_size)
        self._min_calls = min(config.minimum_calls, config.window_size)
        self._state = CircuitState.CLOSED
        self._cycle = 0
        self._last_transition_time = self._clock.now()
        self._half_open_admitted = 0
        self._half_open_attempts = 0
        self._half_open_successes = 0

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_ratio(self) -> float:
        with self._lock:
            return self._window.failure_ratio()

    @property
    def last_transition_time(self) -> float:
        with self._lock:
            return self._last_transition_time

    def snapshot(self) -> BreakerSnapshot:
        with self._lock:
            return BreakerSnapshot(
                name=self.name,
                state=self._state,
                last_transition_time=self._last_transition_time,
                window_size=self._window.size,
                failure_ratio=self._window.failure_ratio(),
                half_open_admitted=self._half_open_admitted,
                half_open_attempts=self._half_open_attempts,
                half_open_successes=self._half_open_successes,
            )

    def subscribe(self, listener: TransitionListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def execute(self, operation: Callable[[], T], fallback: Callable[[], T]) -> T:
        permit = self._acquire()
        if permit is None:
            return fallback()
        try:
            result = operation()
        except Exception:
            self._complete(permit, success=False)
            raise
        except BaseException:
            self._abandon(permit)
            raise
        self._complete(permit, success=True)
        return result

    async def execute_async(
        self,
        operation: Callable[[], Awaitable[T]],
        fallback: Callable[[], Awaitable[T]],
    ) -> T:
        permit = self._acquire()
        if permit is None:
            return await fallback()
        try:
            result = await operation()
        except Exception:
            self._complete(permit, success=False)
            raise
        except BaseException:
            self._abandon(permit)
            raise
        self._complete(permit, success=True)
        return result

    def _acquire(self) -> _Permit | None:
        events: list[TransitionEvent] = []
        with self._lock:
            if self._state is CircuitState.OPEN:
                now = self._clock.now()
                if now - self._last_transition_time < self.config.open_cooldown_sec:
                    return None
                events.append(self._transition(CircuitState.HALF_OPEN, now))
            if self._state is CircuitState.HALF_OPEN:
                if self._half_open_admitted >= self.config.half_open_trial_count:
                    permit = None
                else:
                    self._half_open_admitted += 1
                    permit = _Permit(CircuitState.HALF_OPEN, self._cycle)
            else:
                permit = _Permit(CircuitState.CLOSED, self._cycle)
        self._emit(events)
        return permit

    def _complete(self, permit: _Permit, success: bool) -> None:
        events: list[TransitionEvent] = []
        with self._lock:
            if permit.cycle != self._cycle:
                return
            if permit.state is CircuitState.CLOSED:
                self._window.record(success)
                if (
                    self._window.size >= self._min_calls
                    and self._window.failure_ratio() >= self.config.failure_threshold
                ):
                    events.append(self._transition(CircuitState.OPEN, self._clock.now()))
            else:
                self._half_open_attempts += 1
                if success:
                    self._half_open_successes += 1
                if not success:
                    events.append(self._transition(CircuitState.OPEN, self._clock.now()))
                elif self._half_open_attempts >= self.config.half_open_trial_count:
                    if self._half_open_successes == self._half_open_attempts:
                        target = CircuitState.CLOSED
                    else:
                        target = CircuitState.OPEN
                    events.append(self._transition(target, self._clock.now()))
        self._emit(events)

    def _abandon(self, permit: _Permit) -> None:
        # Interrupted probes give their slot back without counting as an attempt.
        with self._lock:
            if permit.cycle == self._cycle and permit.state is CircuitState.HALF_OPEN:
                self._half_open_admitted -= 1

    def _transition(self, target: CircuitState, now: float) -> TransitionEvent:
        event = TransitionEvent(
            name=self.name,
            from_state=self._state,
            to_state=target,
            timestamp=now,
            failure_ratio=self._window.failure_ratio(),
        )
        self._state = target
        self._cycle += 1
        self._last_transition_time = now
        self._half_open_admitted = 0
        self._half_open_attempts = 0
        self._half_open_successes = 0
        self._window.clear()
        return event

    def _emit(self, events: list[TransitionEvent]) -> None:
        if not events:
            return
        with self._lock:
            listeners = tuple(self._listeners)
        for event in events:
            for listener in listeners:
                try:
                    listener(event)
                except Exception:
                    logger.exception(
                        "Transition listener failed for breaker %s (%s -> %s)",
                        self.name,
                        event.from_state.value,
                        event.to_state.value,
                    )
