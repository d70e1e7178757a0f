from __future__ import annotations

from breakerlab.breaker.clock import Clock, ManualClock, MonotonicClock
from breakerlab.breaker.core import (
    BreakerSnapshot,
    CircuitBreaker,
    CircuitState,
    TransitionEvent,
    TransitionListener,
)
from breakerlab.breaker.errors import ConfigurationError
from breakerlab.breaker.window import OutcomeWindow

__all__ = [
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitState",
    "Clock",
    "ConfigurationError",
    "ManualClock",
    "MonotonicClock",
    "OutcomeWindow",
    "TransitionEvent",
    "TransitionListener",
]
