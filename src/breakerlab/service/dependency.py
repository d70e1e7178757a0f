from __future__ import annotations

import logging
from random import Random
import threading
import time
from typing import Callable

from breakerlab.breaker import CircuitState
from breakerlab.config import DependencyConfig

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Service temporarily unavailable (Circuit Breaker OPEN)"


class DependencyUnavailable(RuntimeError):
    pass


class FlakyDependency:
    """Stand-in for a remote API that is slow and fails at random."""

    def __init__(
        self,
        config: DependencyConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._sleep = sleep
        self._rng = Random(config.seed)
        self._lock = threading.Lock()
        self._call_count = 0

    @property
    def call_count(self) -> int:
        with self._lock:
            return self._call_count

    def call(self) -> str:
        with self._lock:
            self._call_count += 1
            count = self._call_count
            failed = self._rng.random() < self.config.failure_rate
        logger.info("Attempting API call #%d", count)
        if self.config.latency_sec > 0:
            self._sleep(self.config.latency_sec)
        if failed:
            logger.error("API call #%d FAILED", count)
            raise DependencyUnavailable("External API unavailable!")
        logger.info("API call #%d SUCCESS", count)
        return f"Success from API - Call #{count}"


def fallback_message(state: CircuitState) -> str:
    logger.warning("Circuit breaker %s - fallback triggered", state.value)
    return FALLBACK_MESSAGE
