from __future__ import annotations

from collections import deque


class OutcomeWindow:
    """Count-based ring of recent call outcomes (True = success).

    Not thread-safe; the owning breaker serializes access.
    """

    __slots__ = ("_outcomes", "_failures")

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            msg = f"Window capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self._outcomes: deque[bool] = deque(maxlen=capacity)
        self._failures = 0

    @property
    def capacity(self) -> int:
        return self._outcomes.maxlen or 0

    @property
    def size(self) -> int:
        return len(self._outcomes)

    @property
    def failures(self) -> int:
        return self._failures

    def record(self, outcome: bool) -> None:
        if len(self._outcomes) == self.capacity and not self._outcomes[0]:
            self._failures -= 1
        self._outcomes.append(outcome)
        if not outcome:
            self._failures += 1

    def failure_ratio(self) -> float:
        if not self._outcomes:
            return 0.0
        return self._failures / len(self._outcomes)

    def clear(self) -> None:
        self._outcomes.clear()
        self._failures = 0

    def __len__(self) -> int:
        return len(self._outcomes)
