from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float:
        ...


class MonotonicClock:
    def now(self) -> float:
        return time.monotonic()


@dataclass(slots=True)
class ManualClock:
    """Clock that only moves when told to; used to pin cooldown boundaries."""

    current: float = 0.0

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            msg = f"Cannot move clock backwards by {seconds}"
            raise ValueError(msg)
        self.current += seconds

    def set(self, value: float) -> None:
        self.current = value
