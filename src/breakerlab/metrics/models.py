from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import threading


class CallOutcome(str, Enum):
    SUCCESS = "success"
    BLOCKED = "blocked"
    FAILED = "failed"
    SHORT_CIRCUITED = "short_circuited"


class ErrorType(str, Enum):
    TIMEOUT = "timeout"
    CONNECT = "connect"
    READ = "read"
    HTTP_STATUS = "http_status"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class CallEvent:
    run_id: str
    client_id: int
    seq: int
    wall_time: float
    latency_ms: float
    outcome: CallOutcome
    status_code: int | None
    error_type: ErrorType | None


@dataclass(slots=True)
class CallStats:
    """Counters shared by every worker of one load test."""

    success: int = 0
    failed: int = 0
    blocked: int = 0
    short_circuited: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, outcome: CallOutcome) -> None:
        with self._lock:
            if outcome is CallOutcome.SUCCESS:
                self.success += 1
            elif outcome is CallOutcome.BLOCKED:
                self.blocked += 1
            elif outcome is CallOutcome.SHORT_CIRCUITED:
                self.short_circuited += 1
            else:
                self.failed += 1

    @property
    def total(self) -> int:
        return self.success + self.failed + self.blocked + self.short_circuited

    def pct(self, count: int) -> float:
        total = self.total
        return 100.0 * count / total if total else 0.0


@dataclass(frozen=True, slots=True)
class RunSummary:
    run_id: str
    total: int
    success: int
    failed: int
    blocked: int
    short_circuited: int
    p50_ms: float
    p95_ms: float
    p99_ms: float
    blocked_p50_ms: float
