from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from breakerlab.breaker.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class BreakerConfig:
    failure_threshold: float = 0.5
    minimum_calls: int = 4
    window_size: int = 10
    open_cooldown_sec: float = 5.0
    half_open_trial_count: int = 2

    def __post_init__(self) -> None:
        if not 0.0 < self.failure_threshold <= 1.0:
            msg = f"failure_threshold must be in (0, 1], got {self.failure_threshold}"
            raise ConfigurationError(msg)
        if self.window_size <= 0:
            msg = f"window_size must be positive, got {self.window_size}"
            raise ConfigurationError(msg)
        if self.minimum_calls < 0:
            msg = f"minimum_calls must not be negative, got {self.minimum_calls}"
            raise ConfigurationError(msg)
        if self.open_cooldown_sec < 0:
            msg = f"open_cooldown_sec must not be negative, got {self.open_cooldown_sec}"
            raise ConfigurationError(msg)
        if self.half_open_trial_count <= 0:
            msg = f"half_open_trial_count must be positive, got {self.half_open_trial_count}"
            raise ConfigurationError(msg)

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "failure_threshold": self.failure_threshold,
            "minimum_calls": self.minimum_calls,
            "window_size": self.window_size,
            "open_cooldown_sec": self.open_cooldown_sec,
            "half_open_trial_count": self.half_open_trial_count,
        }


@dataclass(frozen=True, slots=True)
class DependencyConfig:
    failure_rate: float = 0.6
    latency_sec: float = 0.1
    seed: int | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.failure_rate <= 1.0:
            msg = f"failure_rate must be in [0, 1], got {self.failure_rate}"
            raise ConfigurationError(msg)
        if self.latency_sec < 0:
            msg = f"latency_sec must not be negative, got {self.latency_sec}"
            raise ConfigurationError(msg)


@dataclass(frozen=True, slots=True)
class LoadTestConfig:
    base_url: str
    path: str = "/test"
    clients: int = 5
    calls_per_client: int = 10
    call_interval_sec: float = 0.2
    startup_delay_sec: float = 0.0
    timeout_sec: float = 10.0
    client_breaker: BreakerConfig | None = None

    def __post_init__(self) -> None:
        if self.clients <= 0:
            msg = f"clients must be positive, got {self.clients}"
            raise ConfigurationError(msg)
        if self.calls_per_client <= 0:
            msg = f"calls_per_client must be positive, got {self.calls_per_client}"
            raise ConfigurationError(msg)
        if self.call_interval_sec < 0 or self.startup_delay_sec < 0:
            msg = "call_interval_sec and startup_delay_sec must not be negative"
            raise ConfigurationError(msg)
        if self.timeout_sec <= 0:
            msg = f"timeout_sec must be positive, got {self.timeout_sec}"
            raise ConfigurationError(msg)

    @property
    def url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.path.lstrip("/")


@dataclass(frozen=True, slots=True)
class RunConfig:
    load_test: LoadTestConfig
    run_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    notes: str = ""

    def to_metadata(self) -> Mapping[str, Any]:
        load = self.load_test
        return {
            "run_id": self.run_id or "",
            "created_at": self.created_at.isoformat(),
            "notes": self.notes,
            "load_test": {
                "url": load.url,
                "clients": load.clients,
                "calls_per_client": load.calls_per_client,
                "call_interval_sec": load.call_interval_sec,
                "startup_delay_sec": load.startup_delay_sec,
                "timeout_sec": load.timeout_sec,
            },
            "client_breaker": (
                dict(load.client_breaker.to_metadata()) if load.client_breaker else None
            ),
        }
