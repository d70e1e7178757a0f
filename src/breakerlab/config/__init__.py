from __future__ import annotations

from breakerlab.config.models import (
    BreakerConfig,
    DependencyConfig,
    LoadTestConfig,
    RunConfig,
)

__all__ = [
    "BreakerConfig",
    "DependencyConfig",
    "LoadTestConfig",
    "RunConfig",
]
