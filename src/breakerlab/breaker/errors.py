from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a breaker, dependency or load-test config is invalid."""
