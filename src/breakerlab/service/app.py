from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from breakerlab.breaker import CircuitBreaker, CircuitState, Clock, TransitionEvent
from breakerlab.config import BreakerConfig, DependencyConfig
from breakerlab.service.dependency import DependencyUnavailable, FlakyDependency, fallback_message

logger = logging.getLogger(__name__)


def log_transition(event: TransitionEvent) -> None:
    level = logging.WARNING if event.to_state is CircuitState.OPEN else logging.INFO
    logger.log(
        level,
        "Breaker %s transitioned %s -> %s (failure_ratio=%.2f)",
        event.name,
        event.from_state.value,
        event.to_state.value,
        event.failure_ratio,
    )


def create_app(
    breaker_config: BreakerConfig | None = None,
    dependency_config: DependencyConfig | None = None,
    clock: Clock | None = None,
    dependency: FlakyDependency | None = None,
) -> FastAPI:
    app = FastAPI(title="breakerlab")
    breaker = CircuitBreaker(breaker_config or BreakerConfig(), clock=clock, name="external-api")
    breaker.subscribe(log_transition)
    if dependency is None:
        dependency = FlakyDependency(dependency_config or DependencyConfig())
    app.state.breaker = breaker
    app.state.dependency = dependency

    @app.get("/", response_class=PlainTextResponse)
    def home() -> str:
        return "Circuit Breaker Demo - Visit /test to test the circuit breaker"

    # Sync handlers run in the threadpool, so the breaker sees real thread concurrency.
    @app.get("/test", response_class=PlainTextResponse)
    def call_dependency() -> str:
        logger.info("Received request to /test")
        try:
            return breaker.execute(dependency.call, lambda: fallback_message(breaker.state))
        except DependencyUnavailable as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc

    @app.get("/api/hello", response_class=PlainTextResponse)
    def hello() -> str:
        return "Hello from the breakerlab circuit breaker example!"

    @app.get("/stats")
    def stats() -> dict[str, Any]:
        return {
            "total_calls": dependency.call_count,
            "breaker": breaker.snapshot().to_dict(),
        }

    return app
