from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from breakerlab.breaker import CircuitBreaker
from breakerlab.config import LoadTestConfig, RunConfig
from breakerlab.loadgen.client import CallFailed, send_call, send_call_strict
from breakerlab.metrics import CallEvent, CallOutcome, CallStats, RunSummary, summarize
from breakerlab.storage import Storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunResult:
    run_id: str
    events: list[CallEvent]
    stats: CallStats
    summary: RunSummary


ProgressCallback = Callable[[int, int], Awaitable[None]]


def _new_run_id() -> str:
    return uuid.uuid4().hex


async def run_load_test(
    config: RunConfig,
    storage: Storage | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    progress: ProgressCallback | None = None,
) -> RunResult:
    run_id = config.run_id or _new_run_id()
    if storage is not None and storage.run_exists(run_id):
        msg = f"Run {run_id} already exists"
        raise ValueError(msg)
    load = config.load_test
    logger.info(
        "Starting load test %s: %d clients x %d calls against %s",
        run_id,
        load.clients,
        load.calls_per_client,
        load.url,
    )
    stats = CallStats()
    events = await _execute_load(run_id, load, stats, transport, progress)
    summary = summarize(run_id, events)
    if storage is not None:
        storage.save_run(config, run_id, events, summary)
    logger.info(
        "Load test %s finished: %d success, %d failed, %d blocked, %d short-circuited",
        run_id,
        stats.success,
        stats.failed,
        stats.blocked,
        stats.short_circuited,
    )
    return RunResult(run_id=run_id, events=events, stats=stats, summary=summary)


async def _execute_load(
    run_id: str,
    load: LoadTestConfig,
    stats: CallStats,
    transport: httpx.AsyncBaseTransport | None,
    progress: ProgressCallback | None,
) -> list[CallEvent]:
    events: list[CallEvent] = []
    lock = asyncio.Lock()
    total = load.clients * load.calls_per_client
    breaker = None
    if load.client_breaker is not None:
        breaker = CircuitBreaker(load.client_breaker, name="loadgen")
    if load.startup_delay_sec > 0:
        await asyncio.sleep(load.startup_delay_sec)

    async with httpx.AsyncClient(transport=transport) as client:

        async def worker(client_id: int) -> None:
            for seq in range(1, load.calls_per_client + 1):
                if load.call_interval_sec > 0:
                    await asyncio.sleep(load.call_interval_sec)
                event = await _make_call(client, run_id, load, breaker, client_id, seq)
                stats.record(event.outcome)
                async with lock:
                    events.append(event)
                    done = len(events)
                if progress:
                    await progress(done, total)

        await asyncio.gather(*(worker(i) for i in range(1, load.clients + 1)))
    return events


async def _make_call(
    client: httpx.AsyncClient,
    run_id: str,
    load: LoadTestConfig,
    breaker: CircuitBreaker | None,
    client_id: int,
    seq: int,
) -> CallEvent:
    if breaker is None:
        return await send_call(client, load.url, load.timeout_sec, run_id, client_id, seq)

    async def short_circuit() -> CallEvent:
        return CallEvent(
            run_id=run_id,
            client_id=client_id,
            seq=seq,
            wall_time=time.time(),
            latency_ms=0.0,
            outcome=CallOutcome.SHORT_CIRCUITED,
            status_code=None,
            error_type=None,
        )

    try:
        return await breaker.execute_async(
            lambda: send_call_strict(client, load.url, load.timeout_sec, run_id, client_id, seq),
            short_circuit,
        )
    except CallFailed as exc:
        return exc.event
