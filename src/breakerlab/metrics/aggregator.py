from __future__ import annotations

from typing import Iterable

import numpy as np

from breakerlab.metrics.models import CallEvent, CallOutcome, RunSummary


def summarize(run_id: str, events: Iterable[CallEvent]) -> RunSummary:
    counts = {outcome: 0 for outcome in CallOutcome}
    latencies: list[float] = []
    blocked_latencies: list[float] = []
    for event in events:
        counts[event.outcome] += 1
        if event.latency_ms < 0:
            continue
        latencies.append(event.latency_ms)
        if event.outcome in (CallOutcome.BLOCKED, CallOutcome.SHORT_CIRCUITED):
            blocked_latencies.append(event.latency_ms)
    if latencies:
        p50 = float(np.percentile(latencies, 50))
        p95 = float(np.percentile(latencies, 95))
        p99 = float(np.percentile(latencies, 99))
    else:
        p50 = p95 = p99 = 0.0
    blocked_p50 = float(np.percentile(blocked_latencies, 50)) if blocked_latencies else 0.0
    return RunSummary(
        run_id=run_id,
        total=sum(counts.values()),
        success=counts[CallOutcome.SUCCESS],
        failed=counts[CallOutcome.FAILED],
        blocked=counts[CallOutcome.BLOCKED],
        short_circuited=counts[CallOutcome.SHORT_CIRCUITED],
        p50_ms=p50,
        p95_ms=p95,
        p99_ms=p99,
        blocked_p50_ms=blocked_p50,
    )
