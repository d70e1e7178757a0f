from __future__ import annotations

import time

import httpx

from breakerlab.metrics import CallEvent, CallOutcome, ErrorType


def classify_response(status_code: int, body: str) -> CallOutcome:
    if not 200 <= status_code < 300:
        return CallOutcome.FAILED
    if "Circuit Breaker OPEN" in body:
        return CallOutcome.BLOCKED
    if "Success" in body:
        return CallOutcome.SUCCESS
    if "unavailable" in body:
        return CallOutcome.BLOCKED
    return CallOutcome.FAILED


async def send_call(
    client: httpx.AsyncClient,
    url: str,
    timeout_sec: float,
    run_id: str,
    client_id: int,
    seq: int,
) -> CallEvent:
    start_wall = time.time()
    start_mono = time.perf_counter()
    try:
        resp = await client.get(url, timeout=timeout_sec)
    except httpx.TimeoutException:
        err = ErrorType.TIMEOUT
    except httpx.ConnectError:
        err = ErrorType.CONNECT
    except httpx.ReadError:
        err = ErrorType.READ
    except httpx.HTTPError:
        err = ErrorType.OTHER
    else:
        outcome = classify_response(resp.status_code, resp.text)
        return CallEvent(
            run_id=run_id,
            client_id=client_id,
            seq=seq,
            wall_time=start_wall,
            latency_ms=(time.perf_counter() - start_mono) * 1000.0,
            outcome=outcome,
            status_code=resp.status_code,
            error_type=ErrorType.HTTP_STATUS if not resp.is_success else None,
        )
    return CallEvent(
        run_id=run_id,
        client_id=client_id,
        seq=seq,
        wall_time=start_wall,
        latency_ms=(time.perf_counter() - start_mono) * 1000.0,
        outcome=CallOutcome.FAILED,
        status_code=None,
        error_type=err,
    )


class CallFailed(Exception):
    """Raised for a failed call so a client-side breaker can count it."""

    def __init__(self, event: CallEvent) -> None:
        super().__init__(f"call {event.client_id}/{event.seq} failed")
        self.event = event


async def send_call_strict(
    client: httpx.AsyncClient,
    url: str,
    timeout_sec: float,
    run_id: str,
    client_id: int,
    seq: int,
) -> CallEvent:
    event = await send_call(client, url, timeout_sec, run_id, client_id, seq)
    if event.outcome is CallOutcome.FAILED:
        raise CallFailed(event)
    return event
