from __future__ import annotations

import argparse
import asyncio

from breakerlab.config import BreakerConfig, DependencyConfig, LoadTestConfig, RunConfig
from breakerlab.loadgen.runner import RunResult, run_load_test
from breakerlab.logging import setup_logging
from breakerlab.storage import default_storage


def _add_breaker_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--failure-threshold", type=float, default=0.5)
    parser.add_argument("--minimum-calls", type=int, default=4)
    parser.add_argument("--window-size", type=int, default=10)
    parser.add_argument("--open-cooldown-sec", type=float, default=5.0)
    parser.add_argument("--half-open-trials", type=int, default=2)


def _build_breaker(args: argparse.Namespace) -> BreakerConfig:
    return BreakerConfig(
        failure_threshold=args.failure_threshold,
        minimum_calls=args.minimum_calls,
        window_size=args.window_size,
        open_cooldown_sec=args.open_cooldown_sec,
        half_open_trial_count=args.half_open_trials,
    )


def _serve(args: argparse.Namespace) -> None:
    import uvicorn

    from breakerlab.service.app import create_app

    app = create_app(
        breaker_config=_build_breaker(args),
        dependency_config=DependencyConfig(
            failure_rate=args.failure_rate,
            latency_sec=args.latency_sec,
            seed=args.seed,
        ),
    )
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


def _loadtest(args: argparse.Namespace) -> None:
    load = LoadTestConfig(
        base_url=args.target,
        path=args.path,
        clients=args.clients,
        calls_per_client=args.calls,
        call_interval_sec=args.interval_sec,
        startup_delay_sec=args.startup_delay_sec,
        timeout_sec=args.timeout_sec,
        client_breaker=_build_breaker(args) if args.client_breaker else None,
    )
    config = RunConfig(load_test=load, run_id=args.run_id, notes=args.notes)
    storage = None if args.no_store else default_storage()
    result = asyncio.run(run_load_test(config, storage))
    print(format_report(result))


def _runs(args: argparse.Namespace) -> None:
    runs = default_storage().list_runs()
    if runs.empty:
        print("No stored runs")
        return
    print(runs.to_string(index=False))


def format_report(result: RunResult) -> str:
    stats = result.stats
    summary = result.summary
    lines = [
        "   RESULTS",
        f"Successful Calls:           {stats.success:3d} ({stats.pct(stats.success):.1f}%)",
        f"Failed Calls:               {stats.failed:3d} ({stats.pct(stats.failed):.1f}%)",
        f"Blocked by Circuit Breaker: {stats.blocked:3d} ({stats.pct(stats.blocked):.1f}%)",
    ]
    if stats.short_circuited:
        lines.append(
            f"Short-circuited by client:  {stats.short_circuited:3d} "
            f"({stats.pct(stats.short_circuited):.1f}%)"
        )
    lines += [
        f"   Total Attempts:          {stats.total:3d}",
        "   LATENCY",
        f"p50 {summary.p50_ms:.1f} ms | p95 {summary.p95_ms:.1f} ms | p99 {summary.p99_ms:.1f} ms",
        f"Blocked call p50: {summary.blocked_p50_ms:.1f} ms",
        "   ANALYSIS",
        f"Circuit breaker blocked {stats.blocked + stats.short_circuited} calls "
        "while the dependency was failing",
        f"Run id: {result.run_id}",
    ]
    return "\n".join(lines)


def main() -> None:
    parser = argparse.ArgumentParser(description="Circuit breaker lab")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP service guarded by a circuit breaker")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--failure-rate", type=float, default=0.6)
    serve.add_argument("--latency-sec", type=float, default=0.1)
    serve.add_argument("--seed", type=int, default=None)
    _add_breaker_args(serve)
    serve.set_defaults(func=_serve)

    loadtest = sub.add_parser("loadtest", help="Drive concurrent clients against the service")
    loadtest.add_argument("--target", required=True, help="Base URL of the service")
    loadtest.add_argument("--path", default="/test")
    loadtest.add_argument("--clients", type=int, default=5)
    loadtest.add_argument("--calls", type=int, default=10)
    loadtest.add_argument("--interval-sec", type=float, default=0.2)
    loadtest.add_argument("--startup-delay-sec", type=float, default=0.0)
    loadtest.add_argument("--timeout-sec", type=float, default=10.0)
    loadtest.add_argument("--run-id", default=None)
    loadtest.add_argument("--notes", default="")
    loadtest.add_argument("--no-store", action="store_true")
    loadtest.add_argument("--client-breaker", action="store_true")
    _add_breaker_args(loadtest)
    loadtest.set_defaults(func=_loadtest)

    runs = sub.add_parser("runs", help="List stored load-test runs")
    runs.set_defaults(func=_runs)

    args = parser.parse_args()
    setup_logging(args.log_level.upper())
    args.func(args)


if __name__ == "__main__":
    main()
