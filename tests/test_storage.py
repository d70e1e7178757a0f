from __future__ import annotations

from datetime import datetime, timedelta, timezone

from breakerlab.config import LoadTestConfig, RunConfig
from breakerlab.metrics import CallEvent, CallOutcome, ErrorType, summarize
from breakerlab.storage import Storage


def _events(run_id: str) -> list[CallEvent]:
    return [
        CallEvent(run_id, 1, 1, 100.0, 12.5, CallOutcome.SUCCESS, 200, None),
        CallEvent(run_id, 1, 2, 100.2, 30.0, CallOutcome.FAILED, 503, ErrorType.HTTP_STATUS),
        CallEvent(run_id, 2, 1, 100.1, 9.0, CallOutcome.FAILED, None, ErrorType.TIMEOUT),
        CallEvent(run_id, 2, 2, 100.3, 0.4, CallOutcome.BLOCKED, 200, None),
    ]


def test_save_and_list_runs(tmp_path) -> None:
    storage = Storage(tmp_path / "nested" / "store.duckdb")
    load = LoadTestConfig(base_url="http://localhost:8080/")
    older = RunConfig(load_test=load, created_at=datetime.now(timezone.utc) - timedelta(hours=1))
    newer = RunConfig(load_test=load, notes="after fix")
    storage.save_run(older, "old", _events("old"), summarize("old", _events("old")))
    storage.save_run(newer, "new", [], summarize("new", []))

    assert storage.run_exists("old")
    assert not storage.run_exists("missing")
    runs = storage.list_runs()
    assert list(runs["run_id"]) == ["new", "old"]
    assert int(runs.loc[runs["run_id"] == "old", "failed"].iloc[0]) == 2

    events = storage.load_call_events("old")
    assert list(events["seq"]) == [1, 2, 1, 2]
    timeout_row = events[(events["client_id"] == 2) & (events["seq"] == 1)].iloc[0]
    assert timeout_row["error_type"] == "timeout"

    meta = storage.load_run_meta("old")
    assert meta is not None
    assert meta["run_id"] == "old"
    assert meta["load_test"]["url"] == "http://localhost:8080/test"
    assert storage.load_run_meta("missing") is None
    assert storage.load_summary("new").total == 0
