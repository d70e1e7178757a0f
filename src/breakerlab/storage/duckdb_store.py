from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import duckdb
import pandas as pd

from breakerlab.config import RunConfig
from breakerlab.metrics import CallEvent, RunSummary


@dataclass(slots=True)
class Storage:
    db_path: Path

    def __post_init__(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> duckdb.DuckDBPyConnection:
        return duckdb.connect(str(self.db_path))

    def _init_schema(self) -> None:
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS run_meta (
                    run_id TEXT PRIMARY KEY,
                    created_at TIMESTAMP,
                    config_json TEXT,
                    notes TEXT
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS call_events (
                    run_id TEXT,
                    client_id INTEGER,
                    seq INTEGER,
                    wall_time DOUBLE,
                    latency_ms DOUBLE,
                    outcome TEXT,
                    status_code INTEGER,
                    error_type TEXT
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS run_summary (
                    run_id TEXT,
                    total INTEGER,
                    success INTEGER,
                    failed INTEGER,
                    blocked INTEGER,
                    short_circuited INTEGER,
                    p50_ms DOUBLE,
                    p95_ms DOUBLE,
                    p99_ms DOUBLE,
                    blocked_p50_ms DOUBLE
                );
                """
            )

    def run_exists(self, run_id: str) -> bool:
        with self._connect() as con:
            result = con.execute(
                "SELECT COUNT(*) FROM run_meta WHERE run_id = ?",
                [run_id],
            ).fetchone()
            return bool(result and result[0] > 0)

    def save_run(
        self,
        config: RunConfig,
        run_id: str,
        events: Iterable[CallEvent],
        summary: RunSummary,
    ) -> None:
        metadata = dict(config.to_metadata())
        metadata["run_id"] = run_id
        config_json = json.dumps(metadata)
        with self._connect() as con:
            con.execute(
                "INSERT INTO run_meta VALUES (?, ?, ?, ?)",
                [run_id, config.created_at, config_json, config.notes],
            )
            events_df = pd.DataFrame(
                [
                    {
                        "run_id": e.run_id,
                        "client_id": e.client_id,
                        "seq": e.seq,
                        "wall_time": e.wall_time,
                        "latency_ms": e.latency_ms,
                        "outcome": e.outcome.value,
                        "status_code": e.status_code,
                        "error_type": e.error_type.value if e.error_type else None,
                    }
                    for e in events
                ]
            )
            if not events_df.empty:
                events_df = events_df.astype({"status_code": "Int64"})
                con.execute("INSERT INTO call_events SELECT * FROM events_df")
            con.execute(
                "INSERT INTO run_summary VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    summary.run_id,
                    summary.total,
                    summary.success,
                    summary.failed,
                    summary.blocked,
                    summary.short_circuited,
                    summary.p50_ms,
                    summary.p95_ms,
                    summary.p99_ms,
                    summary.blocked_p50_ms,
                ],
            )

    def list_runs(self) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                """
                SELECT m.run_id, m.created_at, s.total, s.success, s.failed,
                       s.blocked, s.short_circuited, m.notes
                FROM run_meta m
                LEFT JOIN run_summary s USING (run_id)
                ORDER BY m.created_at DESC
                """
            ).fetchdf()

    def load_run_meta(self, run_id: str) -> dict[str, object] | None:
        with self._connect() as con:
            row = con.execute(
                "SELECT config_json FROM run_meta WHERE run_id = ?",
                [run_id],
            ).fetchone()
            if not row:
                return None
            return json.loads(row[0])

    def load_summary(self, run_id: str) -> RunSummary | None:
        with self._connect() as con:
            row = con.execute(
                "SELECT * FROM run_summary WHERE run_id = ?",
                [run_id],
            ).fetchone()
            if not row:
                return None
            return RunSummary(*row)

    def load_call_events(self, run_id: str) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                "SELECT * FROM call_events WHERE run_id = ? ORDER BY client_id, seq",
                [run_id],
            ).fetchdf()
