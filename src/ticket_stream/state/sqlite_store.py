from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from ticket_stream.core.models import CursorState
from ticket_stream.utils.time import utc_now_iso


class SQLiteCursorStore:
    """SQLite-backed store for export cursors and run bookkeeping."""

    def __init__(self, path: str):
        self.path = path
        self._ensure_parent_dir(path)
        self._ensure_schema()

    def mark_run_started(self, key: str) -> int:
        now = utc_now_iso()
        with self._session() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO export_runs (export_key, run_count, last_started_utc, last_completed_utc)
                VALUES (?, 0, NULL, NULL)
                """,
                (key,),
            )
            conn.execute(
                """
                UPDATE export_runs
                SET run_count = run_count + 1,
                    last_started_utc = ?
                WHERE export_key = ?
                """,
                (now, key),
            )
            row = conn.execute(
                "SELECT run_count FROM export_runs WHERE export_key = ?",
                (key,),
            ).fetchone()
            return int(row["run_count"]) if row else 1

    def mark_run_completed(self, key: str) -> None:
        now = utc_now_iso()
        with self._session() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO export_runs (export_key, run_count, last_started_utc, last_completed_utc)
                VALUES (?, 0, NULL, NULL)
                """,
                (key,),
            )
            conn.execute(
                """
                UPDATE export_runs
                SET last_completed_utc = ?
                WHERE export_key = ?
                """,
                (now, key),
            )

    def load(self, key: str) -> Optional[CursorState]:
        with self._session() as conn:
            row = conn.execute(
                """
                SELECT last_record_id_json, last_record_updated_at, committed_start_time
                FROM cursor_state
                WHERE export_key = ?
                """,
                (key,),
            ).fetchone()

        if not row:
            return None

        # Ids are stored as JSON so an integer id compares equal to the next page's id.
        last_record_id = None
        if row["last_record_id_json"] is not None:
            last_record_id = json.loads(row["last_record_id_json"])

        committed = row["committed_start_time"]
        return CursorState(
            last_record_id=last_record_id,
            last_record_updated_at=row["last_record_updated_at"],
            committed_start_time=int(committed) if committed is not None else None,
        )

    def save(self, key: str, state: CursorState) -> None:
        now = utc_now_iso()
        id_json = json.dumps(state.last_record_id) if state.last_record_id is not None else None
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO cursor_state
                (export_key, last_record_id_json, last_record_updated_at, committed_start_time, updated_at_utc)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(export_key) DO UPDATE SET
                    last_record_id_json = excluded.last_record_id_json,
                    last_record_updated_at = excluded.last_record_updated_at,
                    committed_start_time = excluded.committed_start_time,
                    updated_at_utc = excluded.updated_at_utc
                """,
                (key, id_json, state.last_record_updated_at, state.committed_start_time, now),
            )

    def _ensure_schema(self) -> None:
        with self._session() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS export_runs (
                    export_key TEXT PRIMARY KEY,
                    run_count INTEGER NOT NULL DEFAULT 0,
                    last_started_utc TEXT,
                    last_completed_utc TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cursor_state (
                    export_key TEXT PRIMARY KEY,
                    last_record_id_json TEXT,
                    last_record_updated_at TEXT,
                    committed_start_time INTEGER,
                    updated_at_utc TEXT NOT NULL
                )
                """
            )

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self):
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _ensure_parent_dir(self, path: str) -> None:
        parent = Path(path).parent
        if str(parent) not in {"", "."}:
            parent.mkdir(parents=True, exist_ok=True)
