from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Optional, Sequence

from ..core.exceptions import DataIntegrityError
from .cache import RecordCache
from .model import AttendanceRecord

logger = logging.getLogger(__name__)


class SQLiteRecordCache(RecordCache):
    """Local record cache in a single SQLite file.

    Storage invariant: one row per (subject_id, work_date); ``document`` is
    the record's remote document shape as JSON.
    """

    def __init__(self, db_path: str | Path):
        self._db_path = str(db_path)
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    subject_id TEXT NOT NULL,
                    work_date TEXT NOT NULL,
                    document TEXT NOT NULL,
                    pending_sync INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (subject_id, work_date)
                )
                """
            )

    def _to_record(self, row: sqlite3.Row) -> Optional[AttendanceRecord]:
        try:
            return AttendanceRecord.from_document(json.loads(row["document"]), pending_sync=bool(row["pending_sync"]))
        except (ValueError, DataIntegrityError) as e:
            logger.error("Ignoring corrupt cached record %s/%s: %s", row["subject_id"], row["work_date"], e)
            return None

    def get(self, subject_id: str, date_str: str) -> Optional[AttendanceRecord]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT * FROM records WHERE subject_id = ? AND work_date = ?",
                (subject_id, date_str),
            ).fetchone()
        return self._to_record(row) if row else None

    def put(self, record: AttendanceRecord) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO records (subject_id, work_date, document, pending_sync, updated_at)
                VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(subject_id, work_date) DO UPDATE SET
                    document = excluded.document,
                    pending_sync = excluded.pending_sync,
                    updated_at = excluded.updated_at
                """,
                (
                    record.subject_id,
                    record.date_str,
                    json.dumps(record.to_document(), ensure_ascii=False),
                    int(record.pending_sync),
                ),
            )

    def list_pending(self) -> Sequence[AttendanceRecord]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT * FROM records WHERE pending_sync = 1 ORDER BY updated_at"
            ).fetchall()
        records = [self._to_record(r) for r in rows]
        return [r for r in records if r is not None]

    def mark_synced(self, subject_id: str, date_str: str) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "UPDATE records SET pending_sync = 0 WHERE subject_id = ? AND work_date = ?",
                (subject_id, date_str),
            )
