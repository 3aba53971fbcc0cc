from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class RecordCache(Protocol):
    """Fast local copy of attendance records, keyed by (subject_id, date).

    Writes here must not fail for reasons outside the process (no network);
    the cache is the session's source of truth until the remote store
    acknowledges a write.
    """

    def get(self, subject_id: str, date_str: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def put(self, record: AttendanceRecord) -> None:
        raise NotImplementedError

    def list_pending(self) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def mark_synced(self, subject_id: str, date_str: str) -> None:
        raise NotImplementedError
