from __future__ import annotations

import sqlite3
from datetime import date, datetime

import pytest

from src.camp_attendance.camp_attendance.attendance.model import AttendanceRecord, PunchEvent
from src.camp_attendance.camp_attendance.attendance.sqlite_cache import SQLiteRecordCache
from src.camp_attendance.camp_attendance.attendance.store import AttendanceStore, records_path
from src.camp_attendance.camp_attendance.core.enums import LocationSource
from src.camp_attendance.camp_attendance.core.exceptions import RemoteWriteFailure


@pytest.fixture
def cache(tmp_path):
    return SQLiteRecordCache(tmp_path / "nested" / "cache.sqlite3")


def _record(subject_id="C1", day=2, pending=False) -> AttendanceRecord:
    return AttendanceRecord(
        subject_id=subject_id,
        subject_name="Asha",
        work_date=date(2024, 1, day),
        punch_in=PunchEvent(
            timestamp=datetime(2024, 1, day, 9, 15),
            latitude=28.6,
            longitude=77.2,
            source=LocationSource.BROWSER,
        ),
        pending_sync=pending,
    )


def test_put_then_get(cache):
    rec = _record()
    cache.put(rec)
    assert cache.get("C1", "2024-01-02") == rec
    assert cache.get("C1", "2024-01-03") is None


def test_put_is_an_upsert_on_the_natural_key(cache):
    cache.put(_record(pending=True))
    cache.put(_record(pending=False))
    assert cache.list_pending() == []


def test_pending_and_mark_synced(cache):
    cache.put(_record("C1", pending=True))
    cache.put(_record("C2", pending=True))
    cache.put(_record("C3", pending=False))

    assert {r.subject_id for r in cache.list_pending()} == {"C1", "C2"}
    cache.mark_synced("C1", "2024-01-02")
    assert [r.subject_id for r in cache.list_pending()] == ["C2"]
    assert cache.get("C1", "2024-01-02").pending_sync is False


def test_survives_reopen(tmp_path):
    path = tmp_path / "cache.sqlite3"
    SQLiteRecordCache(path).put(_record(pending=True))
    assert SQLiteRecordCache(path).get("C1", "2024-01-02").pending_sync is True


def test_corrupt_rows_are_skipped(tmp_path):
    path = tmp_path / "cache.sqlite3"
    cache = SQLiteRecordCache(path)
    cache.put(_record("C1", pending=True))
    conn = sqlite3.connect(path)
    with conn:
        conn.execute(
            "INSERT INTO records(subject_id, work_date, document, pending_sync) VALUES (?, ?, ?, 1)",
            ("C2", "2024-01-02", "{not json"),
        )
    conn.close()

    assert [r.subject_id for r in cache.list_pending()] == ["C1"]
    assert cache.get("C2", "2024-01-02") is None


def test_store_over_sqlite_reads_local_first(cache, documents):
    store = AttendanceStore(cache, documents)
    documents.fail_writes = True
    with pytest.raises(RemoteWriteFailure):
        store.save(_record())

    assert store.load("C1", "2024-01-02").pending_sync
    assert documents.get(records_path("C1"), "2024-01-02") is None

    documents.fail_writes = False
    assert store.resync().synced == 1
    assert documents.get(records_path("C1"), "2024-01-02")["clinicId"] == "C1"


def test_store_warms_cache_from_remote(cache, documents):
    documents.set(records_path("C1"), "2024-01-02", _record().to_document())
    store = AttendanceStore(cache, documents)
    assert store.load("C1", "2024-01-02") == _record()
    assert cache.get("C1", "2024-01-02") == _record()


def test_resync_counts_failures(cache, documents):
    store = AttendanceStore(cache, documents)
    cache.put(_record("C1", pending=True))
    cache.put(_record("C2", pending=True))
    documents.fail_writes = True

    result = store.resync()
    assert (result.synced, result.failed, result.total) == (0, 2, 2)
    assert len(cache.list_pending()) == 2
