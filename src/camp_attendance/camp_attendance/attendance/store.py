from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.exceptions import InvalidTransition, RemoteWriteFailure
from ..documents.store import DocumentStore, DocumentStoreError, join_path
from .cache import RecordCache
from .model import AttendanceRecord

logger = logging.getLogger(__name__)

ATTENDANCE_COLLECTION = "attendance"
RECORDS_COLLECTION = "records"


def records_path(subject_id: str) -> str:
    return join_path(ATTENDANCE_COLLECTION, subject_id, RECORDS_COLLECTION)


@dataclass(frozen=True)
class SyncResult:
    synced: int
    failed: int

    @property
    def total(self) -> int:
        return self.synced + self.failed


class AttendanceStore:
    """Write-through cache over the remote document store.

    Every write lands in the local cache first (flagged ``pending_sync``),
    then goes to the remote store; the flag is cleared only when the remote
    write succeeds. Reads prefer the cache. Writes are upserts on the
    natural key, so retrying one never duplicates a record.
    """

    def __init__(self, cache: RecordCache, documents: DocumentStore):
        self._cache = cache
        self._documents = documents

    def load(self, subject_id: str, date_str: str) -> Optional[AttendanceRecord]:
        cached = self._cache.get(subject_id, date_str)
        if cached is not None:
            return cached

        data = self._documents.get(records_path(subject_id), date_str)
        if data is None:
            return None
        record = AttendanceRecord.from_document(data)
        self._cache.put(record)
        return record

    def save(self, record: AttendanceRecord) -> AttendanceRecord:
        pending = self._write_local(record)
        try:
            self._documents.set(records_path(record.subject_id), record.date_str, record.to_document(), merge=True)
        except DocumentStoreError as e:
            raise self._remote_failure(pending, e) from e
        return self._synced(pending)

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert the day's first write; the remote key acts as compare-and-set.

        If another device created the record first, the local copy is
        replaced by the remote one and ``InvalidTransition`` is raised.
        """

        pending = self._write_local(record)
        path = records_path(record.subject_id)
        try:
            created = self._documents.create(path, record.date_str, record.to_document())
            if not created:
                winner = self._documents.get(path, record.date_str)
        except DocumentStoreError as e:
            raise self._remote_failure(pending, e) from e

        if not created:
            if winner is not None:
                self._cache.put(AttendanceRecord.from_document(winner))
            logger.warning("Concurrent punch-in rejected for %s", record.describe())
            raise InvalidTransition("Already punched in today from another device")
        return self._synced(pending)

    def resync(self) -> SyncResult:
        """Retry remote writes for every record still flagged pending."""

        synced = failed = 0
        for record in self._cache.list_pending():
            try:
                self._documents.set(records_path(record.subject_id), record.date_str, record.to_document(), merge=True)
            except DocumentStoreError as e:
                failed += 1
                logger.warning("Resync failed for %s: %s", record.describe(), e)
                continue
            self._cache.mark_synced(record.subject_id, record.date_str)
            synced += 1

        if synced or failed:
            logger.info("Resync finished: synced=%s failed=%s", synced, failed)
        return SyncResult(synced=synced, failed=failed)

    def _write_local(self, record: AttendanceRecord) -> AttendanceRecord:
        pending = record.with_changes(pending_sync=True)
        self._cache.put(pending)
        return pending

    def _synced(self, pending: AttendanceRecord) -> AttendanceRecord:
        self._cache.mark_synced(pending.subject_id, pending.date_str)
        return pending.with_changes(pending_sync=False)

    @staticmethod
    def _remote_failure(pending: AttendanceRecord, error: Exception) -> RemoteWriteFailure:
        logger.warning("Remote write failed for %s (kept locally): %s", pending.describe(), error)
        return RemoteWriteFailure("Saved on this device; syncing with the server is pending", record=pending)
