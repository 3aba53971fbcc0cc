from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence, TypeVar

from ..attendance.model import AttendanceRecord
from ..attendance.store import RECORDS_COLLECTION
from ..core.constants import PAGE_SIZE
from ..core.enums import AttendanceStatus
from ..core.exceptions import DataIntegrityError
from ..documents.store import DocumentStore
from ..users.repository import ProfileRepository
from .service import ReportRow, build_report

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Page:
    items: list
    page: int
    total_pages: int
    total: int


@dataclass(frozen=True)
class DayStats:
    total: int
    completed: int
    punched_in: int


def paginate(items: Sequence[T], page: int, page_size: int = PAGE_SIZE) -> Page:
    """1-based page, clamped to [1, total_pages]; an empty list has one empty page."""

    total = len(items)
    total_pages = max(1, math.ceil(total / page_size))
    page = min(max(int(page), 1), total_pages)
    start = (page - 1) * page_size
    return Page(items=list(items[start : start + page_size]), page=page, total_pages=total_pages, total=total)


def day_stats(rows: Sequence[ReportRow]) -> DayStats:
    return DayStats(
        total=len(rows),
        completed=sum(1 for r in rows if r.record.status == AttendanceStatus.COMPLETED),
        punched_in=sum(1 for r in rows if r.record.status == AttendanceStatus.PUNCHED_IN),
    )


class AdminQueryService:
    """Bulk read of every attendance record for the admin dashboard.

    The store has no composite index for (date, text) lookups, so the scan
    is unfiltered and filtering/sorting happens here.
    """

    def __init__(self, documents: DocumentStore, profiles: ProfileRepository):
        self._documents = documents
        self._profiles = profiles

    def list_all(self) -> list[AttendanceRecord]:
        records: list[AttendanceRecord] = []
        docs = self._documents.query_all(RECORDS_COLLECTION)
        for doc in docs:
            data = dict(doc.data)
            # Older documents may lack clinicId; the parent path carries it.
            if not data.get("clinicId") and doc.parent_id:
                data["clinicId"] = doc.parent_id
            try:
                records.append(AttendanceRecord.from_document(data))
            except DataIntegrityError as e:
                logger.error("Skipping record %s/%s: %s", doc.collection_path, doc.doc_id, e)
        logger.info("Fetched %s attendance records", len(records))
        return records

    def report(self, *, date_filter: str, text_filter: str = "") -> list[ReportRow]:
        return build_report(self.list_all(), self._profiles.list_all(), date_filter, text_filter)
