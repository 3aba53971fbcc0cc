"""Push attendance records still flagged pending in the local cache."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.camp_attendance.camp_attendance.attendance.sqlite_cache import SQLiteRecordCache
from src.camp_attendance.camp_attendance.attendance.store import AttendanceStore
from src.camp_attendance.camp_attendance.database.connection import DBConfig, DatabaseConnection
from src.camp_attendance.camp_attendance.documents.mysql_document_store import MySQLDocumentStore


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(settings.DB_CONFIG))
    store = AttendanceStore(SQLiteRecordCache(settings.LOCAL_CACHE_PATH), MySQLDocumentStore(conn))

    result = store.resync()
    print(f"Resync: {result.synced} synced, {result.failed} still pending")
    if result.failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
