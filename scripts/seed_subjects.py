"""Import nurses from the roster CSV: profiles into ``nurses``, plus login accounts.

Usage: python scripts/seed_subjects.py path/to/roster.csv
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.camp_attendance.camp_attendance.core.enums import SessionKind
from src.camp_attendance.camp_attendance.database.connection import DBConfig, DatabaseConnection
from src.camp_attendance.camp_attendance.documents.mysql_document_store import MySQLDocumentStore
from src.camp_attendance.camp_attendance.users.identity import MySQLIdentityProvider
from src.camp_attendance.camp_attendance.users.repository import DocumentProfileRepository
from src.camp_attendance.camp_attendance.users.roster import chunked, parse_roster

BATCH_SIZE = 50


def main() -> None:
    if len(sys.argv) != 2:
        print(__doc__.strip())
        raise SystemExit(2)

    settings = importlib.import_module(get_settings_module())
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(settings.DB_CONFIG))
    profiles = DocumentProfileRepository(MySQLDocumentStore(conn))
    identity = MySQLIdentityProvider(conn)

    with open(sys.argv[1], newline="", encoding="utf-8-sig") as f:
        entries = parse_roster(f)
    print(f"Found {len(entries)} unique active nurses")

    created = existing = 0
    for batch_no, batch in enumerate(chunked(entries, BATCH_SIZE), start=1):
        for entry in batch:
            profile = entry.profile
            profiles.upsert(profile)
            if identity.ensure_account(
                identifier=f"{profile.subject_id.lower()}@{settings.IDENTIFIER_DOMAIN}",
                password=entry.password,
                role=SessionKind.SUBJECT,
                subject_id=profile.subject_id,
                display_name=profile.display_name,
            ):
                created += 1
            else:
                existing += 1
        print(f"Batch {batch_no}: {len(batch)} nurses")

    print(f"OK: {len(entries)} profiles merged, {created} accounts created, {existing} already existed")


if __name__ == "__main__":
    main()
