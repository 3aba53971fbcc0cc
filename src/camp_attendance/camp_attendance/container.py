from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .attendance.service import AttendanceService
from .attendance.sqlite_cache import SQLiteRecordCache
from .attendance.store import AttendanceStore
from .core.constants import IP_LOCATION_TIMEOUT_SECONDS, SESSION_HOURS
from .database.connection import DBConfig, DatabaseConnection
from .documents.mysql_document_store import MySQLDocumentStore
from .geo.ip_geolocation import IpGeolocationClient
from .geo.locator import GeoLocator
from .reports.query import AdminQueryService
from .users.identity import MySQLIdentityProvider
from .users.repository import DocumentProfileRepository
from .users.service import AuthService
from .users.session import SessionManager


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    documents: MySQLDocumentStore
    record_cache: SQLiteRecordCache
    attendance_store: AttendanceStore
    profiles_repo: DocumentProfileRepository
    identity: MySQLIdentityProvider

    locator: GeoLocator
    session_manager: SessionManager
    auth_service: AuthService
    attendance_service: AttendanceService
    admin_query_service: AdminQueryService


def build_container(
    *,
    db_config: dict,
    cache_path: str,
    ip_geolocation_url: str = "https://ipapi.co/{ip}/json/",
    ip_geolocation_timeout: float = IP_LOCATION_TIMEOUT_SECONDS,
    session_hours: float = SESSION_HOURS,
    identifier_domain: str = "nurses-attendance.com",
    admin_identifier: str = "admin@nurses-attendance.com",
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    documents = MySQLDocumentStore(conn)
    record_cache = SQLiteRecordCache(cache_path)
    attendance_store = AttendanceStore(record_cache, documents)
    profiles_repo = DocumentProfileRepository(documents)
    identity = MySQLIdentityProvider(conn, token_lifetime=timedelta(hours=session_hours))

    locator = GeoLocator(IpGeolocationClient(ip_geolocation_url, timeout=ip_geolocation_timeout))
    session_manager = SessionManager(identity, lifetime=timedelta(hours=session_hours))
    auth_service = AuthService(
        identity,
        profiles_repo,
        documents,
        session_manager,
        locator,
        identifier_domain=identifier_domain,
        admin_identifier=admin_identifier,
    )
    attendance_service = AttendanceService(attendance_store, locator)
    admin_query_service = AdminQueryService(documents, profiles_repo)

    return Container(
        conn=conn,
        documents=documents,
        record_cache=record_cache,
        attendance_store=attendance_store,
        profiles_repo=profiles_repo,
        identity=identity,
        locator=locator,
        session_manager=session_manager,
        auth_service=auth_service,
        attendance_service=attendance_service,
        admin_query_service=admin_query_service,
    )
