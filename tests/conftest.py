from __future__ import annotations

import copy
from datetime import datetime, timedelta
from typing import Optional

import pytest

from src.camp_attendance.camp_attendance.attendance.service import AttendanceService
from src.camp_attendance.camp_attendance.attendance.store import AttendanceStore
from src.camp_attendance.camp_attendance.core.enums import AuthErrorCode, SessionKind
from src.camp_attendance.camp_attendance.core.exceptions import AuthError
from src.camp_attendance.camp_attendance.documents.store import DocumentStoreError, StoredDocument, collection_name_of
from src.camp_attendance.camp_attendance.geo.locator import GeoLocator
from src.camp_attendance.camp_attendance.users.model import SubjectProfile, VerifiedIdentity
from src.camp_attendance.camp_attendance.users.repository import DocumentProfileRepository
from src.camp_attendance.camp_attendance.users.service import AuthService
from src.camp_attendance.camp_attendance.users.session import SessionManager

NURSE_ID = "ECCM038"
NURSE_PASSWORD = "Nurse@ECCM0382024"
ADMIN_PASSWORD = "admin123"


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InMemoryDocumentStore:
    """Dict-backed document store; ``fail_writes`` simulates an unreachable backend."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}
        self.fail_writes = False
        self._next_id = 0

    def _check_write(self) -> None:
        if self.fail_writes:
            raise DocumentStoreError("remote store unreachable")

    def get(self, collection_path, doc_id):
        data = self.collections.get(collection_path, {}).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    def set(self, collection_path, doc_id, fields, *, merge=True):
        self._check_write()
        docs = self.collections.setdefault(collection_path, {})
        if merge and doc_id in docs:
            docs[doc_id].update(copy.deepcopy(dict(fields)))
        else:
            docs[doc_id] = copy.deepcopy(dict(fields))

    def update(self, collection_path, doc_id, fields):
        self._check_write()
        docs = self.collections.get(collection_path, {})
        if doc_id not in docs:
            return False
        docs[doc_id].update(copy.deepcopy(dict(fields)))
        return True

    def create(self, collection_path, doc_id, fields):
        self._check_write()
        docs = self.collections.setdefault(collection_path, {})
        if doc_id in docs:
            return False
        docs[doc_id] = copy.deepcopy(dict(fields))
        return True

    def add(self, collection_path, fields):
        self._check_write()
        self._next_id += 1
        doc_id = f"doc{self._next_id}"
        self.collections.setdefault(collection_path, {})[doc_id] = copy.deepcopy(dict(fields))
        return doc_id

    def query_all(self, collection_name):
        return [
            StoredDocument(collection_path=path, doc_id=doc_id, data=copy.deepcopy(data))
            for path, docs in self.collections.items()
            if collection_name_of(path) == collection_name
            for doc_id, data in docs.items()
        ]


class InMemoryRecordCache:
    def __init__(self):
        self.records = {}

    def get(self, subject_id, date_str):
        return self.records.get((subject_id, date_str))

    def put(self, record):
        self.records[record.key] = record

    def list_pending(self):
        return [r for r in self.records.values() if r.pending_sync]

    def mark_synced(self, subject_id, date_str):
        record = self.records.get((subject_id, date_str))
        if record is not None:
            self.records[record.key] = record.with_changes(pending_sync=False)


class FakeIdentity:
    def __init__(self):
        self.accounts: dict[str, tuple[str, SessionKind, Optional[str], str]] = {}
        self.active: dict[str, bool] = {}
        self._n = 0

    def add_account(self, identifier, password, role, subject_id=None, display_name=""):
        self.accounts[identifier] = (password, role, subject_id, display_name)

    def verify(self, identifier, secret):
        if "@" not in (identifier or ""):
            raise AuthError(AuthErrorCode.INVALID_IDENTIFIER_FORMAT)
        account = self.accounts.get(identifier)
        if account is None:
            raise AuthError(AuthErrorCode.USER_NOT_FOUND)
        password, role, subject_id, display_name = account
        if secret != password:
            raise AuthError(AuthErrorCode.INVALID_CREDENTIAL)
        self._n += 1
        token = f"token-{self._n}"
        self.active[token] = True
        return VerifiedIdentity(
            identifier=identifier, token=token, role=role, subject_id=subject_id, display_name=display_name
        )

    def revoke(self, token):
        was_active = self.active.get(token, False)
        self.active[token] = False
        return was_active

    def is_active(self, token):
        return self.active.get(token, False)


class StubIpClient:
    def __init__(self, coords=None):
        self.coords = coords
        self.calls = []

    def lookup(self, client_ip=None):
        self.calls.append(client_ip)
        return self.coords


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def clock(fixed_now) -> Clock:
    return Clock(fixed_now)


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def record_cache() -> InMemoryRecordCache:
    return InMemoryRecordCache()


@pytest.fixture
def profile() -> SubjectProfile:
    return SubjectProfile(
        subject_id=NURSE_ID,
        display_name="Asha Devi",
        region="North Delhi",
        admin_area="Delhi",
        affiliated_partner="Sunrise Health",
        phone="98765",
    )


@pytest.fixture
def profiles_repo(documents, profile) -> DocumentProfileRepository:
    repo = DocumentProfileRepository(documents)
    repo.upsert(profile)
    return repo


@pytest.fixture
def identity() -> FakeIdentity:
    fake = FakeIdentity()
    fake.add_account(
        f"{NURSE_ID.lower()}@nurses-attendance.com", NURSE_PASSWORD, SessionKind.SUBJECT, NURSE_ID, "Asha Devi"
    )
    fake.add_account("admin@nurses-attendance.com", ADMIN_PASSWORD, SessionKind.ADMIN, None, "Administrator")
    return fake


@pytest.fixture
def ip_client() -> StubIpClient:
    return StubIpClient()


@pytest.fixture
def locator(ip_client) -> GeoLocator:
    return GeoLocator(ip_client)


@pytest.fixture
def session_manager(identity, clock) -> SessionManager:
    return SessionManager(identity, clock=clock)


@pytest.fixture
def auth_service(identity, profiles_repo, documents, session_manager, locator) -> AuthService:
    return AuthService(identity, profiles_repo, documents, session_manager, locator)


@pytest.fixture
def attendance_store(record_cache, documents) -> AttendanceStore:
    return AttendanceStore(record_cache, documents)


@pytest.fixture
def attendance_service(attendance_store, locator, clock) -> AttendanceService:
    return AttendanceService(
        attendance_store,
        locator,
        clock=clock,
        image_encoder=lambda raw: f"data:image/jpeg;base64,{len(raw)}",
    )


@pytest.fixture
def subject_session(auth_service):
    return auth_service.login_subject(NURSE_ID, NURSE_PASSWORD)
