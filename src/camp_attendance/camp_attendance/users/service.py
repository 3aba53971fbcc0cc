from __future__ import annotations

import logging
import re
from typing import Optional

from ..core.enums import AuthErrorCode, SessionKind
from ..core.exceptions import AuthError
from ..documents.store import DocumentStore, DocumentStoreError, join_path
from ..geo.locator import DeviceSensor, GeoLocator
from .identity import IdentityProvider
from .repository import ProfileRepository
from .session import Session, SessionManager

logger = logging.getLogger(__name__)

_CLINIC_ID_RE = re.compile(r"^[A-Z0-9_-]{2,64}$")


def normalize_clinic_id(value: str) -> str:
    clinic_id = (value or "").strip().upper()
    if not _CLINIC_ID_RE.match(clinic_id):
        raise AuthError(AuthErrorCode.INVALID_IDENTIFIER_FORMAT)
    return clinic_id


class AuthService:
    """Use case: sign subjects and admins in and out."""

    def __init__(
        self,
        identity: IdentityProvider,
        profiles: ProfileRepository,
        documents: DocumentStore,
        sessions: SessionManager,
        locator: GeoLocator,
        *,
        identifier_domain: str = "nurses-attendance.com",
        admin_identifier: str = "admin@nurses-attendance.com",
    ):
        self._identity = identity
        self._profiles = profiles
        self._documents = documents
        self._sessions = sessions
        self._locator = locator
        self._identifier_domain = identifier_domain
        self._admin_identifier = admin_identifier

    def identifier_for(self, clinic_id: str) -> str:
        return f"{clinic_id.lower()}@{self._identifier_domain}"

    def login_subject(
        self,
        clinic_id: str,
        password: str,
        *,
        sensor: Optional[DeviceSensor] = None,
        client_ip: Optional[str] = None,
        user_agent: str = "",
    ) -> Session:
        clinic_id = normalize_clinic_id(clinic_id)
        verified = self._identity.verify(self.identifier_for(clinic_id), password)

        profile = self._profiles.get(clinic_id)
        if verified.role != SessionKind.SUBJECT or profile is None:
            self._identity.revoke(verified.token)
            raise AuthError(AuthErrorCode.USER_NOT_FOUND, "Nurse data not found")

        location = self._locator.acquire(sensor, client_ip=client_ip)
        if not location.has_fix:
            logger.warning("Login for %s without a location fix", clinic_id)

        session = self._sessions.issue(
            kind=SessionKind.SUBJECT,
            subject_id=clinic_id,
            display_name=profile.display_name,
            token=verified.token,
            profile=profile.to_document(),
            location=location,
        )
        self._record_login(session, user_agent=user_agent)
        return session

    def login_admin(self, username: str, password: str) -> Session:
        username = (username or "").strip()
        identifier = self._admin_identifier if username.lower() == "admin" else username
        try:
            verified = self._identity.verify(identifier, password)
        except AuthError as e:
            if e.code == AuthErrorCode.RATE_LIMITED:
                raise
            raise AuthError(AuthErrorCode.INVALID_CREDENTIAL, "Invalid username or password")

        if verified.role != SessionKind.ADMIN:
            self._identity.revoke(verified.token)
            raise AuthError(AuthErrorCode.INVALID_CREDENTIAL, "Invalid username or password")

        return self._sessions.issue(
            kind=SessionKind.ADMIN,
            subject_id=None,
            display_name=verified.display_name or "Administrator",
            token=verified.token,
        )

    def sign_out(self, session: Session) -> None:
        self._sessions.sign_out(session)

    def _record_login(self, session: Session, *, user_agent: str) -> None:
        """Login audit: last-login marker on the subject plus one ``logins`` entry."""

        location = session.location
        try:
            self._documents.set(
                "attendance",
                session.subject_id,
                {
                    "clinicId": session.subject_id,
                    "accountId": self.identifier_for(session.subject_id),
                    "nurseName": session.display_name,
                    "lastLoginTime": session.issued_at.isoformat(),
                },
                merge=True,
            )
            self._documents.add(
                join_path("attendance", session.subject_id, "logins"),
                {
                    "loginTime": session.issued_at.isoformat(),
                    "latitude": location.latitude if location else None,
                    "longitude": location.longitude if location else None,
                    "locationSource": location.source.value if location else "unavailable",
                    "locationMessage": location.message if location else None,
                    "sessionExpiresAt": session.expires_at.isoformat(),
                    "userAgent": user_agent,
                },
            )
        except DocumentStoreError as e:
            logger.warning("Could not record login for %s: %s", session.subject_id, e)
