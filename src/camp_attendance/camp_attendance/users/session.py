from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional

from ..common.datetime_utils import now_local
from ..core.constants import SESSION_HOURS
from ..core.enums import SessionKind
from ..geo.locator import Position
from .identity import IdentityProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """A time-boxed grant issued after identity verification.

    Services receive it explicitly; the Flask cookie only carries
    ``to_dict()`` between requests.
    """

    kind: SessionKind
    subject_id: Optional[str]
    display_name: str
    token: str
    issued_at: datetime
    expires_at: datetime
    profile: dict = field(default_factory=dict)
    location: Optional[Position] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "subject_id": self.subject_id,
            "display_name": self.display_name,
            "token": self.token,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "profile": dict(self.profile),
            "location": self.location.to_dict() if self.location else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Session":
        location = data.get("location")
        return cls(
            kind=SessionKind(data["kind"]),
            subject_id=data.get("subject_id"),
            display_name=data.get("display_name") or "",
            token=data["token"],
            issued_at=datetime.fromisoformat(data["issued_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            profile=dict(data.get("profile") or {}),
            location=Position.from_dict(location) if location is not None else None,
        )


class SessionManager:
    """Issues sessions, answers "how long is left", and ends them.

    Remaining time is recomputed from the clock on every call so it follows
    wall-clock drift. Expiry and explicit sign-out share one path.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        *,
        clock: Callable[[], datetime] = now_local,
        lifetime: timedelta = timedelta(hours=SESSION_HOURS),
    ):
        self._identity = identity
        self._clock = clock
        self._lifetime = lifetime

    def issue(
        self,
        *,
        kind: SessionKind,
        subject_id: Optional[str],
        display_name: str,
        token: str,
        profile: Optional[dict] = None,
        location: Optional[Position] = None,
    ) -> Session:
        issued_at = self._clock()
        return Session(
            kind=kind,
            subject_id=subject_id,
            display_name=display_name,
            token=token,
            issued_at=issued_at,
            expires_at=issued_at + self._lifetime,
            profile=dict(profile or {}),
            location=location,
        )

    def remaining(self, session: Session) -> timedelta:
        return max(session.expires_at - self._clock(), timedelta(0))

    def is_expired(self, session: Session) -> bool:
        return self._clock() >= session.expires_at

    def is_valid(self, session: Optional[Session], kind: SessionKind) -> bool:
        if session is None or session.kind != kind or self.is_expired(session):
            return False
        return self._identity.is_active(session.token)

    def tick(self, session: Session) -> Optional[timedelta]:
        """One countdown step. Returns None once time is up or the token was revoked."""

        if self.is_expired(session):
            logger.info("Session expired for %s; forcing sign-out", session.subject_id or session.kind.value)
            self.sign_out(session)
            return None
        if not self._identity.is_active(session.token):
            logger.info("Session token for %s is no longer active", session.subject_id or session.kind.value)
            return None
        return self.remaining(session)

    def sign_out(self, session: Session) -> None:
        """Invalidate the server-side token. The caller drops its stored copy."""

        self._identity.revoke(session.token)
