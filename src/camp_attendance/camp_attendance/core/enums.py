from __future__ import annotations

from enum import Enum


class SessionKind(str, Enum):
    """Which portal a session belongs to."""

    SUBJECT = "subject"
    ADMIN = "admin"


class AttendanceStatus(str, Enum):
    """Stored status of a day's record (always derived from the punches)."""

    PUNCHED_IN = "punched_in"
    COMPLETED = "completed"


class AttendanceState(str, Enum):
    """Lifecycle position of a (subject, date) pair."""

    NOT_PUNCHED_IN = "not_punched_in"
    PUNCHED_IN = "punched_in"
    COMPLETED = "completed"
    DETAILS_SUBMITTED = "details_submitted"


class LocationSource(str, Enum):
    BROWSER = "browser"
    IP = "ip"
    UNAVAILABLE = "unavailable"


class AuthErrorCode(str, Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    USER_NOT_FOUND = "user_not_found"
    INVALID_IDENTIFIER_FORMAT = "invalid_identifier_format"
    RATE_LIMITED = "rate_limited"
