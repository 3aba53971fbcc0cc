from __future__ import annotations

from typing import Any

from .enums import AuthErrorCode


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidTransition(DomainError):
    """Raised when a punch action is attempted out of order."""


class LocationUnavailable(DomainError):
    """Raised when neither location source produced a fix."""


class DataIntegrityError(DomainError):
    """Raised when a stored document contradicts its own invariants."""


class AuthError(DomainError):
    """Raised when identity verification fails."""

    _MESSAGES = {
        AuthErrorCode.INVALID_CREDENTIAL: "Invalid Clinic ID or Password",
        AuthErrorCode.USER_NOT_FOUND: "Clinic ID not found. Please check your Clinic ID.",
        AuthErrorCode.INVALID_IDENTIFIER_FORMAT: "Invalid Clinic ID format. Please enter a valid Clinic ID.",
        AuthErrorCode.RATE_LIMITED: "Too many failed attempts. Please try again later.",
    }

    def __init__(self, code: AuthErrorCode, message: str | None = None):
        super().__init__(message or self._MESSAGES[code])
        self.code = code


class RemoteWriteFailure(DomainError):
    """Raised when the authoritative store rejected a write.

    The local cache already holds the record (flagged pending) so the caller
    can warn the user and trigger a resync later.
    """

    def __init__(self, message: str, *, record: Any = None):
        super().__init__(message)
        self.record = record
