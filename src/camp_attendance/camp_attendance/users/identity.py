from __future__ import annotations

import logging
import re
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

import mysql.connector
from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_local
from ..core.constants import LOGIN_FAILURE_WINDOW_MINUTES, LOGIN_MAX_FAILURES, SESSION_HOURS
from ..core.enums import AuthErrorCode, SessionKind
from ..core.exceptions import AuthError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import VerifiedIdentity

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}$")


class IdentityProvider(Protocol):
    def verify(self, identifier: str, secret: str) -> VerifiedIdentity:
        """Return the verified identity with a fresh token, or raise AuthError."""

        raise NotImplementedError

    def revoke(self, token: str) -> bool:
        raise NotImplementedError

    def is_active(self, token: str) -> bool:
        raise NotImplementedError


class MySQLIdentityProvider(IdentityProvider):
    """Password login against the ``accounts`` table with opaque tokens.

    Repeated failures for one identifier inside the window are rate limited.
    Failures older than the window are pruned on every login attempt, and
    revoked or expired tokens are pruned on every sign-out.
    """

    def __init__(
        self,
        conn_factory: DatabaseConnection,
        *,
        clock: Callable[[], datetime] = now_local,
        max_failures: int = LOGIN_MAX_FAILURES,
        failure_window: timedelta = timedelta(minutes=LOGIN_FAILURE_WINDOW_MINUTES),
        token_lifetime: timedelta = timedelta(hours=SESSION_HOURS),
    ):
        self._conn_factory = conn_factory
        self._clock = clock
        self._max_failures = int(max_failures)
        self._failure_window = failure_window
        self._token_lifetime = token_lifetime

    def verify(self, identifier: str, secret: str) -> VerifiedIdentity:
        identifier = (identifier or "").strip().lower()
        if not _IDENTIFIER_RE.match(identifier):
            raise AuthError(AuthErrorCode.INVALID_IDENTIFIER_FORMAT)

        now = self._clock()
        with db_cursor(self._conn_factory) as (conn, cur):
            cur.execute("DELETE FROM login_failures WHERE failed_at < %s", (now - self._failure_window,))
            # Committed on its own so a rate-limited attempt still prunes.
            conn.commit()

            cur.execute(
                "SELECT COUNT(*) AS n FROM login_failures WHERE identifier=%s AND failed_at >= %s",
                (identifier, now - self._failure_window),
            )
            if int(fetchone(cur)["n"]) >= self._max_failures:
                raise AuthError(AuthErrorCode.RATE_LIMITED)

            cur.execute(
                """
                SELECT identifier, password_hash, role, subject_id, display_name, is_active
                FROM accounts
                WHERE identifier=%s
                """,
                (identifier,),
            )
            account = fetchone(cur)

            failure: Optional[AuthErrorCode] = None
            if not account:
                failure = AuthErrorCode.USER_NOT_FOUND
            elif not account.get("is_active", 1) or not self._password_ok(account["password_hash"], secret):
                failure = AuthErrorCode.INVALID_CREDENTIAL

            if failure:
                cur.execute(
                    "INSERT INTO login_failures(identifier, failed_at) VALUES(%s,%s)",
                    (identifier, now),
                )
            else:
                token = secrets.token_hex(32)
                cur.execute("DELETE FROM login_failures WHERE identifier=%s", (identifier,))
                cur.execute(
                    "INSERT INTO auth_tokens(token, identifier, issued_at) VALUES(%s,%s,%s)",
                    (token, identifier, now),
                )

        if failure:
            logger.info("Login failed for %s: %s", identifier, failure.value)
            raise AuthError(failure)

        return VerifiedIdentity(
            identifier=identifier,
            token=token,
            role=SessionKind(account["role"]),
            subject_id=account.get("subject_id"),
            display_name=account.get("display_name") or "",
        )

    @staticmethod
    def _password_ok(password_hash: str, secret: str) -> bool:
        try:
            return check_password_hash(password_hash, secret or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            return False

    def revoke(self, token: str) -> bool:
        """Delete the token, along with any other token past its lifetime."""

        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM auth_tokens WHERE token=%s", (token,))
                revoked = cur.rowcount > 0
                cur.execute(
                    "DELETE FROM auth_tokens WHERE issued_at < %s",
                    (self._clock() - self._token_lifetime,),
                )
                if cur.rowcount > 0:
                    logger.info("Pruned %s expired auth tokens", cur.rowcount)
                return revoked
        except mysql.connector.Error as e:
            logger.error("Sign out error (token not revoked): %s", e)
            return False

    def is_active(self, token: str) -> bool:
        if not token:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT issued_at FROM auth_tokens WHERE token=%s", (token,))
            row = fetchone(cur)
            return bool(row) and row["issued_at"] + self._token_lifetime > self._clock()

    def ensure_account(
        self,
        *,
        identifier: str,
        password: str,
        role: SessionKind,
        subject_id: Optional[str],
        display_name: str,
    ) -> bool:
        """Create the account if missing. Returns False when it already existed."""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO accounts(identifier, password_hash, role, subject_id, display_name, is_active)
                VALUES(%s,%s,%s,%s,%s,1)
                """,
                (identifier.strip().lower(), generate_password_hash(password), role.value, subject_id, display_name),
            )
            return cur.rowcount > 0
