from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import g, redirect, session, url_for

from ..core.enums import SessionKind
from .session import Session, SessionManager

logger = logging.getLogger(__name__)

# Cookie keys per portal; a browser can hold one of each.
SESSION_KEYS = {
    SessionKind.SUBJECT: "nurse_session",
    SessionKind.ADMIN: "admin_session",
}
LOGIN_ENDPOINTS = {
    SessionKind.SUBJECT: "login",
    SessionKind.ADMIN: "admin_login",
}


def load_session(kind: SessionKind) -> Optional[Session]:
    data = session.get(SESSION_KEYS[kind])
    if not data:
        return None
    try:
        return Session.from_dict(data)
    except (KeyError, TypeError, ValueError):
        logger.warning("Discarding malformed %s session cookie", kind.value)
        discard_session(kind)
        return None


def store_session(s: Session) -> None:
    session[SESSION_KEYS[s.kind]] = s.to_dict()


def discard_session(kind: SessionKind) -> None:
    session.pop(SESSION_KEYS[kind], None)


def valid_session(manager: SessionManager, kind: SessionKind) -> Optional[Session]:
    s = load_session(kind)
    if s is None:
        return None
    if manager.is_expired(s):
        manager.sign_out(s)
        discard_session(kind)
        return None
    if not manager.is_valid(s, kind):
        discard_session(kind)
        return None
    return s


def session_required(manager: SessionManager, kind: SessionKind):
    """Gate a view on an unexpired session of ``kind``; the session lands in ``g.camp_session``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            s = valid_session(manager, kind)
            if s is None:
                return redirect(url_for(LOGIN_ENDPOINTS[kind]))
            g.camp_session = s
            return view(*args, **kwargs)

        return wrapper

    return decorator
