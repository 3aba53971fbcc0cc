from __future__ import annotations

from datetime import timedelta

from src.camp_attendance.camp_attendance.common.datetime_utils import format_remaining
from src.camp_attendance.camp_attendance.core.enums import SessionKind
from src.camp_attendance.camp_attendance.users.session import Session


def test_session_lasts_two_hours(subject_session, session_manager, fixed_now):
    assert subject_session.issued_at == fixed_now
    assert subject_session.expires_at == fixed_now + timedelta(hours=2)
    assert session_manager.remaining(subject_session) == timedelta(hours=2)


def test_remaining_follows_the_clock(subject_session, session_manager, clock):
    clock.advance(minutes=30, seconds=2)
    remaining = session_manager.remaining(subject_session)
    assert format_remaining(remaining) == "1h 29m 58s"


def test_tick_forces_sign_out_at_expiry(subject_session, session_manager, clock, identity):
    clock.advance(hours=1, minutes=59, seconds=59)
    assert session_manager.tick(subject_session) == timedelta(seconds=1)
    assert identity.is_active(subject_session.token)

    clock.advance(seconds=1)
    assert session_manager.tick(subject_session) is None
    assert not identity.is_active(subject_session.token)


def test_tick_stops_once_token_is_revoked(subject_session, session_manager, clock, identity):
    clock.advance(minutes=10)
    assert session_manager.tick(subject_session) == timedelta(hours=1, minutes=50)

    identity.revoke(subject_session.token)
    assert session_manager.tick(subject_session) is None


def test_validity_checks_kind_expiry_and_token(subject_session, session_manager, clock, identity):
    assert session_manager.is_valid(subject_session, SessionKind.SUBJECT)
    assert not session_manager.is_valid(subject_session, SessionKind.ADMIN)
    assert not session_manager.is_valid(None, SessionKind.SUBJECT)

    identity.revoke(subject_session.token)
    assert not session_manager.is_valid(subject_session, SessionKind.SUBJECT)


def test_expired_session_is_invalid(subject_session, session_manager, clock):
    clock.advance(hours=2)
    assert session_manager.is_expired(subject_session)
    assert not session_manager.is_valid(subject_session, SessionKind.SUBJECT)
    assert session_manager.remaining(subject_session) == timedelta(0)


def test_sign_out_revokes(subject_session, session_manager, identity):
    session_manager.sign_out(subject_session)
    assert not identity.is_active(subject_session.token)


def test_cookie_round_trip(subject_session):
    restored = Session.from_dict(subject_session.to_dict())
    assert restored == subject_session


def test_format_remaining_never_negative():
    assert format_remaining(timedelta(seconds=-5)) == "0h 0m 0s"
    assert format_remaining(timedelta(hours=2)) == "2h 0m 0s"
