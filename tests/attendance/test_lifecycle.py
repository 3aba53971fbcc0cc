from __future__ import annotations

import pytest

from src.camp_attendance.camp_attendance.attendance.store import records_path
from src.camp_attendance.camp_attendance.core.enums import AttendanceState, AttendanceStatus, LocationSource
from src.camp_attendance.camp_attendance.core.exceptions import (
    InvalidTransition,
    LocationUnavailable,
    RemoteWriteFailure,
    ValidationError,
)
from src.camp_attendance.camp_attendance.geo.locator import SubmittedPositionSensor

HOME = SubmittedPositionSensor("28.6139", "77.2090")
CAMP = SubmittedPositionSensor("28.7041", "77.1025")


def test_today_starts_not_punched_in(attendance_service, subject_session):
    view = attendance_service.today(subject_session)
    assert view.date == "2026-03-02"
    assert view.state == AttendanceState.NOT_PUNCHED_IN
    assert view.record is None


def test_punch_out_before_punch_in_fails_and_writes_nothing(attendance_service, subject_session, documents, record_cache):
    with pytest.raises(InvalidTransition, match="not punched in"):
        attendance_service.punch_out(subject_session, sensor=CAMP)

    assert documents.get(records_path("ECCM038"), "2026-03-02") is None
    assert record_cache.records == {}


def test_full_day(attendance_service, subject_session, clock, documents):
    rec = attendance_service.punch_in(subject_session, sensor=HOME)
    assert rec.state == AttendanceState.PUNCHED_IN
    assert rec.subject_name == "Asha Devi"
    assert not rec.pending_sync

    clock.advance(hours=6, minutes=30)
    rec = attendance_service.punch_out(subject_session, sensor=CAMP)
    assert rec.status == AttendanceStatus.COMPLETED
    assert rec.punch_in is not None and rec.punch_out is not None
    assert rec.punch_out.timestamp >= rec.punch_in.timestamp

    rec = attendance_service.submit_details(
        subject_session,
        consultation_count="17",
        register_image=b"register",
        camp_photos=[b"one", b"two"],
    )
    assert rec.state == AttendanceState.DETAILS_SUBMITTED
    assert rec.consultation_count == 17
    assert rec.register_image == "data:image/jpeg;base64,8"
    assert len(rec.camp_photos) == 2

    stored = documents.get(records_path("ECCM038"), "2026-03-02")
    assert stored["status"] == "completed"
    assert stored["formSubmitted"] is True
    assert stored["consultationCount"] == 17


def test_second_punch_in_is_rejected(attendance_service, subject_session):
    attendance_service.punch_in(subject_session, sensor=HOME)
    with pytest.raises(InvalidTransition, match="already punched in"):
        attendance_service.punch_in(subject_session, sensor=HOME)


def test_second_punch_out_is_rejected(attendance_service, subject_session):
    attendance_service.punch_in(subject_session, sensor=HOME)
    attendance_service.punch_out(subject_session, sensor=CAMP)
    with pytest.raises(InvalidTransition, match="already punched out"):
        attendance_service.punch_out(subject_session, sensor=CAMP)


def test_negative_consultation_count(attendance_service, subject_session):
    attendance_service.punch_in(subject_session, sensor=HOME)
    attendance_service.punch_out(subject_session, sensor=CAMP)

    with pytest.raises(ValidationError):
        attendance_service.submit_details(subject_session, consultation_count=-1)

    view = attendance_service.today(subject_session)
    assert view.record.form_submitted is False
    assert view.state == AttendanceState.COMPLETED


@pytest.mark.parametrize("count", ["", None, "2.5", "abc", True, "²", "٣", "1_000", "--4"])
def test_consultation_count_must_be_a_whole_number(attendance_service, subject_session, count):
    attendance_service.punch_in(subject_session, sensor=HOME)
    attendance_service.punch_out(subject_session, sensor=CAMP)
    with pytest.raises(ValidationError):
        attendance_service.submit_details(subject_session, consultation_count=count)


def test_zero_consultations_is_allowed(attendance_service, subject_session):
    attendance_service.punch_in(subject_session, sensor=HOME)
    attendance_service.punch_out(subject_session, sensor=CAMP)
    rec = attendance_service.submit_details(subject_session, consultation_count=0)
    assert rec.consultation_count == 0
    assert rec.form_submitted


def test_more_than_five_camp_photos(attendance_service, subject_session):
    attendance_service.punch_in(subject_session, sensor=HOME)
    attendance_service.punch_out(subject_session, sensor=CAMP)
    with pytest.raises(ValidationError):
        attendance_service.submit_details(subject_session, consultation_count=3, camp_photos=[b"x"] * 6)


def test_details_before_punch_out(attendance_service, subject_session):
    attendance_service.punch_in(subject_session, sensor=HOME)
    with pytest.raises(InvalidTransition):
        attendance_service.submit_details(subject_session, consultation_count=3)


def test_details_only_once(attendance_service, subject_session):
    attendance_service.punch_in(subject_session, sensor=HOME)
    attendance_service.punch_out(subject_session, sensor=CAMP)
    attendance_service.submit_details(subject_session, consultation_count=3)
    with pytest.raises(InvalidTransition):
        attendance_service.submit_details(subject_session, consultation_count=4)


def test_no_location_blocks_punch_in(attendance_service, subject_session, record_cache):
    with pytest.raises(LocationUnavailable):
        attendance_service.punch_in(subject_session, sensor=SubmittedPositionSensor(error="denied"))
    assert record_cache.records == {}


def test_no_location_blocks_punch_out(attendance_service, subject_session, clock, documents, record_cache):
    attendance_service.punch_in(subject_session, sensor=HOME)
    clock.advance(hours=4)

    with pytest.raises(LocationUnavailable):
        attendance_service.punch_out(subject_session, sensor=SubmittedPositionSensor(error="denied"))

    cached = record_cache.get("ECCM038", "2026-03-02")
    assert cached.punch_out is None
    assert not cached.pending_sync
    stored = documents.get(records_path("ECCM038"), "2026-03-02")
    assert stored["status"] == "punched_in"
    assert stored["punchOut"] is None
    assert attendance_service.today(subject_session).state == AttendanceState.PUNCHED_IN


def test_remote_failure_on_details_keeps_submission_pending(
    attendance_service, subject_session, documents, record_cache
):
    attendance_service.punch_in(subject_session, sensor=HOME)
    attendance_service.punch_out(subject_session, sensor=CAMP)

    documents.fail_writes = True
    with pytest.raises(RemoteWriteFailure) as exc:
        attendance_service.submit_details(subject_session, consultation_count=9)

    assert exc.value.record.form_submitted
    cached = record_cache.get("ECCM038", "2026-03-02")
    assert cached.form_submitted
    assert cached.consultation_count == 9
    assert cached.pending_sync
    assert "formSubmitted" not in documents.get(records_path("ECCM038"), "2026-03-02")
    assert attendance_service.today(subject_session).state == AttendanceState.DETAILS_SUBMITTED

    documents.fail_writes = False
    result = attendance_service.resync()
    assert (result.synced, result.failed) == (1, 0)
    stored = documents.get(records_path("ECCM038"), "2026-03-02")
    assert stored["formSubmitted"] is True
    assert stored["consultationCount"] == 9
    assert not record_cache.get("ECCM038", "2026-03-02").pending_sync


def test_ip_estimate_is_accepted(attendance_service, subject_session, ip_client):
    ip_client.coords = (28.5, 77.1)
    rec = attendance_service.punch_in(subject_session, sensor=SubmittedPositionSensor(error="timeout"))
    assert rec.punch_in.source == LocationSource.IP
    assert (rec.punch_in.latitude, rec.punch_in.longitude) == (28.5, 77.1)


def test_remote_failure_keeps_record_locally(attendance_service, subject_session, documents, record_cache):
    documents.fail_writes = True
    with pytest.raises(RemoteWriteFailure) as exc:
        attendance_service.punch_in(subject_session, sensor=HOME)

    assert exc.value.record.pending_sync
    cached = record_cache.get("ECCM038", "2026-03-02")
    assert cached.pending_sync
    assert attendance_service.today(subject_session).state == AttendanceState.PUNCHED_IN

    documents.fail_writes = False
    result = attendance_service.resync()
    assert (result.synced, result.failed) == (1, 0)
    assert documents.get(records_path("ECCM038"), "2026-03-02")["status"] == "punched_in"
    assert not record_cache.get("ECCM038", "2026-03-02").pending_sync


def test_punch_in_from_another_device_wins(attendance_service, subject_session, documents, record_cache, fixed_now):
    competitor = {
        "clinicId": "ECCM038",
        "nurseName": "Asha Devi",
        "date": "2026-03-02",
        "punchIn": {"timestamp": fixed_now.isoformat(), "latitude": 1.0, "longitude": 2.0, "source": "browser"},
        "punchOut": None,
        "status": "punched_in",
    }
    real_create = documents.create

    def racing_create(path, doc_id, fields):
        # The other device's write lands between our read and our insert.
        real_create(path, doc_id, competitor)
        return real_create(path, doc_id, fields)

    documents.create = racing_create

    with pytest.raises(InvalidTransition, match="another device"):
        attendance_service.punch_in(subject_session, sensor=HOME)

    cached = record_cache.get("ECCM038", "2026-03-02")
    assert cached.punch_in.latitude == 1.0
    assert not cached.pending_sync


def test_admin_session_cannot_punch(attendance_service, auth_service):
    admin = auth_service.login_admin("admin", "admin123")
    with pytest.raises(InvalidTransition):
        attendance_service.punch_in(admin, sensor=HOME)
