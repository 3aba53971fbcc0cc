from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_negative_int
from ..core.constants import MAX_CAMP_PHOTOS
from ..core.enums import AttendanceState, SessionKind
from ..core.exceptions import InvalidTransition, LocationUnavailable, ValidationError
from ..geo.locator import DeviceSensor, GeoLocator, Position
from ..users.session import Session
from .images import compress_image
from .model import AttendanceRecord, PunchEvent
from .store import AttendanceStore, SyncResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TodayView:
    date: str
    state: AttendanceState
    record: Optional[AttendanceRecord]


class AttendanceService:
    """The day's lifecycle for one subject.

    NOT_PUNCHED_IN -> PUNCHED_IN -> COMPLETED -> DETAILS_SUBMITTED.
    Every transition checks its precondition against the stored record and
    either persists the new record or raises without writing anything.
    """

    def __init__(
        self,
        store: AttendanceStore,
        locator: GeoLocator,
        *,
        clock: Callable[[], datetime] = now_local,
        image_encoder: Callable[[bytes], str] = compress_image,
    ):
        self._store = store
        self._locator = locator
        self._clock = clock
        self._encode_image = image_encoder

    @staticmethod
    def _subject_of(session: Session) -> str:
        if session.kind != SessionKind.SUBJECT or not session.subject_id:
            raise InvalidTransition("Only signed-in nurses can record attendance")
        return session.subject_id

    def _fix(self, sensor: Optional[DeviceSensor], client_ip: Optional[str]) -> Position:
        position = self._locator.acquire(sensor, client_ip=client_ip)
        if not position.has_fix:
            raise LocationUnavailable("Unable to get your location. Please enable location access and try again.")
        return position

    def today(self, session: Session) -> TodayView:
        subject_id = self._subject_of(session)
        date_str = self._clock().strftime("%Y-%m-%d")
        record = self._store.load(subject_id, date_str)
        state = record.state if record else AttendanceState.NOT_PUNCHED_IN
        return TodayView(date=date_str, state=state, record=record)

    def punch_in(
        self,
        session: Session,
        *,
        sensor: Optional[DeviceSensor] = None,
        client_ip: Optional[str] = None,
    ) -> AttendanceRecord:
        subject_id = self._subject_of(session)
        today = self._clock().date()

        existing = self._store.load(subject_id, today.strftime("%Y-%m-%d"))
        if existing and existing.state != AttendanceState.NOT_PUNCHED_IN:
            raise InvalidTransition("You have already punched in today")

        position = self._fix(sensor, client_ip)
        record = AttendanceRecord(
            subject_id=subject_id,
            subject_name=session.display_name,
            work_date=today,
            punch_in=PunchEvent(
                timestamp=self._clock(),
                latitude=position.latitude,
                longitude=position.longitude,
                source=position.source,
            ),
        )
        saved = self._store.create(record)
        logger.info("Punch-in %s (%s)", saved.describe(), position.source.value)
        return saved

    def punch_out(
        self,
        session: Session,
        *,
        sensor: Optional[DeviceSensor] = None,
        client_ip: Optional[str] = None,
    ) -> AttendanceRecord:
        subject_id = self._subject_of(session)
        date_str = self._clock().strftime("%Y-%m-%d")

        record = self._store.load(subject_id, date_str)
        if not record or record.state == AttendanceState.NOT_PUNCHED_IN:
            raise InvalidTransition("You have not punched in today")
        if record.state != AttendanceState.PUNCHED_IN:
            raise InvalidTransition("You have already punched out today")

        position = self._fix(sensor, client_ip)
        now = self._clock()
        if now < record.punch_in.timestamp:
            raise ValidationError("Punch-out time cannot be earlier than punch-in time")

        updated = record.with_changes(
            punch_out=PunchEvent(
                timestamp=now,
                latitude=position.latitude,
                longitude=position.longitude,
                source=position.source,
            )
        )
        saved = self._store.save(updated)
        logger.info("Punch-out %s (%s)", saved.describe(), position.source.value)
        return saved

    def submit_details(
        self,
        session: Session,
        *,
        consultation_count,
        register_image: Optional[bytes] = None,
        camp_photos: Sequence[bytes] = (),
    ) -> AttendanceRecord:
        subject_id = self._subject_of(session)
        date_str = self._clock().strftime("%Y-%m-%d")

        record = self._store.load(subject_id, date_str)
        if not record or record.state in (AttendanceState.NOT_PUNCHED_IN, AttendanceState.PUNCHED_IN):
            raise InvalidTransition("Punch out before submitting camp details")
        if record.state == AttendanceState.DETAILS_SUBMITTED:
            raise InvalidTransition("Camp details have already been submitted today")

        count = require_non_negative_int(consultation_count, "Consultation count")
        photos = [p for p in camp_photos if p]
        if len(photos) > MAX_CAMP_PHOTOS:
            raise ValidationError(f"At most {MAX_CAMP_PHOTOS} camp photos are allowed")

        encoded_register = self._encode_image(register_image) if register_image else None
        encoded_photos = tuple(self._encode_image(p) for p in photos)

        updated = record.with_changes(
            consultation_count=count,
            register_image=encoded_register,
            camp_photos=encoded_photos,
            form_submitted=True,
        )
        return self._store.save(updated)

    def resync(self) -> SyncResult:
        return self._store.resync()
