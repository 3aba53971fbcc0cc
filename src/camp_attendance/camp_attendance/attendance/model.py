from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_date
from ..core.constants import MAX_CAMP_PHOTOS
from ..core.enums import AttendanceState, AttendanceStatus, LocationSource
from ..core.exceptions import DataIntegrityError, ValidationError


@dataclass(frozen=True)
class PunchEvent:
    """One punch: when and where."""

    timestamp: datetime
    latitude: Optional[float]
    longitude: Optional[float]
    source: LocationSource

    def to_document(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "source": self.source.value,
        }

    @classmethod
    def from_document(cls, data: Optional[Mapping[str, Any]]) -> Optional["PunchEvent"]:
        if not data:
            return None
        try:
            return cls(
                timestamp=datetime.fromisoformat(str(data["timestamp"])),
                latitude=data.get("latitude"),
                longitude=data.get("longitude"),
                source=LocationSource(data.get("source") or LocationSource.UNAVAILABLE.value),
            )
        except (KeyError, ValueError) as e:
            raise DataIntegrityError(f"Malformed punch entry: {e}")


@dataclass(frozen=True)
class AttendanceRecord:
    """One subject's attendance for one calendar day.

    Keyed by (subject_id, work_date). ``status`` is derived from the punches
    and never set directly; ``pending_sync`` marks a local write the remote
    store has not acknowledged yet.
    """

    subject_id: str
    subject_name: str
    work_date: date
    punch_in: Optional[PunchEvent] = None
    punch_out: Optional[PunchEvent] = None
    consultation_count: Optional[int] = None
    register_image: Optional[str] = None
    camp_photos: tuple[str, ...] = field(default_factory=tuple)
    form_submitted: bool = False
    pending_sync: bool = False

    def __post_init__(self):
        if self.punch_out is not None and self.punch_in is None:
            raise DataIntegrityError(f"{self.describe()}: punch-out without punch-in")
        if len(self.camp_photos) > MAX_CAMP_PHOTOS:
            raise DataIntegrityError(f"{self.describe()}: more than {MAX_CAMP_PHOTOS} camp photos")
        if self.form_submitted and (
            isinstance(self.consultation_count, bool)
            or not isinstance(self.consultation_count, int)
            or self.consultation_count < 0
        ):
            raise DataIntegrityError(f"{self.describe()}: submitted without a valid consultation count")

    @property
    def key(self) -> tuple[str, str]:
        return self.subject_id, self.date_str

    @property
    def date_str(self) -> str:
        return self.work_date.strftime("%Y-%m-%d")

    @property
    def status(self) -> Optional[AttendanceStatus]:
        if self.punch_in is None:
            return None
        if self.punch_out is None:
            return AttendanceStatus.PUNCHED_IN
        return AttendanceStatus.COMPLETED

    @property
    def state(self) -> AttendanceState:
        if self.punch_in is None:
            return AttendanceState.NOT_PUNCHED_IN
        if self.punch_out is None:
            return AttendanceState.PUNCHED_IN
        if self.form_submitted:
            return AttendanceState.DETAILS_SUBMITTED
        return AttendanceState.COMPLETED

    def describe(self) -> str:
        return f"{self.subject_id}/{self.work_date}"

    def with_changes(self, **changes) -> "AttendanceRecord":
        return replace(self, **changes)

    def to_document(self) -> dict:
        """Remote document shape (camelCase, status persisted for queries)."""

        doc: dict[str, Any] = {
            "clinicId": self.subject_id,
            "nurseName": self.subject_name,
            "date": self.date_str,
            "punchIn": self.punch_in.to_document() if self.punch_in else None,
            "punchOut": self.punch_out.to_document() if self.punch_out else None,
            "status": self.status.value if self.status else None,
        }
        if self.consultation_count is not None:
            doc["consultationCount"] = self.consultation_count
        if self.register_image:
            doc["registerImage"] = self.register_image
        if self.camp_photos:
            doc["campPhotos"] = list(self.camp_photos)
        if self.form_submitted:
            doc["formSubmitted"] = True
        return doc

    @classmethod
    def from_document(cls, data: Mapping[str, Any], *, pending_sync: bool = False) -> "AttendanceRecord":
        try:
            work_date = parse_iso_date(str(data.get("date") or ""))
        except ValidationError as e:
            raise DataIntegrityError(str(e))

        record = cls(
            subject_id=str(data.get("clinicId") or ""),
            subject_name=str(data.get("nurseName") or ""),
            work_date=work_date,
            punch_in=PunchEvent.from_document(data.get("punchIn")),
            punch_out=PunchEvent.from_document(data.get("punchOut")),
            consultation_count=data.get("consultationCount"),
            register_image=data.get("registerImage") or None,
            camp_photos=tuple(data.get("campPhotos") or ()),
            form_submitted=bool(data.get("formSubmitted", False)),
            pending_sync=pending_sync,
        )

        stored = data.get("status")
        derived = record.status.value if record.status else None
        if stored is not None and stored != derived:
            raise DataIntegrityError(
                f"{record.describe()}: stored status {stored!r} disagrees with punches ({derived!r})"
            )
        return record
