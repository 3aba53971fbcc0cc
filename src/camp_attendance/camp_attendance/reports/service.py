from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord, PunchEvent
from ..common.datetime_utils import format_timestamp
from ..core.constants import EXPORT_FILENAME_PATTERN
from ..geo.distance import distance_km, format_coords, format_distance, maps_url
from ..users.model import SubjectProfile

CSV_HEADERS = [
    "Date",
    "Clinic ID",
    "Nurse Name",
    "Region",
    "State",
    "Partner",
    "Punch In Time",
    "Punch In Location",
    "Punch In Map Link",
    "Punch Out Time",
    "Punch Out Location",
    "Punch Out Map Link",
    "Distance (km)",
    "Consultations",
    "Register Image",
    "Camp Photos",
    "Form Submitted",
    "Status",
]


@dataclass(frozen=True)
class ReportRow:
    """Read-model for the admin table and CSV export."""

    record: AttendanceRecord
    profile: Optional[SubjectProfile]
    distance_km: Optional[float]

    @property
    def region(self) -> str:
        return self.profile.region if self.profile else ""

    @property
    def admin_area(self) -> str:
        return self.profile.admin_area if self.profile else ""

    @property
    def partner(self) -> str:
        return self.profile.affiliated_partner if self.profile else ""

    def to_ui(self) -> dict:
        r = self.record
        return {
            "date": r.date_str,
            "clinic_id": r.subject_id,
            "nurse_name": r.subject_name,
            "region": self.region or "N/A",
            "state": self.admin_area,
            "punch_in": _punch_ui(r.punch_in),
            "punch_out": _punch_ui(r.punch_out),
            "distance": format_distance(self.distance_km),
            "consultations": r.consultation_count,
            "has_register_image": bool(r.register_image),
            "camp_photo_count": len(r.camp_photos),
            "form_submitted": r.form_submitted,
            "status": r.status.value if r.status else "",
        }


def _punch_ui(punch: Optional[PunchEvent]) -> Optional[dict]:
    if punch is None:
        return None
    return {
        "time": format_timestamp(punch.timestamp.isoformat()),
        "coords": format_coords(punch.latitude, punch.longitude),
        "map_url": maps_url(punch.latitude, punch.longitude),
        "source": punch.source.value,
    }


def record_distance(record: AttendanceRecord) -> Optional[float]:
    if not record.punch_in or not record.punch_out:
        return None
    return distance_km(
        record.punch_in.latitude,
        record.punch_in.longitude,
        record.punch_out.latitude,
        record.punch_out.longitude,
    )


def _sort_key_timestamp(record: AttendanceRecord) -> str:
    return record.punch_in.timestamp.isoformat() if record.punch_in else ""


def _matches(record: AttendanceRecord, profile: Optional[SubjectProfile], needle: str) -> bool:
    haystack = [record.subject_id, record.subject_name]
    if profile:
        haystack += [profile.region, profile.admin_area]
    return any(needle in (value or "").lower() for value in haystack)


def build_report(
    records: Iterable[AttendanceRecord],
    profiles: Mapping[str, SubjectProfile],
    date_filter: str,
    text_filter: str = "",
) -> list[ReportRow]:
    """Rows for one date, optionally narrowed by a case-insensitive search.

    Newest first: date descending, then punch-in time descending with
    records lacking a punch-in last.
    """

    needle = (text_filter or "").strip().lower()
    selected = [
        r
        for r in records
        if r.date_str == date_filter and (not needle or _matches(r, profiles.get(r.subject_id), needle))
    ]
    # Two stable passes: secondary key first, then primary.
    selected.sort(key=_sort_key_timestamp, reverse=True)
    selected.sort(key=lambda r: r.date_str, reverse=True)

    return [ReportRow(record=r, profile=profiles.get(r.subject_id), distance_km=record_distance(r)) for r in selected]


def _punch_cells(punch: Optional[PunchEvent]) -> list[str]:
    if punch is None:
        return ["", "", ""]
    return [
        format_timestamp(punch.timestamp.isoformat()),
        format_coords(punch.latitude, punch.longitude),
        maps_url(punch.latitude, punch.longitude) or "",
    ]


def csv_cells(row: ReportRow) -> list[str]:
    r = row.record
    return [
        r.date_str,
        r.subject_id,
        r.subject_name,
        row.region,
        row.admin_area,
        row.partner,
        *_punch_cells(r.punch_in),
        *_punch_cells(r.punch_out),
        f"{row.distance_km:.3f}" if row.distance_km is not None else "",
        str(r.consultation_count) if r.consultation_count is not None else "",
        "Yes" if r.register_image else "No",
        str(len(r.camp_photos)),
        "Yes" if r.form_submitted else "No",
        r.status.value if r.status else "",
    ]


def export_csv(rows: Sequence[ReportRow]) -> bytes:
    """Fully quoted CSV, header first, rows joined by newlines."""

    out = io.StringIO()
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow(csv_cells(row))
    return out.getvalue().rstrip("\n").encode("utf-8")


def export_filename(date_filter: str) -> str:
    return EXPORT_FILENAME_PATTERN.format(date=date_filter)
