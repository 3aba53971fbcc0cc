"""Subject roster import (the "MAP LOCATOR" form-responses CSV).

One row per form response; several rows may share a clinic id. Only the
first ACTIVE row per clinic id is kept.
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from typing import Iterable, TextIO

from .model import SubjectProfile

_NAME_AND_NUMBER_RE = re.compile(r"^([^\d]+)\s*(\d+)?$")


@dataclass(frozen=True)
class RosterEntry:
    profile: SubjectProfile
    password: str


def default_password(clinic_id: str) -> str:
    return f"Nurse@{clinic_id}2024"


def split_name_and_number(value: str) -> tuple[str, str]:
    """``"Asha Devi 98765"`` -> ``("Asha Devi", "98765")``."""

    value = (value or "").strip()
    m = _NAME_AND_NUMBER_RE.match(value)
    if not m:
        return value, ""
    return m.group(1).strip(), m.group(2) or ""


def _get(row: dict, column: str) -> str:
    # Form exports carry stray whitespace in header names ("NURSE TYPE ").
    for key, value in row.items():
        if key is not None and key.strip() == column:
            return (value or "").strip()
    return ""


def parse_roster(stream: TextIO) -> list[RosterEntry]:
    entries: dict[str, RosterEntry] = {}
    for row in csv.DictReader(stream):
        clinic_id = _get(row, "Clinic ID").upper()
        if not clinic_id or clinic_id in entries or _get(row, "Status") != "ACTIVE":
            continue

        name, phone = split_name_and_number(_get(row, "Nurse Name and TAB Number"))
        profile = SubjectProfile(
            subject_id=clinic_id,
            display_name=name,
            region=_get(row, "REGION/DISTRICT"),
            admin_area=_get(row, "State"),
            affiliated_partner=_get(row, "PARTNERNAME"),
            phone=phone,
            clinic_address=_get(row, "Clinic Address"),
            clinic_type=_get(row, "Clinic Type"),
            nurse_type=_get(row, "NURSE TYPE"),
            employee_id=_get(row, "NURSE EMP ID"),
        )
        entries[clinic_id] = RosterEntry(profile=profile, password=default_password(clinic_id))
    return list(entries.values())


def parse_roster_text(text: str) -> list[RosterEntry]:
    return parse_roster(io.StringIO(text))


def chunked(items: list, size: int) -> Iterable[list]:
    for i in range(0, len(items), size):
        yield items[i : i + size]
