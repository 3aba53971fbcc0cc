from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..core.enums import SessionKind


@dataclass(frozen=True)
class SubjectProfile:
    """Reference data for one field worker (nurse), keyed by clinic id.

    Read-only for attendance; used to enrich sessions and reports.
    """

    subject_id: str
    display_name: str
    region: str = ""
    admin_area: str = ""
    affiliated_partner: str = ""
    phone: str = ""
    clinic_address: str = ""
    clinic_type: str = ""
    nurse_type: str = ""
    employee_id: str = ""

    def to_document(self) -> dict:
        return {
            "clinicId": self.subject_id,
            "nurseName": self.display_name,
            "region": self.region,
            "state": self.admin_area,
            "partnerName": self.affiliated_partner,
            "nursePhone": self.phone,
            "clinicAddress": self.clinic_address,
            "clinicType": self.clinic_type,
            "nurseType": self.nurse_type,
            "nurseEmpId": self.employee_id,
        }

    @classmethod
    def from_document(cls, subject_id: str, data: Mapping[str, Any]) -> "SubjectProfile":
        def s(key: str) -> str:
            return str(data.get(key) or "")

        return cls(
            subject_id=subject_id,
            display_name=s("nurseName"),
            region=s("region"),
            admin_area=s("state"),
            affiliated_partner=s("partnerName"),
            phone=s("nursePhone"),
            clinic_address=s("clinicAddress"),
            clinic_type=s("clinicType"),
            nurse_type=s("nurseType"),
            employee_id=s("nurseEmpId"),
        )


@dataclass(frozen=True)
class VerifiedIdentity:
    """What the identity provider hands back after a successful verify()."""

    identifier: str
    token: str
    role: SessionKind
    subject_id: Optional[str]
    display_name: str = ""
