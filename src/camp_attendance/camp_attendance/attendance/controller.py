from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import Flask, g, jsonify, request

from ..common.datetime_utils import format_remaining, format_timestamp
from ..core.enums import SessionKind
from ..core.exceptions import (
    DomainError,
    InvalidTransition,
    LocationUnavailable,
    RemoteWriteFailure,
    ValidationError,
)
from ..geo.locator import SubmittedPositionSensor, geolocation_options
from ..users.controller import client_ip
from ..users.guards import session_required
from .model import AttendanceRecord


logger = logging.getLogger(__name__)


def record_ui(record: Optional[AttendanceRecord]) -> Optional[dict]:
    if record is None:
        return None

    def punch(p):
        if p is None:
            return None
        return {
            "time": format_timestamp(p.timestamp.isoformat()),
            "latitude": p.latitude,
            "longitude": p.longitude,
            "source": p.source.value,
        }

    return {
        "date": record.date_str,
        "state": record.state.value,
        "punch_in": punch(record.punch_in),
        "punch_out": punch(record.punch_out),
        "consultation_count": record.consultation_count,
        "camp_photo_count": len(record.camp_photos),
        "form_submitted": record.form_submitted,
        "pending_sync": record.pending_sync,
    }


def _file_bytes(storage) -> Optional[bytes]:
    if storage is None or not storage.filename:
        return None
    return storage.read() or None


def handle_attendance_errors(view):
    """Translate lifecycle failures into JSON responses with a status code per kind."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except RemoteWriteFailure as e:
            # The record is kept locally and will be pushed on the next resync.
            return (
                jsonify(
                    {
                        "success": True,
                        "sync_pending": True,
                        "message": str(e),
                        "record": record_ui(e.record),
                    }
                ),
                202,
            )
        except InvalidTransition as e:
            return jsonify({"success": False, "message": str(e)}), 409
        except LocationUnavailable as e:
            return jsonify({"success": False, "retry": True, "message": str(e)}), 503
        except (ValidationError, DomainError) as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except Exception:
            logger.exception("Attendance request failed: %s", request.path)
            return jsonify({"success": False, "message": "Something went wrong. Please try again."}), 500

    return wrapper


def register(app: Flask, container) -> None:
    service = container.attendance_service
    subject_required = session_required(container.session_manager, SessionKind.SUBJECT)

    @app.route("/dashboard", endpoint="dashboard")
    @subject_required
    @handle_attendance_errors
    def dashboard():
        s = g.camp_session
        view = service.today(s)
        return jsonify(
            {
                "nurse": s.profile,
                "session": {
                    "login_time": format_timestamp(s.issued_at.isoformat()),
                    "location": s.location.to_dict() if s.location else None,
                    "remaining": format_remaining(container.session_manager.remaining(s)),
                },
                "today": {"date": view.date, "state": view.state.value, "record": record_ui(view.record)},
                "geolocation_options": geolocation_options(),
            }
        )

    @app.route("/punch-in", methods=["POST"], endpoint="punch_in")
    @subject_required
    @handle_attendance_errors
    def punch_in():
        record = service.punch_in(
            g.camp_session,
            sensor=SubmittedPositionSensor.from_form(request.form),
            client_ip=client_ip(),
        )
        return jsonify({"success": True, "message": "Punched in successfully!", "record": record_ui(record)})

    @app.route("/punch-out", methods=["POST"], endpoint="punch_out")
    @subject_required
    @handle_attendance_errors
    def punch_out():
        record = service.punch_out(
            g.camp_session,
            sensor=SubmittedPositionSensor.from_form(request.form),
            client_ip=client_ip(),
        )
        return jsonify({"success": True, "message": "Punched out successfully!", "record": record_ui(record)})

    @app.route("/details", methods=["POST"], endpoint="submit_details")
    @subject_required
    @handle_attendance_errors
    def submit_details():
        photos = [b for b in (_file_bytes(f) for f in request.files.getlist("camp_photos")) if b]
        record = service.submit_details(
            g.camp_session,
            consultation_count=request.form.get("consultation_count", ""),
            register_image=_file_bytes(request.files.get("register_image")),
            camp_photos=photos,
        )
        return jsonify({"success": True, "message": "Camp details submitted successfully!", "record": record_ui(record)})

    @app.route("/resync", methods=["POST"], endpoint="resync")
    @subject_required
    @handle_attendance_errors
    def resync():
        result = service.resync()
        return jsonify({"success": result.failed == 0, "synced": result.synced, "failed": result.failed})
