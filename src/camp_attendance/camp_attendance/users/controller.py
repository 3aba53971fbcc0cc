from __future__ import annotations

import logging

from flask import Flask, jsonify, redirect, request, url_for

from ..common.datetime_utils import format_remaining
from ..core.enums import AuthErrorCode, SessionKind
from ..core.exceptions import AuthError
from ..geo.locator import SubmittedPositionSensor, geolocation_options
from .guards import LOGIN_ENDPOINTS, discard_session, load_session, store_session, valid_session

logger = logging.getLogger(__name__)


def client_ip() -> str | None:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.remote_addr


def _auth_failure(e: AuthError):
    status = 429 if e.code == AuthErrorCode.RATE_LIMITED else 401
    return jsonify({"success": False, "code": e.code.value, "message": str(e)}), status


def register(app: Flask, container) -> None:
    sessions = container.session_manager

    @app.route("/", methods=["GET", "POST"], endpoint="login")
    def login():
        if valid_session(sessions, SessionKind.SUBJECT):
            return redirect(url_for("dashboard"))

        if request.method == "GET":
            return jsonify(
                {
                    "portal": "nurse",
                    "message": "Enter your Clinic ID to sign in",
                    "geolocation_options": geolocation_options(),
                }
            )

        try:
            s = container.auth_service.login_subject(
                request.form.get("clinic_id", ""),
                request.form.get("password", ""),
                sensor=SubmittedPositionSensor.from_form(request.form),
                client_ip=client_ip(),
                user_agent=request.headers.get("User-Agent", ""),
            )
        except AuthError as e:
            return _auth_failure(e)
        except Exception:
            logger.exception("Login error")
            return jsonify({"success": False, "message": "Login failed. Please try again."}), 500

        store_session(s)
        return redirect(url_for("dashboard"))

    @app.route("/admin", methods=["GET", "POST"], endpoint="admin_login")
    def admin_login():
        if valid_session(sessions, SessionKind.ADMIN):
            return redirect(url_for("admin_dashboard"))

        if request.method == "GET":
            return jsonify({"portal": "admin", "message": "Sign in to manage camp attendance"})

        try:
            s = container.auth_service.login_admin(
                request.form.get("username", ""),
                request.form.get("password", ""),
            )
        except AuthError as e:
            return _auth_failure(e)
        except Exception:
            logger.exception("Admin login error")
            return jsonify({"success": False, "message": "Invalid username or password"}), 500

        store_session(s)
        return redirect(url_for("admin_dashboard"))

    def _logout(kind: SessionKind):
        s = load_session(kind)
        if s is not None:
            container.auth_service.sign_out(s)
        discard_session(kind)
        return redirect(url_for(LOGIN_ENDPOINTS[kind]))

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        return _logout(SessionKind.SUBJECT)

    @app.route("/admin/logout", methods=["POST"], endpoint="admin_logout")
    def admin_logout():
        return _logout(SessionKind.ADMIN)

    @app.route("/session/remaining", endpoint="session_remaining")
    def session_remaining():
        """Countdown tick, polled once per second by the dashboards."""

        try:
            kind = SessionKind(request.args.get("kind", SessionKind.SUBJECT.value))
        except ValueError:
            return jsonify({"success": False, "message": "Unknown session kind"}), 400

        s = load_session(kind)
        remaining = sessions.tick(s) if s is not None and s.kind == kind else None
        if remaining is None:
            discard_session(kind)
            return jsonify({"expired": True, "redirect": url_for(LOGIN_ENDPOINTS[kind])})

        return jsonify(
            {
                "expired": False,
                "remaining": format_remaining(remaining),
                "seconds": int(remaining.total_seconds()),
            }
        )
