from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, ensure_admin_account, list_tables

from .container import build_container
from .attendance.controller import register as register_attendance
from .reports.controller import register as register_reports
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(container=None) -> Flask:
    """Build the Flask app. Tests pass a prebuilt ``container`` to skip MySQL."""

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=logging.DEBUG if app.config["DEBUG"] else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            admin_password = getattr(settings, "ADMIN_PASSWORD", "")
            if admin_password:
                ensure_admin_account(
                    db_config,
                    identifier=getattr(settings, "ADMIN_IDENTIFIER"),
                    password=admin_password,
                )
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))

        container = build_container(
            db_config=db_config,
            cache_path=getattr(settings, "LOCAL_CACHE_PATH"),
            ip_geolocation_url=getattr(settings, "IP_GEOLOCATION_URL"),
            ip_geolocation_timeout=float(getattr(settings, "IP_GEOLOCATION_TIMEOUT")),
            session_hours=float(getattr(settings, "SESSION_HOURS")),
            identifier_domain=getattr(settings, "IDENTIFIER_DOMAIN"),
            admin_identifier=getattr(settings, "ADMIN_IDENTIFIER"),
        )

    register_users(app, container)
    register_attendance(app, container)
    register_reports(app, container)

    return app
