from __future__ import annotations

import logging

from flask import Flask, g, jsonify, request

from ..common.datetime_utils import format_remaining, now_local, parse_iso_date
from ..core.enums import SessionKind
from ..core.exceptions import ValidationError
from ..users.guards import session_required
from .query import day_stats, paginate
from .service import export_csv, export_filename

logger = logging.getLogger(__name__)


def _date_filter() -> str:
    raw = (request.args.get("date") or "").strip()
    if not raw:
        return now_local().strftime("%Y-%m-%d")
    return parse_iso_date(raw).strftime("%Y-%m-%d")


def _page_arg() -> int:
    try:
        return int(request.args.get("page", "1"))
    except ValueError:
        return 1


def register(app: Flask, container) -> None:
    queries = container.admin_query_service
    admin_required = session_required(container.session_manager, SessionKind.ADMIN)

    @app.route("/admin/dashboard", endpoint="admin_dashboard")
    @admin_required
    def admin_dashboard():
        try:
            date_filter = _date_filter()
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400

        text_filter = request.args.get("q", "")
        rows = queries.report(date_filter=date_filter, text_filter=text_filter)
        page = paginate(rows, _page_arg())
        stats = day_stats(rows)

        return jsonify(
            {
                "date": date_filter,
                "q": text_filter,
                "stats": {"total": stats.total, "completed": stats.completed, "punched_in": stats.punched_in},
                "rows": [row.to_ui() for row in page.items],
                "page": page.page,
                "total_pages": page.total_pages,
                "total": page.total,
                "remaining": format_remaining(container.session_manager.remaining(g.camp_session)),
            }
        )

    @app.route("/admin/export.csv", endpoint="admin_export")
    @admin_required
    def admin_export():
        try:
            date_filter = _date_filter()
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400

        rows = queries.report(date_filter=date_filter, text_filter=request.args.get("q", ""))
        logger.info("Exporting %s rows for %s", len(rows), date_filter)
        return app.response_class(
            export_csv(rows),
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{export_filename(date_filter)}"'},
        )
