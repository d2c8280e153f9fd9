from flask import Blueprint, current_app, jsonify

from martpos.services import reporting_service
from martpos.storage import StorageError, get_storage
from martpos.time_utils import store_zone


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
def dashboard_report():
    """Revenue/profit for today, this week and this month plus top products and categories."""
    try:
        report = reporting_service.build_dashboard(
            get_storage(),
            zone=store_zone(current_app.config.get("POS_TIMEZONE")),
            week_start=current_app.config.get("WEEK_START", "sunday"),
        )
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except StorageError:
        current_app.logger.exception("Failed to build dashboard")
        return jsonify({"error": "Internal server error"}), 500
