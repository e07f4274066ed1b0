from flask import Blueprint, jsonify, current_app

from ..decorators import require_auth, require_permission
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/<period>")
@require_auth
@require_permission("VIEW_REPORTS")
def sales_report(period: str):
    """daily or weekly; anything else is served as daily."""
    try:
        report = reporting_service.get_sales_report(period)
        return jsonify(report), 200
    except Exception:
        current_app.logger.exception("Failed to build %s sales report", period)
        return jsonify({"error": "Failed to generate report"}), 500
