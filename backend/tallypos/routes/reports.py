# backend/tallypos/routes/reports.py
"""
Sales reporting routes. Flagged (voided) receipts never count.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import receipt_query_service
from . import HANDLED_ERRORS, error_response


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/company/<int:company_id>/sales-analytics")
def sales_analytics_route(company_id: int):
    """
    Query params:
    - start_date: ISO-8601 (default: 30 days before end_date)
    - end_date: ISO-8601 (default: now)
    """
    try:
        analytics = receipt_query_service.get_sales_analytics(
            company_id,
            start=request.args.get("start_date") or None,
            end=request.args.get("end_date") or None,
        )
        return jsonify(analytics), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute sales analytics")
        return jsonify({"error": "Internal server error"}), 500
