# backend/tallypos/routes/debts.py
"""
Debt listing and payment routes.

A payment larger than the debt pays down the customer's other open debts,
oldest first, in the same transaction.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import debt_service, receipt_query_service
from . import HANDLED_ERRORS, error_response


debts_bp = Blueprint("debts", __name__, url_prefix="/api/debts")


@debts_bp.get("/company/<int:company_id>")
def list_debts_route(company_id: int):
    """
    Query params:
    - date: only debts opened from that day until now
    - show_all_debtors: true ignores date
    """
    show_all = request.args.get("show_all_debtors", "false").lower() in ("1", "true", "yes")
    try:
        debts = receipt_query_service.get_debts(
            company_id,
            date=request.args.get("date") or None,
            show_all_debtors=show_all,
        )
        return jsonify({"debts": debts}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list debts")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.post("/<int:debt_id>/payments")
def make_payment_route(debt_id: int):
    """
    Request body: {"amount": 60, "worker_id": 3, "payment_method": "cash"}

    Returns:
        200: {"message", "debt": {id, customer_name, customer_company,
              total_amount, amount_paid, balance, allocations, unallocated}}
        400: amount or worker_id missing, amount not positive
        404: debt or worker not found
    """
    data = request.get_json(silent=True) or {}
    try:
        debt = debt_service.make_payment(
            debt_id,
            data.get("amount"),
            data.get("worker_id"),
            data.get("payment_method"),
        )
        return jsonify({"message": "Payment successful", "debt": debt}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to process payment for debt %s", debt_id)
        return jsonify({"error": "Failed to process payment"}), 500


@debts_bp.get("/<int:debt_id>/payments")
def debt_payments_route(debt_id: int):
    try:
        return jsonify({"payments": receipt_query_service.get_debt_payments(debt_id)}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@debts_bp.get("/<int:debt_id>/receipt")
def debt_receipt_route(debt_id: int):
    try:
        return jsonify(receipt_query_service.get_debt_receipt(debt_id)), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
