# backend/tallypos/routes/receipts.py
"""
Receipt API Routes

DESIGN:
- Create, edit, flag/unflag and delete receipts
- Day and range listings for the receipt views
- Customers are addressed as {"company": ..., "name": ...}; the legacy
  "customer_name": "company - name" label is still accepted
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import receipt_query_service, receipt_service
from ..validation import parse_bool, parse_int
from . import HANDLED_ERRORS, error_response


receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/receipts")


def _customer_from(data: dict):
    customer = data.get("customer")
    if customer is None:
        customer = data.get("customer_name")
    return customer


def _check_debt_from(data: dict) -> bool:
    value = data.get("check_debt")
    if value is None:
        return False
    return parse_bool(value, "check_debt", allow_strings=True)


@receipts_bp.post("/")
def create_receipt_route():
    """
    Record a sale.

    Request body:
    {
        "company_id": 1,
        "worker_id": 3,
        "customer": {"company": "Acme", "name": "Ada"},
        "products": [{"name": "Soap", "quantity": 2, "unit": "piece"}],
        "amount_paid": 100,
        "discount": 0,
        "check_debt": false,
        "payment_method": "cash"
    }

    Returns:
        201: receipt saved (debt opened when balance > 0)
        200: receipt saved, customer already owes from an earlier day
             (existing_debt set, no new debt)
        400: invalid input
        404: customer, worker, product or unit conversion not found
    """
    data = request.get_json(silent=True) or {}
    try:
        result = receipt_service.create_receipt(
            company_id=parse_int(data.get("company_id"), "company_id"),
            worker_id=parse_int(data.get("worker_id"), "worker_id"),
            customer=_customer_from(data),
            products=data.get("products"),
            amount_paid=data.get("amount_paid"),
            discount=data.get("discount"),
            check_debt=_check_debt_from(data),
            total=data.get("total"),
            payment_method=data.get("payment_method") or "cash",
        )
        body = result.to_dict()
        if result.existing_debt is not None:
            body["message"] = "Existing debt found"
            return jsonify(body), 200
        return jsonify(body), 201
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create receipt")
        return jsonify({"error": "Internal server error"}), 500


@receipts_bp.patch("/<receipt_id>")
def update_receipt_route(receipt_id: str):
    data = request.get_json(silent=True) or {}
    try:
        result = receipt_service.update_receipt(
            receipt_id,
            customer=_customer_from(data),
            products=data.get("products"),
            amount_paid=data.get("amount_paid"),
            discount=data.get("discount"),
            total=data.get("total"),
        )
        return jsonify(result.to_dict()), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update receipt %s", receipt_id)
        return jsonify({"error": "Internal server error"}), 500


@receipts_bp.patch("/<receipt_id>/flag")
def flag_receipt_route(receipt_id: str):
    """Request body: {"flagged": true, "company_id": 1}"""
    data = request.get_json(silent=True) or {}
    try:
        company_id = data.get("company_id")
        result = receipt_service.flag_receipt(
            receipt_id,
            data.get("flagged"),
            company_id=None if company_id is None else parse_int(company_id, "company_id"),
        )
        return jsonify(result.to_dict()), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to flag receipt %s", receipt_id)
        return jsonify({"error": "Internal server error"}), 500


@receipts_bp.delete("/<receipt_id>")
def delete_receipt_route(receipt_id: str):
    try:
        return jsonify(receipt_service.delete_receipt(receipt_id)), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete receipt %s", receipt_id)
        return jsonify({"error": "Internal server error"}), 500


@receipts_bp.get("/company/<int:company_id>")
def receipts_for_day_route(company_id: int):
    """Query params: date (ISO-8601, defaults to today)."""
    try:
        receipts = receipt_query_service.get_receipts_for_day(company_id, request.args.get("date"))
        return jsonify({"receipts": receipts}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list receipts")
        return jsonify({"error": "Internal server error"}), 500


@receipts_bp.get("/company/<int:company_id>/range")
def receipts_in_range_route(company_id: int):
    """
    Query params:
    - type=month&month=YYYY-MM
    - type=custom&start_date=...&end_date=...
    - nothing: current month
    """
    date_range = {
        "type": request.args.get("type"),
        "month": request.args.get("month"),
        "start_date": request.args.get("start_date"),
        "end_date": request.args.get("end_date"),
    }
    try:
        receipts = receipt_query_service.get_receipts_in_range(company_id, date_range)
        return jsonify({"receipts": receipts}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list receipts in range")
        return jsonify({"error": "Internal server error"}), 500
