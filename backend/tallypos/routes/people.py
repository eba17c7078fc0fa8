# backend/tallypos/routes/people.py
"""
Customer and worker registration.

Receipts only ever look customers up; this is the one place they are created.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import people_service
from ..validation import parse_int
from . import HANDLED_ERRORS, error_response


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")
workers_bp = Blueprint("workers", __name__, url_prefix="/api/workers")


@customers_bp.post("/")
def create_customer_route():
    """
    Request body:
    {
        "company_id": 1,
        "name": "Ada",
        "company": "Acme",   (optional, the customer's own business)
        "phone": "...",      (optional)
        "email": "..."       (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        customer = people_service.create_customer(
            company_id=parse_int(data.get("company_id"), "company_id"),
            name=data.get("name"),
            company=data.get("company"),
            phone=data.get("phone"),
            email=data.get("email"),
        )
        return jsonify({"customer": customer.to_dict()}), 201
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/company/<int:company_id>")
def list_customers_route(company_id: int):
    customers = people_service.list_customers(company_id)
    return jsonify({"customers": [c.to_dict() for c in customers]}), 200


@workers_bp.post("/")
def create_worker_route():
    data = request.get_json(silent=True) or {}
    try:
        worker = people_service.create_worker(
            company_id=parse_int(data.get("company_id"), "company_id"),
            name=data.get("name"),
            role=data.get("role") or "worker",
        )
        return jsonify({"worker": worker.to_dict()}), 201
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create worker")
        return jsonify({"error": "Internal server error"}), 500


@workers_bp.get("/company/<int:company_id>")
def list_workers_route(company_id: int):
    workers = people_service.list_workers(company_id)
    return jsonify({"workers": [w.to_dict() for w in workers]}), 200
