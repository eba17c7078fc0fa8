# backend/tallypos/routes/inventory.py
"""
Inventory master data and supply routes.

onhand is never written from here directly: restock goes through the
inventory ledger like every sale does.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import inventory_service, unit_conversion_service
from ..validation import ValidationError, parse_int, parse_number
from . import HANDLED_ERRORS, error_response


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/")
def create_item_route():
    """
    Request body:
    {
        "company_id": 1,
        "name": "Soap",
        "base_unit": "box",
        "atomic_unit": "piece",        (optional)
        "conversion_factor": 12,       (optional, atomic units per base unit)
        "loss_factor": 0,              (optional, percent)
        "onhand": 10,
        "cost_price": 100,
        "sales_price": 120,
        "reorder_point": 0,
        "conversions": [{"to_unit": "piece", "conversion_rate": 12}]  (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        conversions = data.get("conversions") or []
        if not isinstance(conversions, list):
            raise ValidationError("conversions must be an array")

        item = inventory_service.create_item(
            parse_int(data.get("company_id"), "company_id"),
            data.get("name"),
            base_unit=data.get("base_unit") or "unit",
            atomic_unit=data.get("atomic_unit") or None,
            conversion_factor=parse_number(data.get("conversion_factor"), "conversion_factor", default=1.0),
            loss_factor=parse_number(data.get("loss_factor"), "loss_factor", default=0.0),
            onhand=parse_number(data.get("onhand"), "onhand", allow_negative=True, default=0.0),
            cost_price=parse_number(data.get("cost_price"), "cost_price", default=0.0),
            sales_price=parse_number(data.get("sales_price"), "sales_price", default=0.0),
            reorder_point=parse_number(data.get("reorder_point"), "reorder_point", default=0.0),
            conversions=conversions,
        )
        return jsonify({"item": item.to_dict()}), 201
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/company/<int:company_id>")
def list_items_route(company_id: int):
    items = inventory_service.list_items(company_id)
    return jsonify({"items": [i.to_dict() for i in items]}), 200


@inventory_bp.post("/<int:item_id>/restock")
def restock_route(item_id: int):
    """
    Receive supply: onhand += quantity, prices overwritten when given.

    Request body: {"quantity": 5, "cost_price": 90, "sales_price": 110, "note": "..."}
    """
    data = request.get_json(silent=True) or {}
    try:
        quantity = parse_number(data.get("quantity"), "quantity")
        cost_price = data.get("cost_price")
        sales_price = data.get("sales_price")
        advisory = inventory_service.restock(
            item_id,
            quantity,
            None if cost_price is None else parse_number(cost_price, "cost_price"),
            None if sales_price is None else parse_number(sales_price, "sales_price"),
            note=data.get("note"),
        )
        item = inventory_service.get_item(item_id)
        return jsonify({"item": item.to_dict(), "warnings": advisory.warnings}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to restock inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:item_id>/history")
def stock_history_route(item_id: int):
    try:
        limit = min(request.args.get("limit", 100, type=int), 500)
        rows = inventory_service.get_stock_history(item_id, limit=limit)
        return jsonify({"transactions": [r.to_dict() for r in rows]}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@inventory_bp.get("/<int:item_id>/breakdowns")
def breakdown_history_route(item_id: int):
    try:
        inventory_service.get_item(item_id)
        rows = unit_conversion_service.list_breakdowns(item_id)
        return jsonify({"breakdowns": [r.to_dict() for r in rows]}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@inventory_bp.post("/company/<int:company_id>/reorder-points")
def refresh_reorder_points_route(company_id: int):
    """Recompute reorder points from the last 30 days of unflagged sales."""
    try:
        rows = inventory_service.refresh_reorder_points(company_id)
        return jsonify({"items": rows}), 200
    except Exception:
        current_app.logger.exception("Failed to refresh reorder points")
        return jsonify({"error": "Internal server error"}), 500
