# Overview: Inventory ledger: item master data plus every onhand mutation (deduct, restock, atomic adjust).

"""
Inventory ledger invariants (authoritative)

- InventoryItem.onhand changes ONLY through this module. Receipt create,
  edit, flag and delete call deduct()/restock()/adjust_atomic(); nothing
  else writes the column.
- Every mutation is a single relative update (onhand = onhand +/- qty).
- No floor: onhand may go negative. That is reported back as a
  StockAdvisory, never raised.
- restock() overwrites cost_price and sales_price (last write wins).
  Price history lives in StockTransaction rows, not on the item.
- Each mutation appends a StockTransaction in the caller's DB transaction.
- An unknown item is InventoryItemNotFoundError and aborts the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import InventoryItem, UnitConversion, StockTransaction, Notification
from ..validation import ConflictError, ValidationError, parse_number
from tallypos.time_utils import utcnow
from .concurrency import run_in_transaction
from .errors import InventoryItemNotFoundError, ProductNotFoundError
from . import stock_math


TX_INBOUND = "inbound"
TX_SALE = "sale"
TX_SALE_EDIT = "sale_edit"
TX_VOID = "void"
TX_UNVOID = "unvoid"
TX_RECEIPT_DELETED = "receipt_deleted"
TX_ATOMIC = "atomic"


@dataclass
class StockAdvisory:
    """Post-mutation stock state the caller may surface as a warning."""
    item_id: int
    name: str
    onhand: float
    reorder_point: float
    warnings: list[str] = field(default_factory=list)

    @property
    def is_negative(self) -> bool:
        return self.onhand < 0

    @property
    def below_reorder_point(self) -> bool:
        return self.reorder_point > 0 and self.onhand < self.reorder_point

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "onhand": self.onhand,
            "reorder_point": self.reorder_point,
            "warnings": list(self.warnings),
        }


# =============================================================================
# ITEM MASTER DATA
# =============================================================================

def get_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id) if item_id is not None else None
    if not item:
        raise InventoryItemNotFoundError(f"Inventory item {item_id} not found", details={"item_id": item_id})
    return item


def find_item_by_name(company_id: int, name: str) -> InventoryItem | None:
    """Case-insensitive, whitespace-trimmed name lookup within a tenant."""
    return db.session.query(InventoryItem).filter(
        InventoryItem.company_id == company_id,
        func.lower(InventoryItem.name) == name.strip().lower(),
    ).first()


def require_item_by_name(company_id: int, name: str) -> InventoryItem:
    item = find_item_by_name(company_id, name)
    if not item:
        raise ProductNotFoundError(
            f"Inventory item not found for product: {name}",
            details={"product": name},
        )
    return item


def list_items(company_id: int) -> list[InventoryItem]:
    return db.session.query(InventoryItem).filter_by(
        company_id=company_id,
    ).order_by(InventoryItem.name.asc()).all()


def _validate_conversions(base_unit: str, conversions: list[dict]) -> list[UnitConversion]:
    rows = []
    seen = set()
    for index, raw in enumerate(conversions):
        if not isinstance(raw, dict):
            raise ValidationError(f"conversions[{index}] must be an object")
        to_unit = raw.get("to_unit")
        if to_unit is not None and not isinstance(to_unit, str):
            raise ValidationError(f"conversions[{index}].to_unit must be a string")
        to_unit = (to_unit or "").strip()
        rate = raw.get("conversion_rate")
        if not to_unit:
            raise ValidationError(f"conversions[{index}].to_unit is required")
        if to_unit == base_unit:
            raise ValidationError(f"conversions[{index}].to_unit must differ from the base unit")
        if to_unit in seen:
            raise ValidationError(f"Duplicate conversion for unit {to_unit}")
        if isinstance(rate, bool) or not isinstance(rate, (int, float)) or rate <= 0:
            raise ValidationError(f"conversions[{index}].conversion_rate must be positive")
        seen.add(to_unit)
        sales_price = raw.get("sales_price")
        if sales_price is not None:
            sales_price = parse_number(sales_price, f"conversions[{index}].sales_price")
        rows.append(UnitConversion(
            from_unit=base_unit,
            to_unit=to_unit,
            conversion_rate=float(rate),
            sales_price=sales_price,
        ))
    return rows


def create_item(
    company_id: int,
    name: str,
    *,
    base_unit: str = "unit",
    atomic_unit: str | None = None,
    conversion_factor: float = 1.0,
    loss_factor: float = 0.0,
    onhand: float = 0.0,
    cost_price: float = 0.0,
    sales_price: float = 0.0,
    reorder_point: float = 0.0,
    conversions: list[dict] | None = None,
) -> InventoryItem:
    """
    Add a product. Names are unique per company, case-insensitively.

    When the item has an atomic unit and no explicit conversion for it, one
    is derived from conversion_factor.
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")
    if not isinstance(base_unit, str) or not base_unit.strip():
        raise ValidationError("base_unit is required")
    if atomic_unit is not None and not isinstance(atomic_unit, str):
        raise ValidationError("atomic_unit must be a string")
    if conversion_factor <= 0:
        raise ValidationError("conversion_factor must be positive")
    if loss_factor < 0 or loss_factor > 100:
        raise ValidationError("loss_factor must be between 0 and 100")

    if find_item_by_name(company_id, name):
        raise ConflictError(f"Product {name.strip()!r} already exists")

    base_unit = base_unit.strip()
    conversion_rows = _validate_conversions(base_unit, conversions or [])
    if atomic_unit and atomic_unit != base_unit and all(c.to_unit != atomic_unit for c in conversion_rows):
        conversion_rows.append(UnitConversion(
            from_unit=base_unit,
            to_unit=atomic_unit,
            conversion_rate=float(conversion_factor),
            sales_price=sales_price / conversion_factor if conversion_factor else None,
        ))

    item = InventoryItem(
        company_id=company_id,
        name=name.strip(),
        base_unit=base_unit,
        atomic_unit=atomic_unit,
        conversion_factor=conversion_factor,
        loss_factor=loss_factor,
        onhand=onhand,
        atomic_onhand=onhand * conversion_factor if atomic_unit else 0.0,
        cost_price=cost_price,
        sales_price=sales_price,
        reorder_point=reorder_point,
    )
    item.conversions = conversion_rows
    db.session.add(item)
    db.session.commit()
    return item


# =============================================================================
# LEDGER OPERATIONS
# =============================================================================

def _notify_reorder(item: InventoryItem, previous_onhand: float) -> None:
    if item.reorder_point <= 0:
        return
    if previous_onhand >= item.reorder_point > item.onhand:
        db.session.add(Notification(
            company_id=item.company_id,
            title="Reorder point reached",
            message=(
                f"Product {item.name} is below the reorder point. "
                f"Current stock: {item.onhand:g}, Reorder Point: {item.reorder_point:g}"
            ),
            type="warning",
        ))


def _advise(item: InventoryItem) -> StockAdvisory:
    advisory = StockAdvisory(
        item_id=item.id,
        name=item.name,
        onhand=item.onhand,
        reorder_point=item.reorder_point,
    )
    if advisory.is_negative:
        advisory.warnings.append(f"{item.name} onhand is negative ({item.onhand:g} {item.base_unit})")
    if advisory.below_reorder_point:
        advisory.warnings.append(f"{item.name} is below its reorder point")
    return advisory


def _apply_delta(
    item: InventoryItem,
    delta: float,
    tx_type: str,
    *,
    receipt_id: str | None = None,
    note: str | None = None,
) -> StockAdvisory:
    previous = item.onhand or 0.0
    item.onhand = previous + delta
    db.session.add(StockTransaction(
        inventory_id=item.id,
        type=tx_type,
        quantity_delta=delta,
        cost_price=item.cost_price,
        sales_price=item.sales_price,
        receipt_id=receipt_id,
        note=note,
        occurred_at=utcnow(),
    ))
    if delta < 0:
        _notify_reorder(item, previous)
    return _advise(item)


def _maybe_commit(func, commit: bool):
    if commit:
        return run_in_transaction(func)
    return func()


def deduct(
    item_id: int,
    base_qty: float,
    *,
    receipt_id: str | None = None,
    tx_type: str = TX_SALE,
    note: str | None = None,
    commit: bool = True,
) -> StockAdvisory:
    """onhand -= base_qty. A negative base_qty adds stock back."""
    def _op():
        item = get_item(item_id)
        return _apply_delta(item, -base_qty, tx_type, receipt_id=receipt_id, note=note)

    return _maybe_commit(_op, commit)


def restock(
    item_id: int,
    base_qty: float,
    new_cost_price: float | None,
    new_sales_price: float | None,
    *,
    receipt_id: str | None = None,
    tx_type: str = TX_INBOUND,
    note: str | None = None,
    commit: bool = True,
) -> StockAdvisory:
    """
    onhand += base_qty and overwrite prices.

    Receipt reversals pass None prices so the current prices stand.
    """
    def _op():
        item = get_item(item_id)
        if new_cost_price is not None:
            item.cost_price = new_cost_price
        if new_sales_price is not None:
            item.sales_price = new_sales_price
        return _apply_delta(item, base_qty, tx_type, receipt_id=receipt_id, note=note)

    return _maybe_commit(_op, commit)


def adjust_atomic(
    item_id: int,
    atomic_qty: float,
    *,
    receipt_id: str | None = None,
    note: str | None = None,
    commit: bool = True,
) -> InventoryItem:
    """atomic_onhand += atomic_qty (signed)."""
    def _op():
        item = get_item(item_id)
        item.atomic_onhand = (item.atomic_onhand or 0.0) + atomic_qty
        db.session.add(StockTransaction(
            inventory_id=item.id,
            type=TX_ATOMIC,
            quantity_delta=atomic_qty,
            receipt_id=receipt_id,
            note=note,
            occurred_at=utcnow(),
        ))
        return item

    return _maybe_commit(_op, commit)


def get_stock_history(item_id: int, limit: int = 100) -> list[StockTransaction]:
    get_item(item_id)
    return db.session.query(StockTransaction).filter_by(
        inventory_id=item_id,
    ).order_by(StockTransaction.occurred_at.desc(), StockTransaction.id.desc()).limit(limit).all()


# =============================================================================
# REPLENISHMENT
# =============================================================================

def refresh_reorder_points(
    company_id: int,
    *,
    lead_time_days: float = 7,
    demand_std_dev: float = 5,
    lead_time_std_dev: float = 2,
    order_cost: float = 50,
    holding_rate: float = 0.1,
    window_days: int = 30,
) -> list[dict]:
    """
    Recompute reorder_point for every item from recent unflagged sales.

    Writes a Notification for each item whose onhand is already below the
    new reorder point.
    """
    from .receipt_query_service import average_daily_sales

    def _op():
        rows = []
        for item in list_items(company_id):
            daily = average_daily_sales(item, days=window_days)
            safety = stock_math.safety_stock(lead_time_days, demand_std_dev, daily, lead_time_std_dev)
            point = stock_math.reorder_point(daily, lead_time_days, safety)
            eoq = stock_math.economic_order_quantity(daily * 365, order_cost, holding_rate * (item.cost_price or 0.0))

            item.reorder_point = point
            if item.onhand < point:
                db.session.add(Notification(
                    company_id=company_id,
                    title="Reorder point reached",
                    message=(
                        f"Product {item.name} is below the reorder point. "
                        f"Current stock: {item.onhand:g}, Reorder Point: {point:.2f}"
                    ),
                    type="warning",
                ))
            rows.append({
                "item_id": item.id,
                "name": item.name,
                "average_daily_sales": daily,
                "safety_stock": safety,
                "reorder_point": point,
                "eoq": eoq,
                "onhand": item.onhand,
            })
        return rows

    rows = run_in_transaction(_op)
    current_app.logger.info("Refreshed reorder points for %d items in company %s", len(rows), company_id)
    return rows
