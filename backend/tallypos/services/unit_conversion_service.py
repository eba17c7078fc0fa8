# Overview: Sale-unit resolution: converts a requested unit/quantity into base units, price and breakdown loss.

"""
Unit conversion rules (authoritative)

- A line sold in the item's base unit (or with no unit, or the "none"
  sentinel) is not converted: conversion_rate = 1, loss = 0.
- Any other unit must have a UnitConversion row for (item, to_unit). The
  lookup is case-sensitive; callers normalise unit strings.
- conversion_rate is to_unit per base unit, so
    base_quantity = requested_quantity / conversion_rate
    line_total    = item.sales_price * base_quantity
- Breaking a base unit down costs loss_factor percent of the line total.
- Every conversion appends a BreakdownHistory row and stamps
  item.last_breakdown_at. Neither touches onhand.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import InventoryItem, UnitConversion, BreakdownHistory
from tallypos.time_utils import utcnow
from .errors import ConversionNotFoundError


NO_UNIT_SENTINEL = "none"


@dataclass(frozen=True)
class ResolvedLine:
    quantity_in_base_unit: float
    quantity_in_atomic_unit: float
    conversion_rate: float
    sales_price_per_base_unit: float
    total_price: float
    loss: float
    needs_conversion: bool
    original_unit: str
    original_quantity: float


def needs_conversion(item: InventoryItem, unit: str | None) -> bool:
    return bool(unit) and unit != item.base_unit and unit != NO_UNIT_SENTINEL


def find_conversion(item: InventoryItem, unit: str) -> UnitConversion:
    conversion = db.session.query(UnitConversion).filter_by(
        inventory_id=item.id,
        to_unit=unit,
    ).first()
    if not conversion:
        raise ConversionNotFoundError(
            f"No conversion found for unit {unit} in product {item.name}",
            details={"product": item.name, "unit": unit},
        )
    return conversion


def record_breakdown(
    item: InventoryItem,
    to_unit: str,
    quantity: float,
    loss: float,
    note: str = "Breakdown for sale",
) -> BreakdownHistory:
    now = utcnow()
    entry = BreakdownHistory(
        inventory_id=item.id,
        occurred_at=now,
        from_unit=item.base_unit,
        to_unit=to_unit,
        quantity=quantity,
        loss=loss,
        note=note,
    )
    db.session.add(entry)
    item.last_breakdown_at = now
    return entry


def _atomic_quantity(item: InventoryItem, base_quantity: float, requested_quantity: float) -> float:
    """
    Atomic units are always base_quantity * conversion_factor, never the
    requested quantity scaled by the sale unit's own rate, so 1 piece of a
    12-piece box is exactly 1 atomic unit whichever conversion row priced it.
    """
    if item.atomic_unit and item.conversion_factor:
        return base_quantity * item.conversion_factor
    return requested_quantity


def resolve_sale_unit(
    item: InventoryItem,
    unit: str | None,
    quantity: float,
    requested_total_price: float | None = None,
) -> ResolvedLine:
    """
    Resolve one sale line against an inventory item.

    Raises:
        ConversionNotFoundError: unit needs conversion and the item has none for it
    """
    if not needs_conversion(item, unit):
        if requested_total_price is not None:
            total = requested_total_price
        else:
            total = (item.sales_price or 0.0) * quantity
        return ResolvedLine(
            quantity_in_base_unit=quantity,
            quantity_in_atomic_unit=_atomic_quantity(item, quantity, quantity),
            conversion_rate=1.0,
            sales_price_per_base_unit=total / quantity if quantity else 0.0,
            total_price=total,
            loss=0.0,
            needs_conversion=False,
            original_unit=item.base_unit,
            original_quantity=quantity,
        )

    conversion = find_conversion(item, unit)
    rate = conversion.conversion_rate
    base_quantity = quantity / rate
    total = (item.sales_price or 0.0) * base_quantity

    loss = 0.0
    if item.loss_factor and item.loss_factor > 0:
        loss = total * item.loss_factor / 100

    record_breakdown(item, unit, quantity, loss)

    return ResolvedLine(
        quantity_in_base_unit=base_quantity,
        quantity_in_atomic_unit=_atomic_quantity(item, base_quantity, quantity),
        conversion_rate=rate,
        sales_price_per_base_unit=total / base_quantity if base_quantity else 0.0,
        total_price=total,
        loss=loss,
        needs_conversion=True,
        original_unit=unit,
        original_quantity=quantity,
    )


def list_breakdowns(inventory_id: int) -> list[BreakdownHistory]:
    return db.session.query(BreakdownHistory).filter_by(
        inventory_id=inventory_id,
    ).order_by(BreakdownHistory.occurred_at.desc(), BreakdownHistory.id.desc()).all()
