# Overview: Receipt lifecycle: create, edit, flag/unflag and delete, each as one atomic unit of work.

"""
Receipt Transaction Engine

LIFECYCLE: CREATED -> EDITED* -> FLAGGED <-> UNFLAGGED -> DELETED

RULES:
- Every operation runs inside run_in_transaction: receipt, details, debt and
  inventory changes land together or not at all
- Customers and workers are looked up, never created here
- Line totals come from the unit conversion resolver; the client total is
  only a fallback when the computed total is zero
- balance = total - amount_paid - discount after create and update
- onhand moves only through inventory_service (deduct/restock/adjust_atomic)
- Flagging reverses each line's stock effect, unflagging re-applies it;
  asking for the state the receipt is already in changes nothing
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Receipt, ReceiptDetail, Debt, InventoryItem
from ..models.debts import DEBT_STATUS_PENDING
from ..validation import parse_bool, parse_customer_ref, parse_number, parse_products
from tallypos.time_utils import start_of_day, utcnow
from .concurrency import lock_for_update, run_in_transaction
from .errors import ReceiptNotFoundError
from .inventory_service import (
    StockAdvisory,
    TX_RECEIPT_DELETED,
    TX_SALE,
    TX_SALE_EDIT,
    TX_UNVOID,
    TX_VOID,
    adjust_atomic,
    deduct,
    find_item_by_name,
    require_item_by_name,
    restock,
)
from .people_service import find_customer, require_worker
from .receipt_query_service import receipt_view
from .unit_conversion_service import ResolvedLine, resolve_sale_unit


@dataclass
class ReceiptResult:
    """
    Outcome of a receipt write.

    existing_debt is set only when the debt gate fired: the receipt was
    saved but no new debt was opened for it.
    """
    receipt: Receipt
    existing_debt: Debt | None = None
    advisories: list[StockAdvisory] = field(default_factory=list)

    def to_dict(self) -> dict:
        warnings = [w for advisory in self.advisories for w in advisory.warnings]
        return {
            "receipt": receipt_view(self.receipt),
            "existing_debt": self.existing_debt.to_dict() if self.existing_debt else None,
            "warnings": warnings,
        }


@dataclass
class _PricedLine:
    item: InventoryItem
    resolved: ResolvedLine

    @property
    def key(self) -> str:
        return self.item.name.strip().lower()

    @property
    def atomic_delta(self) -> float:
        # Atomic stock only moves for lines sold in a broken-down unit
        if self.resolved.needs_conversion and self.item.atomic_unit:
            return self.resolved.quantity_in_atomic_unit
        return 0.0

    @property
    def profit(self) -> float:
        r = self.resolved
        return (r.sales_price_per_base_unit - (self.item.cost_price or 0.0)) * r.quantity_in_base_unit - r.loss


# =============================================================================
# PRICING
# =============================================================================

def _price_lines(company_id: int, lines) -> list[_PricedLine]:
    """Resolve every line; the first unknown product or unit aborts the whole receipt."""
    priced = []
    for line in lines:
        item = require_item_by_name(company_id, line.name)
        resolved = resolve_sale_unit(item, line.unit, line.quantity, line.total_price)
        priced.append(_PricedLine(item=item, resolved=resolved))
    return priced


def _build_detail(line: _PricedLine) -> ReceiptDetail:
    r = line.resolved
    return ReceiptDetail(
        inventory_id=line.item.id,
        name=line.item.name,
        quantity=r.quantity_in_base_unit,
        atomic_quantity=r.quantity_in_atomic_unit,
        cost_price=line.item.cost_price or 0.0,
        sales_price=r.sales_price_per_base_unit,
        total_price=r.total_price,
        conversion_rate=r.conversion_rate,
        needs_conversion=r.needs_conversion,
        original_unit=r.original_unit,
        original_quantity=r.original_quantity,
        atomic_unit=line.item.atomic_unit,
        loss=r.loss,
    )


def _apply_totals(
    receipt: Receipt,
    priced: list[_PricedLine],
    amount_paid: float,
    discount: float,
    fallback_total: float | None,
) -> None:
    calculated_total = sum(p.resolved.total_price for p in priced)
    receipt.total = calculated_total or fallback_total or 0.0
    receipt.amount_paid = amount_paid
    receipt.discount = discount
    receipt.balance = receipt.total - amount_paid - discount
    receipt.profit = sum(p.profit for p in priced)
    receipt.includes_unit_breakdown = any(p.resolved.needs_conversion for p in priced)


def _open_debt(receipt: Receipt) -> Debt:
    debt = Debt(
        company_id=receipt.company_id,
        worker_id=receipt.worker_id,
        customer_id=receipt.customer_id,
        receipt_id=receipt.id,
        amount=receipt.balance,
        status=DEBT_STATUS_PENDING,
    )
    db.session.add(debt)
    db.session.flush()
    receipt.debt_id = debt.id
    return debt


def find_prior_unpaid_debt(company_id: int, customer_id: int) -> Debt | None:
    """Oldest pending debt of the customer opened before today on an unflagged (or no) receipt."""
    today = start_of_day(utcnow())
    return db.session.query(Debt).outerjoin(Receipt, Debt.receipt_id == Receipt.id).filter(
        Debt.company_id == company_id,
        Debt.customer_id == customer_id,
        Debt.status == DEBT_STATUS_PENDING,
        Debt.created_at < today,
        or_(Receipt.id.is_(None), Receipt.flagged.is_(False)),
    ).order_by(Debt.created_at.asc(), Debt.id.asc()).first()


# =============================================================================
# CREATE
# =============================================================================

def create_receipt(
    company_id: int,
    worker_id: int,
    customer,
    products,
    amount_paid=0.0,
    discount=0.0,
    check_debt: bool = False,
    total=None,
    payment_method: str = "cash",
) -> ReceiptResult:
    """
    Record a sale.

    Args:
        customer: {"company", "name"} or the legacy "company - name" label
        products: non-empty list of {name, quantity, unit?, total_price?}
        check_debt: when True and the customer already owes on a debt from
            an earlier day, the receipt is saved without opening a new debt
            and the existing debt is returned instead

    Raises:
        ValidationError: malformed payload, raised before any DB access
        CustomerNotFoundError, WorkerNotFoundError, ProductNotFoundError,
        ConversionNotFoundError: nothing is written
    """
    lines = parse_products(products)
    customer_ref = parse_customer_ref(customer)
    paid = parse_number(amount_paid, "amount_paid", default=0.0)
    discount_value = parse_number(discount, "discount", default=0.0)
    fallback_total = None if total is None else parse_number(total, "total")

    def _op():
        found_customer = find_customer(company_id, customer_ref)
        worker = require_worker(company_id, worker_id)
        priced = _price_lines(company_id, lines)

        receipt = Receipt(
            id=str(uuid.uuid4()),
            company_id=company_id,
            customer_id=found_customer.id,
            worker_id=worker.id,
            payment_method=payment_method or "cash",
            flagged=False,
        )
        _apply_totals(receipt, priced, paid, discount_value, fallback_total)
        receipt.details = [_build_detail(p) for p in priced]
        db.session.add(receipt)
        db.session.flush()

        advisories = []
        for line in priced:
            advisories.append(deduct(
                line.item.id,
                line.resolved.quantity_in_base_unit,
                receipt_id=receipt.id,
                tx_type=TX_SALE,
                commit=False,
            ))
            if line.atomic_delta:
                adjust_atomic(line.item.id, -line.atomic_delta, receipt_id=receipt.id, commit=False)

        existing_debt = None
        if check_debt:
            existing_debt = find_prior_unpaid_debt(company_id, found_customer.id)

        if existing_debt is None and receipt.balance > 0:
            _open_debt(receipt)

        return ReceiptResult(receipt=receipt, existing_debt=existing_debt, advisories=advisories)

    return run_in_transaction(_op)


# =============================================================================
# UPDATE
# =============================================================================

def _item_for_detail(company_id: int, detail: ReceiptDetail) -> InventoryItem | None:
    if detail.inventory_id is not None:
        item = db.session.get(InventoryItem, detail.inventory_id)
        if item and item.company_id == company_id:
            return item
    return find_item_by_name(company_id, detail.name)


def _apply_edit_deltas(receipt: Receipt, priced: list[_PricedLine]) -> list[StockAdvisory]:
    """
    Move stock by (new - old) base quantity per product name.

    Products dropped from the edit are restocked in full; products whose
    inventory row no longer exists are skipped.
    """
    old_base = defaultdict(float)
    old_atomic = defaultdict(float)
    old_details = {}
    for detail in receipt.details:
        key = detail.name.strip().lower()
        old_base[key] += detail.quantity or 0.0
        if detail.needs_conversion and detail.atomic_unit:
            old_atomic[key] += detail.atomic_quantity or 0.0
        old_details.setdefault(key, detail)

    new_base = defaultdict(float)
    new_atomic = defaultdict(float)
    items = {}
    for line in priced:
        new_base[line.key] += line.resolved.quantity_in_base_unit
        new_atomic[line.key] += line.atomic_delta
        items[line.key] = line.item

    advisories = []
    for key in sorted(set(old_base) | set(new_base)):
        delta = new_base[key] - old_base[key]
        atomic_delta = new_atomic[key] - old_atomic[key]
        if not delta and not atomic_delta:
            continue

        item = items.get(key) or _item_for_detail(receipt.company_id, old_details[key])
        if item is None:
            current_app.logger.warning(
                "Receipt %s edit: inventory item %r no longer exists; stock not adjusted",
                receipt.id, old_details[key].name,
            )
            continue

        if delta:
            advisories.append(deduct(item.id, delta, receipt_id=receipt.id, tx_type=TX_SALE_EDIT, commit=False))
        if atomic_delta:
            adjust_atomic(item.id, -atomic_delta, receipt_id=receipt.id, commit=False)
    return advisories


def _reconcile_debt(receipt: Receipt) -> None:
    """
    (has debt, balance > 0):
      (yes, yes) -> debt.amount = balance
      (no,  yes) -> open a debt and link it
      (yes, no)  -> delete the debt and clear the link
    """
    debt = db.session.get(Debt, receipt.debt_id) if receipt.debt_id else None

    if receipt.balance > 0:
        if debt:
            debt.amount = receipt.balance
            debt.customer_id = receipt.customer_id
            debt.status = DEBT_STATUS_PENDING
        else:
            _open_debt(receipt)
    elif debt:
        db.session.delete(debt)
        receipt.debt_id = None
    else:
        receipt.debt_id = None


def update_receipt(
    receipt_id: str,
    customer,
    products,
    amount_paid=0.0,
    discount=0.0,
    total=None,
) -> ReceiptResult:
    """
    Replace a receipt's lines and totals, keeping its id.

    Stock moves by the net difference per product. A flagged receipt's
    stock effect is already reversed, so editing it moves no stock.

    Raises:
        ValidationError, ReceiptNotFoundError, CustomerNotFoundError,
        ProductNotFoundError, ConversionNotFoundError
    """
    lines = parse_products(products)
    customer_ref = parse_customer_ref(customer)
    paid = parse_number(amount_paid, "amount_paid", default=0.0)
    discount_value = parse_number(discount, "discount", default=0.0)
    fallback_total = None if total is None else parse_number(total, "total")

    def _op():
        receipt = lock_for_update(db.session.query(Receipt).filter_by(id=receipt_id)).first()
        if not receipt:
            raise ReceiptNotFoundError("Receipt not found", details={"receipt_id": receipt_id})

        found_customer = find_customer(receipt.company_id, customer_ref)
        priced = _price_lines(receipt.company_id, lines)

        advisories = []
        if not receipt.flagged:
            advisories = _apply_edit_deltas(receipt, priced)

        receipt.customer_id = found_customer.id
        _apply_totals(receipt, priced, paid, discount_value, fallback_total)
        receipt.details = [_build_detail(p) for p in priced]
        db.session.flush()

        _reconcile_debt(receipt)
        return ReceiptResult(receipt=receipt, advisories=advisories)

    return run_in_transaction(_op)


# =============================================================================
# FLAG / UNFLAG
# =============================================================================

def flag_receipt(receipt_id: str, flagged, company_id: int | None = None) -> ReceiptResult:
    """
    Void (flagged=True) or reinstate (flagged=False) a receipt.

    Voiding restocks each line's base quantity; reinstating deducts it
    again. Debts and payments are not touched.
    """
    target = parse_bool(flagged, "flagged")

    def _op():
        query = db.session.query(Receipt).filter_by(id=receipt_id)
        if company_id is not None:
            query = query.filter_by(company_id=company_id)
        receipt = lock_for_update(query).first()
        if not receipt:
            raise ReceiptNotFoundError("Receipt not found", details={"receipt_id": receipt_id})

        if receipt.flagged == target:
            return ReceiptResult(receipt=receipt)

        advisories = []
        for detail in receipt.details:
            item = _item_for_detail(receipt.company_id, detail)
            if item is None:
                current_app.logger.warning(
                    "Receipt %s: inventory item %r not found; line skipped",
                    receipt.id, detail.name,
                )
                continue

            if target:
                advisories.append(restock(
                    item.id, detail.quantity, None, None,
                    receipt_id=receipt.id, tx_type=TX_VOID, commit=False,
                ))
            else:
                advisories.append(deduct(
                    item.id, detail.quantity,
                    receipt_id=receipt.id, tx_type=TX_UNVOID, commit=False,
                ))

            if detail.needs_conversion and detail.atomic_unit and detail.atomic_quantity:
                atomic = detail.atomic_quantity if target else -detail.atomic_quantity
                adjust_atomic(item.id, atomic, receipt_id=receipt.id, commit=False)

        receipt.flagged = target
        current_app.logger.info("Receipt %s %s", receipt.id, "flagged" if target else "unflagged")
        return ReceiptResult(receipt=receipt, advisories=advisories)

    return run_in_transaction(_op)


# =============================================================================
# DELETE
# =============================================================================

def delete_receipt(receipt_id: str) -> dict:
    """
    Delete a receipt with its details and linked debt.

    Stock is restored only with RESTORE_INVENTORY_ON_DELETE enabled and
    only for unflagged receipts (a flagged receipt was already restocked).
    """
    def _op():
        receipt = lock_for_update(db.session.query(Receipt).filter_by(id=receipt_id)).first()
        if not receipt:
            raise ReceiptNotFoundError("Receipt not found", details={"receipt_id": receipt_id})

        restore = bool(current_app.config.get("RESTORE_INVENTORY_ON_DELETE")) and not receipt.flagged
        if restore:
            for detail in receipt.details:
                item = _item_for_detail(receipt.company_id, detail)
                if item is None:
                    continue
                restock(
                    item.id, detail.quantity, None, None,
                    receipt_id=receipt.id, tx_type=TX_RECEIPT_DELETED, commit=False,
                )

        debt_filter = Debt.receipt_id == receipt.id
        if receipt.debt_id is not None:
            debt_filter = or_(debt_filter, Debt.id == receipt.debt_id)
        for debt in db.session.query(Debt).filter(debt_filter).all():
            db.session.delete(debt)

        db.session.delete(receipt)
        return {"message": "Receipt deleted successfully", "inventory_restored": restore}

    return run_in_transaction(_op)
