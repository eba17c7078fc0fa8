# Overview: Read-side projections over receipts, details, debts, customers and workers.

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Receipt, ReceiptDetail, Debt, DebtPayment, InventoryItem
from ..validation import ValidationError
from tallypos.time_utils import parse_iso_datetime, utcnow, to_utc_z, day_bounds, month_bounds, start_of_day
from .errors import DebtNotFoundError


def _parse_date(value, field: str = "date") -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(value)
    except (AttributeError, TypeError, ValueError):
        raise ValidationError(f"Invalid {field} parameter")


def detail_view(detail: ReceiptDetail) -> dict:
    """
    Line item as shown on a receipt.

    The stored sales_price is per base unit; the displayed price is per sale
    unit: sales_price * conversion_rate (rate defaults to 1). It is not
    re-validated against total_price.
    """
    conversion_rate = detail.conversion_rate or 1
    price_per_sales_unit = detail.sales_price * conversion_rate
    view = detail.to_dict()
    view["base_sales_price"] = detail.sales_price
    view["sales_price"] = price_per_sales_unit
    view["price"] = price_per_sales_unit
    return view


def receipt_view(receipt: Receipt) -> dict:
    customer = receipt.customer
    worker = receipt.worker
    return {
        "id": receipt.id,
        "company_id": receipt.company_id,
        "worker_name": worker.name if worker else None,
        "customer_name": customer.name if customer else "Unknown",
        "customer_company": customer.company if customer else None,
        "detail": [detail_view(d) for d in receipt.details],
        "total": receipt.total,
        "amount_paid": receipt.amount_paid,
        "discount": receipt.discount,
        "profit": receipt.profit,
        "balance": receipt.balance,
        "payment_method": receipt.payment_method,
        "flagged": receipt.flagged,
        "debt_id": receipt.debt_id,
        "date": to_utc_z(receipt.created_at),
    }


def get_receipts_for_day(company_id: int, date=None) -> list[dict]:
    """All receipts (flagged included) created on the given day; defaults to today."""
    day = _parse_date(date) or utcnow()
    start, next_start = day_bounds(day)

    receipts = db.session.query(Receipt).filter(
        Receipt.company_id == company_id,
        Receipt.created_at >= start,
        Receipt.created_at < next_start,
    ).order_by(Receipt.created_at.asc()).all()
    return [receipt_view(r) for r in receipts]


def _resolve_range(date_range: dict | None) -> tuple[datetime, datetime]:
    """
    {"type": "month", "month": "YYYY-MM"} or
    {"type": "custom", "start_date": ..., "end_date": ...};
    anything else is the current calendar month. Custom end dates include
    the whole end day.
    """
    if date_range:
        kind = date_range.get("type")
        if kind == "month" and date_range.get("month"):
            try:
                year, month = (int(part) for part in str(date_range["month"]).split("-", 1))
                return month_bounds(year, month)
            except ValueError:
                raise ValidationError("Invalid date range format")
        if kind == "custom" and date_range.get("start_date") and date_range.get("end_date"):
            start = _parse_date(date_range["start_date"], "start_date")
            end = _parse_date(date_range["end_date"], "end_date")
            _, end_next = day_bounds(end)
            return start, end_next - timedelta(microseconds=1)

    now = utcnow()
    return month_bounds(now.year, now.month)


def get_receipts_in_range(company_id: int, date_range: dict | None = None) -> list[dict]:
    """Unflagged receipts in a month or custom range."""
    start, end = _resolve_range(date_range)
    receipts = db.session.query(Receipt).filter(
        Receipt.company_id == company_id,
        Receipt.created_at >= start,
        Receipt.created_at <= end,
        Receipt.flagged.is_(False),
    ).order_by(Receipt.created_at.asc()).all()
    return [receipt_view(r) for r in receipts]


def get_debts(company_id: int, date=None, show_all_debtors: bool = False) -> list[dict]:
    """
    Outstanding debts, newest first.

    Debts below DEBT_SETTLED_THRESHOLD count as settled and debts on flagged
    receipts are hidden. With a date and without show_all_debtors, only debts
    created from the start of that day until now are listed.
    """
    threshold = current_app.config.get("DEBT_SETTLED_THRESHOLD", 0.1)

    query = db.session.query(Debt).outerjoin(Receipt, Debt.receipt_id == Receipt.id).filter(
        Debt.company_id == company_id,
        Debt.amount >= threshold,
        or_(Receipt.id.is_(None), Receipt.flagged.is_(False)),
    )

    if not show_all_debtors and date is not None:
        start = _parse_date(date)
        if start is not None:
            query = query.filter(
                Debt.created_at >= start_of_day(start),
                Debt.created_at <= utcnow(),
            )

    debts = query.order_by(Debt.created_at.desc(), Debt.id.desc()).all()
    return [
        {
            "id": debt.id,
            "worker_name": debt.worker.name if debt.worker else None,
            "customer_name": debt.customer.name if debt.customer else None,
            "customer_company": debt.customer.company if debt.customer else None,
            "contact": debt.customer.phone if debt.customer else None,
            "amount": debt.amount,
            "date": to_utc_z(debt.created_at),
            "balance": debt.amount,
            "receipt_id": debt.receipt_id,
        }
        for debt in debts
    ]


def get_debt_receipt(debt_id: int) -> dict:
    """Receipt view addressed by the debt that carries its balance."""
    debt = db.session.get(Debt, debt_id)
    if not debt:
        raise DebtNotFoundError("Debt not found", details={"debt_id": debt_id})

    receipt = db.session.get(Receipt, debt.receipt_id) if debt.receipt_id else None
    customer = debt.customer
    return {
        "id": debt.id,
        "receipt_id": debt.receipt_id,
        "worker_name": debt.worker.name if debt.worker else None,
        "customer_name": (customer.company or customer.name) if customer else None,
        "detail": [detail_view(d) for d in receipt.details] if receipt else [],
        "total": receipt.total if receipt else None,
        "amount_paid": receipt.amount_paid if receipt else None,
        "discount": receipt.discount if receipt else None,
        "balance": receipt.balance if receipt else debt.amount,
        "date": to_utc_z(debt.created_at),
    }


def get_debt_payments(debt_id: int) -> list[dict]:
    """Payment history of one debt, oldest first."""
    if not db.session.get(Debt, debt_id):
        raise DebtNotFoundError("Debt not found", details={"debt_id": debt_id})

    payments = db.session.query(DebtPayment).filter_by(
        debt_id=debt_id,
    ).order_by(DebtPayment.occurred_at.asc(), DebtPayment.id.asc()).all()
    return [
        {
            "date": to_utc_z(p.occurred_at),
            "amount_paid": p.amount_paid,
            "worker_name": p.worker.name if p.worker else "Unknown Worker",
            "payment_method": p.payment_method,
        }
        for p in payments
    ]


def get_sales_analytics(company_id: int, start=None, end=None) -> dict:
    """
    Sales KPIs over [start, end]; defaults to the last 30 days.

    Flagged receipts are voided sales and are left out.
    hourly_analytics counts receipts per hour of day (0-23);
    weekday_analytics counts per weekday with Sunday = 0.
    """
    end_dt = _parse_date(end, "end_date") or utcnow()
    start_dt = _parse_date(start, "start_date") or (end_dt - timedelta(days=30))

    receipts = db.session.query(Receipt).filter(
        Receipt.company_id == company_id,
        Receipt.created_at >= start_dt,
        Receipt.created_at <= end_dt,
        Receipt.flagged.is_(False),
    ).all()

    total_sales = sum(r.total or 0.0 for r in receipts)
    payment_methods: dict[str, float] = {}
    hourly = [0] * 24
    weekday = [0] * 7
    for receipt in receipts:
        method = receipt.payment_method or "unknown"
        payment_methods[method] = payment_methods.get(method, 0.0) + (receipt.total or 0.0)
        hourly[receipt.created_at.hour] += 1
        weekday[receipt.created_at.isoweekday() % 7] += 1

    return {
        "total_sales": total_sales,
        "average_ticket": total_sales / len(receipts) if receipts else 0.0,
        "transaction_count": len(receipts),
        "payment_methods": payment_methods,
        "hourly_analytics": hourly,
        "weekday_analytics": weekday,
    }


def average_daily_sales(item: InventoryItem, days: int = 30) -> float:
    """Base units of the item sold per day over the last `days` days (unflagged receipts)."""
    since = utcnow() - timedelta(days=days)
    total = db.session.query(
        func.coalesce(func.sum(ReceiptDetail.quantity), 0.0)
    ).join(Receipt, ReceiptDetail.receipt_id == Receipt.id).filter(
        Receipt.company_id == item.company_id,
        Receipt.flagged.is_(False),
        Receipt.created_at >= since,
        or_(
            ReceiptDetail.inventory_id == item.id,
            (ReceiptDetail.inventory_id.is_(None)) & (func.lower(ReceiptDetail.name) == item.name.lower()),
        ),
    ).scalar()
    return float(total or 0.0) / days if days else 0.0
