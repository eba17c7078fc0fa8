# Overview: Debt payments: settle the target debt, then sweep any overpayment across the customer's older debts.

"""
Debt Settlement

ALGORITHM (greedy, oldest first):
1. Record a DebtPayment for the full amount against the target debt
2. Settle the target debt; the overpayment is the remainder
3. Move the cleared amount onto the target's receipt
   (balance -= cleared, amount_paid += cleared); cleared is applied plus
   any sub-epsilon residue written off with it
4. Walk the customer's other debts with amount > 0 on unflagged receipts,
   oldest first, applying min(remainder, debt.amount) to each and moving
   the receipt in lockstep, until the remainder is spent
5. All of it is one transaction

A debt counts as paid once less than SETTLED_EPSILON remains; exact float
equality is never used for status.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import or_

from ..extensions import db
from ..models import Debt, DebtPayment, Receipt
from ..models.debts import DEBT_STATUS_PAID, DEBT_STATUS_PENDING
from ..validation import ValidationError, parse_number
from tallypos.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .errors import DebtNotFoundError
from .people_service import require_worker


SETTLED_EPSILON = 0.01


@dataclass(frozen=True)
class Allocation:
    debt_id: int
    receipt_id: str | None
    applied: float
    remaining: float
    status: str

    def to_dict(self) -> dict:
        return {
            "debt_id": self.debt_id,
            "receipt_id": self.receipt_id,
            "applied": self.applied,
            "remaining": self.remaining,
            "status": self.status,
        }


def _settle(debt: Debt, applied: float) -> float:
    """
    Reduce the debt by applied and return how much it actually went down.

    A remainder below SETTLED_EPSILON is written off with it, so the return
    value can exceed applied by that residue.
    """
    owed = debt.amount or 0.0
    remaining = owed - applied
    if remaining < SETTLED_EPSILON:
        debt.amount = 0.0
        debt.status = DEBT_STATUS_PAID
    else:
        debt.amount = remaining
        debt.status = DEBT_STATUS_PENDING
    return owed - debt.amount


def _move_receipt(receipt_id: str | None, applied: float) -> None:
    if not receipt_id or not applied:
        return
    receipt = db.session.get(Receipt, receipt_id)
    if receipt is None:
        return
    receipt.balance = (receipt.balance or 0.0) - applied
    receipt.amount_paid = (receipt.amount_paid or 0.0) + applied


def _other_open_debts(debt: Debt) -> list[Debt]:
    """The customer's other debts still owing on unflagged receipts, oldest first."""
    query = db.session.query(Debt).outerjoin(Receipt, Debt.receipt_id == Receipt.id).filter(
        Debt.customer_id == debt.customer_id,
        Debt.company_id == debt.company_id,
        Debt.id != debt.id,
        Debt.amount > 0,
        or_(Receipt.id.is_(None), Receipt.flagged.is_(False)),
    ).order_by(Debt.created_at.asc(), Debt.id.asc())
    return lock_for_update(query).all()


def make_payment(debt_id: int, amount, worker_id, payment_method: str | None = None) -> dict:
    """
    Apply a customer payment to a debt.

    Args:
        debt_id: Debt the customer is paying
        amount: Money received; anything beyond the debt pays older debts
        worker_id: Worker taking the payment
        payment_method: cash, transfer, ...

    Returns:
        {id, customer_name, customer_company, total_amount, amount_paid,
         balance, allocations, unallocated}

    Raises:
        ValidationError: amount missing or not positive, worker_id missing
        DebtNotFoundError: unknown debt; nothing is written
    """
    if amount is None or worker_id is None or worker_id == "":
        raise ValidationError("amount and worker_id are required")
    payment = parse_number(amount, "amount")
    if payment <= 0:
        raise ValidationError("amount must be positive")

    def _op():
        debt = lock_for_update(db.session.query(Debt).filter_by(id=debt_id)).first()
        if not debt:
            raise DebtNotFoundError("Debt not found", details={"debt_id": debt_id})
        worker = require_worker(debt.company_id, worker_id)
        now = utcnow()

        db.session.add(DebtPayment(
            debt_id=debt.id,
            occurred_at=now,
            amount_paid=payment,
            worker_id=worker.id,
            payment_method=payment_method,
        ))

        owed = debt.amount or 0.0
        applied = min(payment, owed)
        remainder = payment - applied
        cleared = _settle(debt, applied)
        _move_receipt(debt.receipt_id, cleared)

        allocations = [Allocation(debt.id, debt.receipt_id, applied, debt.amount, debt.status)]

        if remainder > 0:
            for other in _other_open_debts(debt):
                if remainder <= 0:
                    break
                share = min(remainder, other.amount)
                db.session.add(DebtPayment(
                    debt_id=other.id,
                    occurred_at=now,
                    amount_paid=share,
                    worker_id=worker.id,
                    payment_method=payment_method,
                ))
                _move_receipt(other.receipt_id, _settle(other, share))
                allocations.append(Allocation(other.id, other.receipt_id, share, other.amount, other.status))
                remainder -= share

        customer = debt.customer
        return {
            "id": debt.id,
            "customer_name": customer.name if customer else None,
            "customer_company": customer.company if customer else None,
            "total_amount": debt.amount + payment,
            "amount_paid": payment,
            "balance": debt.amount,
            "status": debt.status,
            "allocations": [a.to_dict() for a in allocations],
            "unallocated": max(remainder, 0.0),
        }

    return run_in_transaction(_op)
