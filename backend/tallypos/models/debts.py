from __future__ import annotations

from ..extensions import db
from tallypos.time_utils import to_utc_z, utcnow


DEBT_STATUS_PENDING = "pending"
DEBT_STATUS_PAID = "paid"


class Debt(db.Model):
    """
    A customer's outstanding balance on one receipt.

    - amount is what remains owed; it only decreases through payments or is
      rewritten when the receipt is edited
    - payments zero the amount and flip status to paid; they never delete
    - deleted when the receipt is deleted or edited down to no balance
    """
    __tablename__ = "debts"
    __table_args__ = (
        db.Index("ix_debts_customer_created", "customer_id", "created_at"),
        db.Index("ix_debts_company_status", "company_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    receipt_id = db.Column(db.String(36), db.ForeignKey("receipts.id"), nullable=True, index=True)

    amount = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(16), nullable=False, default=DEBT_STATUS_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer")
    worker = db.relationship("Worker")
    receipt = db.relationship("Receipt", foreign_keys=[receipt_id])

    def __repr__(self) -> str:
        return f"<Debt id={self.id} amount={self.amount} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "worker_id": self.worker_id,
            "customer_id": self.customer_id,
            "receipt_id": self.receipt_id,
            "amount": self.amount,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class DebtPayment(db.Model):
    """
    Append-only ledger of money received against a debt.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "debt_payments"
    __table_args__ = (
        db.Index("ix_debt_payments_debt_occurred", "debt_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    debt_id = db.Column(db.Integer, db.ForeignKey("debts.id", ondelete="SET NULL"), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    amount_paid = db.Column(db.Float, nullable=False)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)

    worker = db.relationship("Worker")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "debt_id": self.debt_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "amount_paid": self.amount_paid,
            "worker_id": self.worker_id,
            "payment_method": self.payment_method,
        }
