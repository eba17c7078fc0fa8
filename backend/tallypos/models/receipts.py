from __future__ import annotations

from ..extensions import db
from tallypos.time_utils import to_utc_z, utcnow


class Receipt(db.Model):
    """
    One sales transaction.

    LIFECYCLE: CREATED -> EDITED* -> FLAGGED <-> UNFLAGGED -> DELETED
    - flagged=True voids the receipt for analytics and reverses its
      inventory effect; the row is kept
    - delete removes the receipt, its details and its debt

    INVARIANT: balance == total - amount_paid - discount after every
    mutating operation (create, update, debt payment).
    """
    __tablename__ = "receipts"
    __table_args__ = (
        db.Index("ix_receipts_company_created", "company_id", "created_at"),
        db.Index("ix_receipts_company_flagged", "company_id", "flagged"),
    )

    # UUID string
    id = db.Column(db.String(36), primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=True, index=True)

    total = db.Column(db.Float, nullable=False, default=0.0)
    discount = db.Column(db.Float, nullable=False, default=0.0)
    amount_paid = db.Column(db.Float, nullable=False, default=0.0)
    balance = db.Column(db.Float, nullable=False, default=0.0)
    profit = db.Column(db.Float, nullable=False, default=0.0)

    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    includes_unit_breakdown = db.Column(db.Boolean, nullable=False, default=False)
    flagged = db.Column(db.Boolean, nullable=False, default=False, index=True)

    # Link to the debt carrying this receipt's balance (no FK: debts.receipt_id owns the relation)
    debt_id = db.Column(db.Integer, nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer")
    worker = db.relationship("Worker")
    details = db.relationship(
        "ReceiptDetail",
        backref="receipt",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ReceiptDetail.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Receipt id={self.id} total={self.total} balance={self.balance} flagged={self.flagged}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "customer_id": self.customer_id,
            "worker_id": self.worker_id,
            "total": self.total,
            "discount": self.discount,
            "amount_paid": self.amount_paid,
            "balance": self.balance,
            "profit": self.profit,
            "payment_method": self.payment_method,
            "includes_unit_breakdown": self.includes_unit_breakdown,
            "flagged": self.flagged,
            "debt_id": self.debt_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ReceiptDetail(db.Model):
    """
    Line item on a receipt.

    quantity is in base units; sales_price is per base unit and already
    conversion-adjusted. total_price is the authoritative line revenue.
    inventory_id is a soft reference: deleting an item never cascades here.
    """
    __tablename__ = "receipt_details"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    receipt_id = db.Column(db.String(36), db.ForeignKey("receipts.id"), nullable=False, index=True)
    inventory_id = db.Column(db.Integer, nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    atomic_quantity = db.Column(db.Float, nullable=True)
    cost_price = db.Column(db.Float, nullable=False, default=0.0)
    sales_price = db.Column(db.Float, nullable=False, default=0.0)
    total_price = db.Column(db.Float, nullable=False, default=0.0)

    conversion_rate = db.Column(db.Float, nullable=False, default=1.0)
    needs_conversion = db.Column(db.Boolean, nullable=False, default=False)
    original_unit = db.Column(db.String(32), nullable=True)
    original_quantity = db.Column(db.Float, nullable=True)
    atomic_unit = db.Column(db.String(32), nullable=True)
    loss = db.Column(db.Float, nullable=False, default=0.0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "receipt_id": self.receipt_id,
            "inventory_id": self.inventory_id,
            "name": self.name,
            "quantity": self.quantity,
            "atomic_quantity": self.atomic_quantity,
            "cost_price": self.cost_price,
            "sales_price": self.sales_price,
            "total_price": self.total_price,
            "conversion_rate": self.conversion_rate,
            "needs_conversion": self.needs_conversion,
            "original_unit": self.original_unit,
            "original_quantity": self.original_quantity,
            "atomic_unit": self.atomic_unit,
            "loss": self.loss,
        }
