from __future__ import annotations

from ..extensions import db
from tallypos.time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Buyer on account.

    `company` is the customer's own business name (nullable for walk-in
    individuals); `company_id` is the owning tenant. Receipts address a
    customer by the pair (company, name), matched case-insensitively.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_company_name", "company_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    company = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    tenant = db.relationship("Company", backref=db.backref("customers", lazy=True))

    @property
    def label(self) -> str:
        return f"{self.company or 'nocompany'} - {self.name}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "company": self.company,
            "phone": self.phone,
            "email": self.email,
            "label": self.label,
            "created_at": to_utc_z(self.created_at),
        }


class Worker(db.Model):
    """Staff member who rings up receipts and takes debt payments."""
    __tablename__ = "workers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="worker")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    tenant = db.relationship("Company", backref=db.backref("workers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }
