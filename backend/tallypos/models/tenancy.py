from __future__ import annotations

from ..extensions import db
from tallypos.time_utils import to_utc_z, utcnow


class Company(db.Model):
    """
    Multi-tenant root: every tenant is a Company.

    All customers, workers, inventory, receipts and debts carry a company_id
    and every query is scoped by it.
    """
    __tablename__ = "companies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)

    # Percentage, e.g. 7.5
    tax_rate = db.Column(db.Float, nullable=False, default=0.0)
    receipt_template = db.Column(db.String(32), nullable=False, default="template1")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tax_rate": self.tax_rate,
            "receipt_template": self.receipt_template,
            "created_at": to_utc_z(self.created_at),
        }
