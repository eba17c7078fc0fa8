from __future__ import annotations

from ..extensions import db
from tallypos.time_utils import to_utc_z, utcnow


class InventoryItem(db.Model):
    """
    Stocked product.

    ONHAND DESIGN DECISION:
    onhand is a mutable base-unit quantity, not a ledger-derived sum.
    - It is changed ONLY by services.inventory_service (deduct/restock/adjust)
    - It may go negative; the ledger reports that as an advisory, not an error
    - Every change also appends a StockTransaction row for history

    CONCURRENCY:
    version_id_col turns a lost read-modify-write update into StaleDataError,
    which run_with_retry rolls back and replays.

    UNITS:
    - base_unit: stocking unit (e.g. "box")
    - atomic_unit: smallest sellable sub-unit (e.g. "piece"), optional
    - conversion_factor: atomic units per base unit (e.g. 12)
    - loss_factor: percent of line value lost when a base unit is broken down
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("company_id", "name", name="uq_inventory_company_name"),
        db.Index("ix_inventory_company_name", "company_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)

    base_unit = db.Column(db.String(32), nullable=False, default="unit")
    atomic_unit = db.Column(db.String(32), nullable=True)
    conversion_factor = db.Column(db.Float, nullable=False, default=1.0)
    loss_factor = db.Column(db.Float, nullable=False, default=0.0)

    onhand = db.Column(db.Float, nullable=False, default=0.0)
    atomic_onhand = db.Column(db.Float, nullable=False, default=0.0)

    cost_price = db.Column(db.Float, nullable=False, default=0.0)
    sales_price = db.Column(db.Float, nullable=False, default=0.0)
    reorder_point = db.Column(db.Float, nullable=False, default=0.0)

    last_breakdown_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    tenant = db.relationship("Company", backref=db.backref("inventory_items", lazy=True))
    conversions = db.relationship(
        "UnitConversion",
        backref="item",
        lazy=True,
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} onhand={self.onhand}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "base_unit": self.base_unit,
            "atomic_unit": self.atomic_unit,
            "conversion_factor": self.conversion_factor,
            "loss_factor": self.loss_factor,
            "onhand": self.onhand,
            "atomic_onhand": self.atomic_onhand,
            "cost_price": self.cost_price,
            "sales_price": self.sales_price,
            "reorder_point": self.reorder_point,
            "last_breakdown_at": to_utc_z(self.last_breakdown_at) if self.last_breakdown_at else None,
            "conversions": [c.to_dict() for c in self.conversions],
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class UnitConversion(db.Model):
    """
    Alternate sale unit for an item.

    conversion_rate is to_unit per base unit: a box of 12 pieces stores
    from_unit="box", to_unit="piece", conversion_rate=12.
    """
    __tablename__ = "unit_conversions"
    __table_args__ = (
        db.UniqueConstraint("inventory_id", "to_unit", name="uq_unit_conversions_item_unit"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    from_unit = db.Column(db.String(32), nullable=False)
    to_unit = db.Column(db.String(32), nullable=False)
    conversion_rate = db.Column(db.Float, nullable=False)

    # Price denominated in to_unit
    sales_price = db.Column(db.Float, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "from_unit": self.from_unit,
            "to_unit": self.to_unit,
            "conversion_rate": self.conversion_rate,
            "sales_price": self.sales_price,
        }


class BreakdownHistory(db.Model):
    """Append-only record of a base unit being broken down for a sale."""
    __tablename__ = "breakdown_history"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    from_unit = db.Column(db.String(32), nullable=False)
    to_unit = db.Column(db.String(32), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    loss = db.Column(db.Float, nullable=False, default=0.0)
    note = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "from_unit": self.from_unit,
            "to_unit": self.to_unit,
            "quantity": self.quantity,
            "loss": self.loss,
            "note": self.note,
        }


class StockTransaction(db.Model):
    """
    Append-only history of every onhand movement.

    TYPES:
    - inbound: restock (carries the cost/sales price in force after it)
    - sale: deduction when a receipt is created
    - sale_edit: net delta when a receipt's lines are edited
    - void / unvoid: receipt flagged / unflagged
    - receipt_deleted: restoration when deleting restores stock
    - atomic: atomic_onhand adjustment

    IMMUTABLE: rows are never updated or deleted.
    """
    __tablename__ = "stock_transactions"
    __table_args__ = (
        db.Index("ix_stock_txns_item_occurred", "inventory_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False, index=True)
    quantity_delta = db.Column(db.Float, nullable=False)

    cost_price = db.Column(db.Float, nullable=True)
    sales_price = db.Column(db.Float, nullable=True)

    receipt_id = db.Column(db.String(36), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "type": self.type,
            "quantity_delta": self.quantity_delta,
            "cost_price": self.cost_price,
            "sales_price": self.sales_price,
            "receipt_id": self.receipt_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class Notification(db.Model):
    """Tenant-wide notice, e.g. an item dropping below its reorder point."""
    __tablename__ = "notifications"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(32), nullable=False, default="info")
    is_read = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
