from __future__ import annotations

from ..extensions import db
from petstore.time_utils import to_utc_z, to_iso_date, utcnow
from .mixins import SoftDeleteMixin, decimal_to_float


class Inventory(SoftDeleteMixin, db.Model):
    """
    Stock ledger: exactly one row per item.

    quantity is mutated only through inventory_service.apply_inventory_delta
    (stock-in, sale, cancellation) and adjust_inventory (manual override).
    avg_cost stays NULL until the first receipt.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("item_id", name="uq_inventory_item"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_nonneg"),
        db.CheckConstraint("min_stock >= 0", name="ck_inventory_min_stock_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    # Running weighted-average unit cost (4 dp so repeated blending does not drift)
    avg_cost = db.Column(db.Numeric(14, 4), nullable=True)

    location = db.Column(db.String(100), nullable=True)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    item = db.relationship("Item", backref=db.backref("inventory", uselist=False, lazy=True))

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock

    def __repr__(self) -> str:
        return f"<Inventory item_id={self.item_id} quantity={self.quantity} avg_cost={self.avg_cost}>"

    def to_dict(self, *, include_item: bool = False) -> dict:
        data = {
            "id": self.id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "min_stock": self.min_stock,
            "avg_cost": decimal_to_float(self.avg_cost),
            "location": self.location,
            "is_low_stock": self.is_low_stock,
            "last_updated": to_utc_z(self.last_updated),
        }
        if include_item and self.item is not None:
            data["item"] = {
                **self.item.to_summary(),
                "item_type": self.item.item_type.name if self.item.item_type else None,
                "selling_price": decimal_to_float(self.item.selling_price),
            }
        return data


class StockIn(SoftDeleteMixin, db.Model):
    """Purchase receipt header. Lines are owned exclusively by the header."""
    __tablename__ = "stock_ins"
    __table_args__ = (
        db.Index("ix_stock_ins_import_date", "import_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), nullable=False, unique=True)
    import_date = db.Column(db.Date, nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # draft | completed | cancelled
    status = db.Column(db.String(16), nullable=False, default="draft", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    details = db.relationship(
        "StockInDetail",
        backref="stock_in",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="StockInDetail.id",
    )

    def to_dict(self, *, include_details: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "import_date": to_iso_date(self.import_date),
            "total_amount": decimal_to_float(self.total_amount),
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_details:
            data["details"] = [d.to_dict() for d in self.details]
        return data


class StockInDetail(db.Model):
    __tablename__ = "stock_in_details"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_stock_in_details_quantity_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    stock_in_id = db.Column(db.Integer, db.ForeignKey("stock_ins.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    expiry_date = db.Column(db.Date, nullable=True)

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stock_in_id": self.stock_in_id,
            "item_id": self.item_id,
            "item": self.item.to_summary() if self.item else None,
            "quantity": self.quantity,
            "cost_price": decimal_to_float(self.cost_price),
            "subtotal": decimal_to_float(self.subtotal),
            "expiry_date": to_iso_date(self.expiry_date),
        }
