from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from petstore.time_utils import to_utc_z
from .mixins import SoftDeleteMixin, decimal_to_float

SALE_STATUSES = ("pending", "completed", "cancelled", "refunded")
PAYMENT_METHODS = ("cash", "card", "transfer", "other")


class Sale(SoftDeleteMixin, db.Model):
    """
    Point-of-sale transaction header.

    final_amount is always max(0, total_amount - discount); the sales service
    recomputes it explicitly whenever either input changes.
    Lifecycle: completed -> refunded (cancellation) is the only transition.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_date", "status", "sale_date"),
        db.CheckConstraint("discount >= 0", name="ck_sales_discount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), nullable=False, unique=True)

    # NULL for walk-in customers
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    final_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment_method = db.Column(db.String(16), nullable=False, default="cash", index=True)
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    details = db.relationship(
        "SaleDetail",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleDetail.id",
    )

    def total_cost(self) -> Decimal:
        return sum((d.cost_price or Decimal("0")) * d.quantity for d in self.details) or Decimal("0")

    def profit(self) -> Decimal:
        return Decimal(self.final_amount) - self.total_cost()

    def to_dict(self, *, include_details: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "customer_id": self.customer_id,
            "customer": (
                {"id": self.customer.id, "name": self.customer.name, "phone": self.customer.phone}
                if self.customer else None
            ),
            "sale_date": to_utc_z(self.sale_date),
            "total_amount": decimal_to_float(self.total_amount),
            "discount": decimal_to_float(self.discount),
            "final_amount": decimal_to_float(self.final_amount),
            "payment_method": self.payment_method,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_details:
            data["details"] = [d.to_dict() for d in self.details]
            data["profit"] = decimal_to_float(self.profit())
        return data


class SaleDetail(db.Model):
    """Sale line. cost_price is the item's average cost snapshotted at sale time."""
    __tablename__ = "sale_details"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sale_details_quantity_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    cost_price = db.Column(db.Numeric(14, 4), nullable=True)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "item": self.item.to_summary() if self.item else None,
            "quantity": self.quantity,
            "unit_price": decimal_to_float(self.unit_price),
            "cost_price": decimal_to_float(self.cost_price),
            "subtotal": decimal_to_float(self.subtotal),
        }
