from __future__ import annotations

from ..extensions import db
from petstore.time_utils import to_utc_z
from .mixins import SoftDeleteMixin, decimal_to_float


class ItemType(SoftDeleteMixin, db.Model):
    """Product category (food, toys, grooming, ...)."""
    __tablename__ = "item_types"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<ItemType id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Item(SoftDeleteMixin, db.Model):
    """
    Sellable product.

    Name uniqueness is enforced among live (not soft-deleted) items by the
    catalog service, so a deleted item's name can be reused.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_type_active", "item_type_id", "is_active"),
        db.CheckConstraint("selling_price >= 0", name="ck_items_selling_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), nullable=False, unique=True, index=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    item_type_id = db.Column(db.Integer, db.ForeignKey("item_types.id"), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)
    unit = db.Column(db.String(20), nullable=False, default="pcs")
    image_path = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    item_type = db.relationship("ItemType", backref=db.backref("items", lazy=True))

    def __repr__(self) -> str:
        return f"<Item id={self.id} code={self.code!r} name={self.name!r}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "code": self.code, "name": self.name, "unit": self.unit}

    def to_dict(self, *, include_inventory: bool = False) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "item_type_id": self.item_type_id,
            "item_type": self.item_type.name if self.item_type else None,
            "description": self.description,
            "selling_price": decimal_to_float(self.selling_price),
            "unit": self.unit,
            "image_path": self.image_path,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_inventory:
            inv = self.inventory
            data["inventory"] = inv.to_dict() if inv is not None and not inv.is_deleted else None
        return data
