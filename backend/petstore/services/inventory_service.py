# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/petstore/services/inventory_service.py

"""
Inventory Invariants (authoritative)

Inventory model:
- Exactly one Inventory row per item; quantity is a stored, mutable field.
- Writers: stock-in (receipt), sale (decrement), sale cancellation (restore)
  through apply_inventory_delta, plus the manual override adjust_inventory.
- Every writer runs inside the caller's transaction_scope; nothing here commits
  except the public adjust/min-stock operations, which own their transaction.

Business invariants:
- quantity may never go negative. Decrements use a conditional UPDATE
  (... WHERE quantity >= needed), so two concurrent sales cannot both take the
  last units even when both passed an earlier availability check.
- avg_cost is a quantity-weighted running average recomputed on every receipt:
      new_avg = (q * avg + in_q * in_cost) / (q + in_q)      (0 when q + in_q == 0)
  Sales and cancellations never touch avg_cost.
- ADJUST overrides quantity and leaves avg_cost as it was.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy import or_, update

from ..extensions import db
from ..models import Inventory, Item, StockIn
from petstore.errors import InsufficientStockError, NotFoundError, ValidationError
from petstore.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry, transaction_scope
from .pagination import paginate, resolve_sort

AVG_COST_QUANT = Decimal("0.0001")

INVENTORY_SORT_COLUMNS = {
    "updated_at": Inventory.updated_at,
    "last_updated": Inventory.last_updated,
    "quantity": Inventory.quantity,
    "min_stock": Inventory.min_stock,
    "avg_cost": Inventory.avg_cost,
}


def weighted_average_cost(
    current_quantity: int,
    current_avg_cost: Decimal | None,
    incoming_quantity: int,
    incoming_cost: Decimal,
) -> Decimal:
    """
    Blend a receipt into the running average unit cost.

    A NULL current average counts as 0 (it only happens while quantity is 0).
    """
    current_avg = Decimal(current_avg_cost) if current_avg_cost is not None else Decimal("0")
    total_quantity = current_quantity + incoming_quantity
    if total_quantity <= 0:
        return Decimal("0")
    total_value = current_quantity * current_avg + incoming_quantity * Decimal(incoming_cost)
    return (total_value / total_quantity).quantize(AVG_COST_QUANT, rounding=ROUND_HALF_UP)


def _require_item(item_id: int) -> Item:
    item = Item.live_query().filter(Item.id == item_id).first()
    if item is None:
        raise NotFoundError(f"Item with ID {item_id} not found", details={"item_id": item_id})
    return item


def _live_inventory(item_id: int, *, lock: bool = False) -> Inventory | None:
    query = Inventory.live_query().filter(Inventory.item_id == item_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def apply_inventory_delta(
    *,
    item_id: int,
    quantity_delta: int,
    unit_cost: Decimal | None = None,
) -> Inventory:
    """
    Apply a signed quantity change to one Inventory row inside the current transaction.

    - unit_cost given (receipt): quantity_delta must be positive; the row is
      created on first receipt with unit_cost as the initial average, and
      avg_cost is re-blended.
    - negative delta (sale): guarded decrement, raises InsufficientStockError
      instead of letting quantity drop below zero.
    - positive delta without cost (cancellation restore): quantity only.

    Raises NotFoundError when the item (or, outside receipts, its inventory
    row) does not exist. Does not commit.
    """
    if quantity_delta == 0:
        raise ValidationError("quantity_delta must be non-zero")

    item = _require_item(item_id)
    now = utcnow()

    if unit_cost is not None:
        if quantity_delta < 0:
            raise ValidationError("receipts must increase quantity")

        inventory = _live_inventory(item_id, lock=True)
        if inventory is None:
            inventory = Inventory(item_id=item_id, quantity=0, min_stock=0, avg_cost=None)
            db.session.add(inventory)

        inventory.avg_cost = weighted_average_cost(
            inventory.quantity or 0, inventory.avg_cost, quantity_delta, unit_cost
        )
        inventory.quantity = (inventory.quantity or 0) + quantity_delta
        inventory.last_updated = now
        db.session.flush()
        return inventory

    if _live_inventory(item_id) is None:
        raise NotFoundError("Inventory not found", details={"item_id": item_id})

    stmt = (
        update(Inventory)
        .where(Inventory.item_id == item_id, Inventory.deleted_at.is_(None))
        .values(quantity=Inventory.quantity + quantity_delta, last_updated=now)
        .execution_options(synchronize_session=False)
    )
    if quantity_delta < 0:
        stmt = stmt.where(Inventory.quantity >= -quantity_delta)

    result = db.session.execute(stmt)
    if result.rowcount == 0:
        current = _live_inventory(item_id)
        raise InsufficientStockError(
            item_id=item_id,
            item_name=item.name,
            available=current.quantity if current is not None else 0,
            required=-quantity_delta,
        )

    return (
        Inventory.live_query()
        .filter(Inventory.item_id == item_id)
        .populate_existing()
        .one()
    )


def get_inventory_by_item(item_id: int) -> Inventory:
    inventory = _live_inventory(item_id)
    if inventory is None:
        raise NotFoundError("Inventory not found")
    return inventory


def _low_stock_filter():
    return or_(Inventory.quantity <= Inventory.min_stock, Inventory.quantity == 0)


def list_inventory(
    *,
    page: int | None = None,
    per_page: int | None = None,
    search: str | None = None,
    low_stock: bool = False,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> dict:
    query = (
        Inventory.live_query()
        .join(Item, Item.id == Inventory.item_id)
        .filter(Item.deleted_at.is_(None))
    )
    if low_stock:
        query = query.filter(_low_stock_filter())
    if search:
        escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        query = query.filter(or_(
            Item.name.ilike(pattern, escape="\\"),
            Item.code.ilike(pattern, escape="\\"),
        ))

    order = resolve_sort(INVENTORY_SORT_COLUMNS, sort_by, sort_order, default="updated_at")
    query = query.order_by(order, Inventory.id.desc())
    return paginate(
        query,
        page=page,
        per_page=per_page,
        serialize=lambda inv: inv.to_dict(include_item=True),
    )


def list_low_stock() -> list[Inventory]:
    """Live items at or below their minimum stock (or out of stock), emptiest first."""
    return (
        Inventory.live_query()
        .join(Item, Item.id == Inventory.item_id)
        .filter(Item.deleted_at.is_(None))
        .filter(_low_stock_filter())
        .order_by(Inventory.quantity.asc(), Item.name.asc())
        .all()
    )


def adjust_inventory(*, item_id: int, new_quantity: int, reason: str) -> dict:
    """
    Manual stock-count override: sets quantity directly.

    avg_cost is left untouched, so the cost basis may be stale afterwards.
    """
    if new_quantity < 0:
        raise ValidationError("new_quantity must be >= 0")

    def _op():
        with transaction_scope():
            inventory = _live_inventory(item_id, lock=True)
            if inventory is None:
                raise NotFoundError("Inventory not found")
            old_quantity = inventory.quantity
            inventory.quantity = new_quantity
            inventory.last_updated = utcnow()
            item_name = inventory.item.name
        current_app.logger.info(
            "Inventory adjusted item_id=%s %s -> %s reason=%r",
            item_id, old_quantity, new_quantity, reason,
        )
        return {
            "item_id": item_id,
            "item": item_name,
            "old_quantity": old_quantity,
            "new_quantity": new_quantity,
            "difference": new_quantity - old_quantity,
            "reason": reason,
        }

    return run_with_retry(_op)


def update_min_stock(*, item_id: int, min_stock: int) -> Inventory:
    if min_stock < 0:
        raise ValidationError("min_stock must be a non-negative number")

    def _op():
        with transaction_scope():
            inventory = _live_inventory(item_id, lock=True)
            if inventory is None:
                raise NotFoundError("Inventory not found")
            inventory.min_stock = min_stock
        return inventory

    return run_with_retry(_op)


def list_stock_in_history(
    *,
    page: int | None = None,
    per_page: int | None = None,
    from_date=None,
    to_date=None,
) -> dict:
    query = StockIn.live_query()
    if from_date is not None:
        query = query.filter(StockIn.import_date >= from_date)
    if to_date is not None:
        query = query.filter(StockIn.import_date <= to_date)
    query = query.order_by(StockIn.import_date.desc(), StockIn.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda s: s.to_dict())
