"""
Sales Service - point-of-sale transactions and their cancellation.

create_sale validates every line against current stock before mutating
anything, then writes the header, lines and inventory decrements in one
transaction. cancel_sale reverses the inventory impact of a completed sale
and marks it refunded. Neither leaves partial state behind on failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Inventory, Item, Sale, SaleDetail
from petstore.errors import (
    AlreadyCancelledError,
    ConflictError,
    InsufficientStockError,
    InvalidReferenceError,
    NotFoundError,
    ValidationError,
)
from petstore.time_utils import utcnow, day_bounds
from .concurrency import lock_for_update, run_with_retry, transaction_scope
from .document_service import next_document_code
from .inventory_service import apply_inventory_delta
from .pagination import paginate, resolve_sort

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_REFUNDED = "refunded"
SALE_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED, STATUS_REFUNDED)

REFUND_MARKER = "[REFUNDED]"

SALE_SORT_COLUMNS = {
    "sale_date": Sale.sale_date,
    "final_amount": Sale.final_amount,
    "total_amount": Sale.total_amount,
    "code": Sale.code,
}


@dataclass(frozen=True)
class SaleLineRequest:
    item_id: int
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return Decimal(self.quantity) * Decimal(self.unit_price)


def compute_total_amount(lines: Iterable[SaleLineRequest]) -> Decimal:
    return sum((line.subtotal for line in lines), Decimal("0"))


def compute_final_amount(total_amount: Decimal, discount: Decimal) -> Decimal:
    """final = total - discount, never below zero."""
    return max(Decimal("0"), Decimal(total_amount) - Decimal(discount))


def _check_lines(lines: list[SaleLineRequest], discount: Decimal) -> None:
    if not lines:
        raise ValidationError("details must contain at least one line")
    for index, line in enumerate(lines):
        if line.quantity < 1:
            raise ValidationError(f"details[{index}]: quantity must be >= 1")
        if line.unit_price <= 0:
            raise ValidationError(f"details[{index}]: unit_price must be > 0")
    if discount < 0:
        raise ValidationError("discount must be >= 0")


def _validate_availability(lines: list[SaleLineRequest]) -> dict[int, Inventory]:
    """
    Check every line before any mutation.

    Quantities for the same item are summed so two lines cannot each pass
    against the same stock. Returns the locked inventory rows by item id.
    """
    requested: dict[int, int] = {}
    for line in lines:
        requested[line.item_id] = requested.get(line.item_id, 0) + line.quantity

    inventories: dict[int, Inventory] = {}
    for item_id, quantity in requested.items():
        item = Item.live_query().filter(Item.id == item_id).first()
        if item is None:
            raise InvalidReferenceError(
                f"Item with ID {item_id} not found",
                details={"item_id": item_id},
            )

        inventory = lock_for_update(
            Inventory.live_query().filter(Inventory.item_id == item_id)
        ).first()
        available = inventory.quantity if inventory is not None else 0
        if available < quantity:
            raise InsufficientStockError(
                item_id=item_id,
                item_name=item.name,
                available=available,
                required=quantity,
            )
        inventories[item_id] = inventory
    return inventories


def create_sale(
    *,
    lines: list[SaleLineRequest],
    customer_id: int | None = None,
    sale_date: datetime | None = None,
    discount: Decimal = Decimal("0"),
    payment_method: str = "cash",
    notes: str | None = None,
) -> Sale:
    """
    Record a completed sale and decrement stock.

    Raises:
        ValidationError: empty sale or invalid line values
        InvalidReferenceError: unknown customer or item
        InsufficientStockError: a line asks for more than is on hand
    """
    discount = Decimal(discount or 0)
    _check_lines(lines, discount)

    def _op():
        with transaction_scope() as session:
            if customer_id is not None:
                customer = Customer.live_query().filter(Customer.id == customer_id).first()
                if customer is None:
                    raise InvalidReferenceError(
                        "Customer not found", details={"customer_id": customer_id}
                    )

            inventories = _validate_availability(lines)

            total_amount = compute_total_amount(lines)
            sale = Sale(
                code=next_document_code("SALE"),
                customer_id=customer_id,
                sale_date=sale_date or utcnow(),
                total_amount=total_amount,
                discount=discount,
                final_amount=compute_final_amount(total_amount, discount),
                payment_method=payment_method or "cash",
                status=STATUS_COMPLETED,
                notes=notes,
            )
            session.add(sale)
            session.flush()

            for line in lines:
                # Snapshot before decrementing; sales never change avg_cost
                avg_cost = inventories[line.item_id].avg_cost
                session.add(SaleDetail(
                    sale_id=sale.id,
                    item_id=line.item_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    cost_price=avg_cost if avg_cost is not None else Decimal("0"),
                    subtotal=line.subtotal,
                ))
                apply_inventory_delta(item_id=line.item_id, quantity_delta=-line.quantity)

        current_app.logger.info(
            "Sale %s created: %d line(s), final %s",
            sale.code, len(lines), sale.final_amount,
        )
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = Sale.live_query().filter(Sale.id == sale_id).first()
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def _append_refund_note(notes: str | None, reason: str) -> str:
    entry = f"{REFUND_MARKER} {reason}"
    return f"{notes}\n{entry}" if notes else entry


def cancel_sale(sale_id: int, *, reason: str) -> Sale:
    """
    Reverse a completed sale: restore each line's quantity and mark it refunded.

    Totals are left as recorded; the reason is appended to the notes.
    """
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("reason is required")

    def _op():
        with transaction_scope():
            sale = lock_for_update(
                Sale.live_query().filter(Sale.id == sale_id)
            ).first()
            if sale is None:
                raise NotFoundError("Sale not found")

            if sale.status in (STATUS_CANCELLED, STATUS_REFUNDED):
                raise AlreadyCancelledError("Sale is already cancelled or refunded")
            if sale.status != STATUS_COMPLETED:
                raise ConflictError(f"Cannot cancel sale with status {sale.status}")

            for detail in sale.details:
                apply_inventory_delta(item_id=detail.item_id, quantity_delta=detail.quantity)

            sale.status = STATUS_REFUNDED
            sale.notes = _append_refund_note(sale.notes, reason)

        current_app.logger.info("Sale %s cancelled: %s", sale.code, reason)
        return sale

    return run_with_retry(_op)


def list_sales(
    *,
    page: int | None = None,
    per_page: int | None = None,
    search: str | None = None,
    customer_id: int | None = None,
    from_date=None,
    to_date=None,
    payment_method: str | None = None,
    status: str | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> dict:
    query = Sale.live_query()

    if search:
        escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        query = query.join(Customer, Customer.id == Sale.customer_id).filter(
            (Customer.name.ilike(pattern, escape="\\")) | (Customer.phone.ilike(pattern, escape="\\"))
        )
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)

    start_dt, end_dt = day_bounds(from_date, to_date)
    if start_dt is not None:
        query = query.filter(Sale.sale_date >= start_dt)
    if end_dt is not None:
        query = query.filter(Sale.sale_date <= end_dt)

    if payment_method:
        query = query.filter(Sale.payment_method == payment_method)
    if status:
        if status not in SALE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(SALE_STATUSES)}")
        query = query.filter(Sale.status == status)

    order = resolve_sort(SALE_SORT_COLUMNS, sort_by, sort_order, default="sale_date")
    query = query.order_by(order, Sale.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda s: s.to_dict())


def sales_summary(*, from_date=None, to_date=None, top_limit: int = 5) -> dict:
    """Completed-sale totals for a date range plus the best-selling items."""
    start_dt, end_dt = day_bounds(from_date, to_date)

    filters = [Sale.status == STATUS_COMPLETED, Sale.deleted_at.is_(None)]
    if start_dt is not None:
        filters.append(Sale.sale_date >= start_dt)
    if end_dt is not None:
        filters.append(Sale.sale_date <= end_dt)

    totals = db.session.query(
        func.count(Sale.id).label("total_sales"),
        func.coalesce(func.sum(Sale.final_amount), 0).label("total_revenue"),
        func.coalesce(func.avg(Sale.final_amount), 0).label("avg_sale_value"),
        func.coalesce(func.sum(Sale.discount), 0).label("total_discount"),
    ).filter(*filters).one()

    top_items = (
        db.session.query(
            Item.id.label("item_id"),
            Item.name.label("name"),
            func.sum(SaleDetail.quantity).label("quantity_sold"),
            func.sum(SaleDetail.subtotal).label("revenue"),
        )
        .join(SaleDetail, SaleDetail.item_id == Item.id)
        .join(Sale, Sale.id == SaleDetail.sale_id)
        .filter(*filters)
        .group_by(Item.id, Item.name)
        .order_by(func.sum(SaleDetail.quantity).desc())
        .limit(top_limit)
        .all()
    )

    return {
        "total_sales": int(totals.total_sales or 0),
        "total_revenue": float(totals.total_revenue or 0),
        "avg_sale_value": float(totals.avg_sale_value or 0),
        "total_discount": float(totals.total_discount or 0),
        "top_items": [
            {
                "item_id": row.item_id,
                "name": row.name,
                "quantity_sold": int(row.quantity_sold or 0),
                "revenue": float(row.revenue or 0),
            }
            for row in top_items
        ],
    }
