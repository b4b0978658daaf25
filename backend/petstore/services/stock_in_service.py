# Overview: Service-layer operations for stock-in receipts; encapsulates business logic.

"""
Stock-In Service

A receipt (purchase delivery) is applied all-or-nothing:

1. total_amount = sum(quantity * cost_price) over the lines
2. StockIn header created with a generated code, status completed
3. per line, in input order: item must exist, StockInDetail written with its
   subtotal, inventory updated in receipt mode (weighted-average cost)
4. single commit at the end; any failure rolls back the whole receipt
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from flask import current_app

from ..models import Item, StockIn, StockInDetail
from petstore.errors import InvalidReferenceError, NotFoundError, ValidationError
from petstore.time_utils import today
from .concurrency import run_with_retry, transaction_scope
from .document_service import next_document_code
from .inventory_service import apply_inventory_delta

STATUS_COMPLETED = "completed"


@dataclass(frozen=True)
class StockInLine:
    item_id: int
    quantity: int
    cost_price: Decimal
    expiry_date: date | None = None

    @property
    def subtotal(self) -> Decimal:
        return line_subtotal(self.quantity, self.cost_price)


def line_subtotal(quantity: int, unit_amount: Decimal) -> Decimal:
    return Decimal(quantity) * Decimal(unit_amount)


def receipt_total(lines: Iterable[StockInLine]) -> Decimal:
    return sum((line.subtotal for line in lines), Decimal("0"))


def _check_lines(lines: list[StockInLine]) -> None:
    if not lines:
        raise ValidationError("details must contain at least one line")
    for index, line in enumerate(lines):
        if line.quantity < 1:
            raise ValidationError(f"details[{index}]: quantity must be >= 1")
        if line.cost_price <= 0:
            raise ValidationError(f"details[{index}]: cost_price must be > 0")


def receive_stock(
    *,
    lines: list[StockInLine],
    import_date: date | None = None,
    notes: str | None = None,
) -> StockIn:
    """
    Apply a purchase receipt to the inventory ledger.

    Raises:
        ValidationError: empty receipt or invalid line values
        InvalidReferenceError: a line references a missing item (nothing is applied)
    """
    _check_lines(lines)

    def _op():
        with transaction_scope() as session:
            stock_in = StockIn(
                code=next_document_code("STOCK_IN"),
                import_date=import_date or today(),
                total_amount=receipt_total(lines),
                status=STATUS_COMPLETED,
                notes=notes,
            )
            session.add(stock_in)
            session.flush()

            for line in lines:
                item = Item.live_query().filter(Item.id == line.item_id).first()
                if item is None:
                    raise InvalidReferenceError(
                        f"Item with ID {line.item_id} not found",
                        details={"item_id": line.item_id},
                    )

                session.add(StockInDetail(
                    stock_in_id=stock_in.id,
                    item_id=line.item_id,
                    quantity=line.quantity,
                    cost_price=line.cost_price,
                    subtotal=line.subtotal,
                    expiry_date=line.expiry_date,
                ))
                apply_inventory_delta(
                    item_id=line.item_id,
                    quantity_delta=line.quantity,
                    unit_cost=line.cost_price,
                )
        current_app.logger.info(
            "Stock-in %s applied: %d line(s), total %s",
            stock_in.code, len(lines), stock_in.total_amount,
        )
        return stock_in

    return run_with_retry(_op)


def get_stock_in(stock_in_id: int) -> StockIn:
    stock_in = StockIn.live_query().filter(StockIn.id == stock_in_id).first()
    if stock_in is None:
        raise NotFoundError("Stock-in not found")
    return stock_in
