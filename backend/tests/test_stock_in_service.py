"""Stock-in receipts are applied all-or-nothing."""

from datetime import date
from decimal import Decimal

import pytest

from petstore.errors import InvalidReferenceError, ValidationError
from petstore.extensions import db
from petstore.models import Inventory, StockIn, StockInDetail
from petstore.services.document_service import validate_document_code
from petstore.services.stock_in_service import StockInLine, receipt_total, receive_stock


def test_receipt_total_sums_line_subtotals():
    lines = [
        StockInLine(item_id=1, quantity=10, cost_price=Decimal("100")),
        StockInLine(item_id=2, quantity=3, cost_price=Decimal("2.50")),
    ]
    assert receipt_total(lines) == Decimal("1007.50")


def test_receive_stock_creates_header_lines_and_inventory(make_item):
    food = make_item(name="Puppy Food")
    toy = make_item(name="Chew Toy")

    stock_in = receive_stock(
        lines=[
            StockInLine(item_id=food.id, quantity=10, cost_price=Decimal("100")),
            StockInLine(item_id=toy.id, quantity=4, cost_price=Decimal("25"), expiry_date=date(2030, 1, 1)),
        ],
        import_date=date(2026, 10, 1),
        notes="weekly delivery",
    )

    assert stock_in.status == "completed"
    assert stock_in.total_amount == Decimal("1100.00")
    assert stock_in.import_date == date(2026, 10, 1)
    assert stock_in.code.startswith("SI")
    assert validate_document_code(stock_in.code)
    assert [d.subtotal for d in stock_in.details] == [Decimal("1000.00"), Decimal("100.00")]

    food_inv = db.session.query(Inventory).filter_by(item_id=food.id).one()
    assert food_inv.quantity == 10
    assert food_inv.avg_cost == Decimal("100.0000")


def test_missing_item_rolls_back_whole_receipt(item):
    with pytest.raises(InvalidReferenceError):
        receive_stock(lines=[
            StockInLine(item_id=item.id, quantity=5, cost_price=Decimal("10")),
            StockInLine(item_id=424242, quantity=1, cost_price=Decimal("10")),
        ])

    db.session.expire_all()
    assert db.session.query(StockIn).count() == 0
    assert db.session.query(StockInDetail).count() == 0
    assert db.session.query(Inventory).filter_by(item_id=item.id).one().quantity == 0


def test_empty_receipt_is_rejected(app):
    with pytest.raises(ValidationError):
        receive_stock(lines=[])


@pytest.mark.parametrize("quantity,cost", [(0, "10"), (1, "0"), (2, "-1")])
def test_invalid_line_values_are_rejected(item, quantity, cost):
    with pytest.raises(ValidationError):
        receive_stock(lines=[StockInLine(item_id=item.id, quantity=quantity, cost_price=Decimal(cost))])
