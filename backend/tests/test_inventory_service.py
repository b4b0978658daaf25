"""Inventory ledger: weighted-average cost, guarded decrements, manual adjustments."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from petstore.errors import InsufficientStockError, InternalFailure, NotFoundError, ValidationError
from petstore.extensions import db
from petstore.models import Inventory, ItemType
from petstore.services import inventory_service
from petstore.services.concurrency import transaction_scope
from petstore.services.inventory_service import apply_inventory_delta, weighted_average_cost


def _inventory(item_id):
    db.session.expire_all()
    return db.session.query(Inventory).filter_by(item_id=item_id).one()


class TestWeightedAverageCost:
    def test_blends_receipt_into_running_average(self):
        assert weighted_average_cost(10, Decimal("100"), 5, Decimal("130")) == Decimal("110.0000")

    def test_null_average_counts_as_zero(self):
        assert weighted_average_cost(0, None, 4, Decimal("12.50")) == Decimal("12.5000")

    def test_rounds_half_up_to_four_places(self):
        # (1 * 1 + 2 * 2) / 3 = 1.66666...
        assert weighted_average_cost(1, Decimal("1"), 2, Decimal("2")) == Decimal("1.6667")

    def test_zero_resulting_quantity_gives_zero(self):
        assert weighted_average_cost(0, Decimal("5"), 0, Decimal("7")) == Decimal("0")


def test_new_item_starts_with_empty_inventory(item):
    inv = _inventory(item.id)
    assert inv.quantity == 0
    assert inv.min_stock == 0
    assert inv.avg_cost is None


def test_receipts_accumulate_quantity_and_average(stocked_item):
    inv = _inventory(stocked_item.id)
    assert inv.quantity == 15
    assert inv.avg_cost == Decimal("110.0000")


def test_decrement_keeps_average_cost(stocked_item):
    with transaction_scope():
        apply_inventory_delta(item_id=stocked_item.id, quantity_delta=-4)

    inv = _inventory(stocked_item.id)
    assert inv.quantity == 11
    assert inv.avg_cost == Decimal("110.0000")


def test_guarded_decrement_refuses_to_go_negative(stocked_item):
    with pytest.raises(InsufficientStockError) as exc_info:
        with transaction_scope():
            apply_inventory_delta(item_id=stocked_item.id, quantity_delta=-16)

    assert exc_info.value.details == {"item_id": stocked_item.id, "available": 15, "required": 16}
    assert "Available: 15, Required: 16" in exc_info.value.message
    assert _inventory(stocked_item.id).quantity == 15


def test_restore_without_cost_leaves_average(stocked_item):
    with transaction_scope():
        apply_inventory_delta(item_id=stocked_item.id, quantity_delta=3)

    inv = _inventory(stocked_item.id)
    assert inv.quantity == 18
    assert inv.avg_cost == Decimal("110.0000")


def test_missing_item_is_not_found(app):
    with pytest.raises(NotFoundError):
        with transaction_scope():
            apply_inventory_delta(item_id=9999, quantity_delta=-1)


def test_zero_delta_is_rejected(item):
    with pytest.raises(ValidationError):
        apply_inventory_delta(item_id=item.id, quantity_delta=0)


def test_adjust_overrides_quantity_only(stocked_item):
    result = inventory_service.adjust_inventory(item_id=stocked_item.id, new_quantity=7, reason="stock count")

    assert result["old_quantity"] == 15
    assert result["new_quantity"] == 7
    assert result["difference"] == -8
    inv = _inventory(stocked_item.id)
    assert inv.quantity == 7
    assert inv.avg_cost == Decimal("110.0000")


def test_adjust_rejects_negative_quantity(stocked_item):
    with pytest.raises(ValidationError):
        inventory_service.adjust_inventory(item_id=stocked_item.id, new_quantity=-1, reason="typo")


def test_low_stock_lists_items_at_or_below_minimum(make_item, stock):
    plenty = make_item(name="Cat Litter")
    scarce = make_item(name="Bird Seed")
    stock(plenty.id, 50, "3")
    stock(scarce.id, 2, "4")
    inventory_service.update_min_stock(item_id=plenty.id, min_stock=10)
    inventory_service.update_min_stock(item_id=scarce.id, min_stock=5)

    low = inventory_service.list_low_stock()

    assert [inv.item_id for inv in low] == [scarce.id]


def test_min_stock_must_be_non_negative(item):
    with pytest.raises(ValidationError):
        inventory_service.update_min_stock(item_id=item.id, min_stock=-3)


def test_database_errors_surface_as_internal_failure(item_type):
    with pytest.raises(InternalFailure) as exc_info:
        with transaction_scope() as session:
            session.add(ItemType(name="Dog Food", is_active=True))

    assert exc_info.value.status_code == 500
    assert isinstance(exc_info.value.__cause__, IntegrityError)
    assert db.session.query(ItemType).filter_by(name="Dog Food").count() == 1
