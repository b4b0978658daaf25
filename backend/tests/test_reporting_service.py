from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from petstore.errors import ValidationError
from petstore.services import inventory_service, reporting_service, sales_service
from petstore.services.sales_service import SaleLineRequest
from petstore.time_utils import utcnow


@pytest.fixture
def sold(stocked_item, customer):
    """Two completed sales today (one walk-in) and one refunded sale."""
    sales_service.create_sale(
        customer_id=customer.id,
        lines=[SaleLineRequest(item_id=stocked_item.id, quantity=4, unit_price=Decimal("200"))],
        discount=Decimal("50"),
    )
    sales_service.create_sale(
        lines=[SaleLineRequest(item_id=stocked_item.id, quantity=1, unit_price=Decimal("150"))],
    )
    refunded = sales_service.create_sale(
        lines=[SaleLineRequest(item_id=stocked_item.id, quantity=2, unit_price=Decimal("200"))],
    )
    sales_service.cancel_sale(refunded.id, reason="wrong size")
    return stocked_item


def test_dashboard_today_counts_completed_sales(sold):
    data = reporting_service.dashboard()

    assert data["today"]["total_sales"] == 2
    assert data["today"]["total_revenue"] == 900.0
    assert data["month_comparison"]["this_month"]["total_sales"] == 2
    assert data["top_products"][0]["total_sold"] == 5
    assert data["generated_at"].endswith("Z")


def test_revenue_by_day(sold):
    today = utcnow().date()
    data = reporting_service.revenue_by_period(from_date=today, to_date=today, group_by="day")

    assert data["results"] == [{
        "period": today.isoformat(),
        "total_sales": 2,
        "total_revenue": 900.0,
        "total_discount": 50.0,
        "avg_order_value": 450.0,
        "unique_customers": 1,
    }]
    assert data["summary"]["total_sales"] == 2


def test_revenue_by_period_rejects_unknown_grouping(app):
    with pytest.raises(ValidationError):
        reporting_service.revenue_by_period(group_by="fortnight")


def test_revenue_by_customer_groups_walk_ins(sold, customer):
    rows = reporting_service.revenue_by_customer()
    by_id = {r["customer_id"]: r for r in rows}

    assert by_id[customer.id]["total_revenue"] == 750.0
    assert by_id[0]["customer_name"] == reporting_service.WALK_IN_NAME
    assert by_id[0]["total_revenue"] == 150.0
    assert rows[0]["customer_id"] == customer.id


def test_top_selling_products(sold):
    rows = reporting_service.top_selling_products()
    assert rows[0]["item_id"] == sold.id
    assert rows[0]["total_sold"] == 5
    assert rows[0]["total_orders"] == 2
    assert rows[0]["current_stock"] == 10


def test_product_profitability_uses_cost_snapshot(sold):
    row = reporting_service.product_profitability()[0]

    assert row["total_revenue"] == 950.0
    assert row["total_cost"] == 550.0
    assert row["total_profit"] == 400.0
    assert row["profit_margin_percent"] == pytest.approx(42.11, abs=0.01)


def test_inventory_value(stocked_item):
    data = reporting_service.inventory_value()

    assert data["summary"]["total_quantity"] == 15
    assert data["summary"]["total_value"] == 1650.0
    assert data["by_type"][0]["item_type"] == "Dog Food"


def test_low_stock_report_includes_type(make_item):
    empty = make_item(name="Fish Flakes")
    inventory_service.update_min_stock(item_id=empty.id, min_stock=2)

    rows = reporting_service.low_stock_report()

    assert rows[0]["item_id"] == empty.id
    assert rows[0]["item_type"] == "Dog Food"


def test_stock_movement_lists_in_and_out(sold):
    rows = reporting_service.stock_movement(item_id=sold.id)

    types = [r["movement_type"] for r in rows]
    assert types.count("IN") == 2
    assert types.count("OUT") == 2
    assert sum(r["quantity"] for r in rows) == 15 - 5


def test_limit_is_bounded(app):
    with pytest.raises(ValidationError):
        reporting_service.top_selling_products(limit=0)


def test_revenue_by_product(sold, item_type):
    row = reporting_service.revenue_by_product()[0]

    assert row["item_id"] == sold.id
    assert row["item_type"] == "Dog Food"
    assert row["total_sold"] == 5
    assert row["total_revenue"] == 950.0
    assert row["total_orders"] == 2
    assert row["avg_selling_price"] == 175.0
    assert row["estimated_profit"] == 400.0

    assert reporting_service.revenue_by_product(item_type_id=item_type.id + 1) == []


def test_slow_moving_products(sold, make_item, stock):
    idle = make_item(name="Bird Seed")
    stock(idle.id, 3, 20)
    trickle = make_item(name="Cat Collar")
    stock(trickle.id, 8, 5)
    sales_service.create_sale(
        lines=[SaleLineRequest(item_id=trickle.id, quantity=2, unit_price=Decimal("9"))],
    )
    make_item(name="Empty Shelf")

    data = reporting_service.slow_moving_products(days=30)
    rows = data["items"]

    assert data["period_days"] == 30
    assert [r["name"] for r in rows] == ["Bird Seed", "Cat Collar"]
    assert rows[0]["sold_in_period"] == 0
    assert rows[0]["stock_value"] == 60.0
    assert rows[0]["last_sale_date"] is None
    assert rows[1]["sold_in_period"] == 2
    assert rows[1]["current_stock"] == 6


@pytest.mark.parametrize("days", [0, 3651, 99999999])
def test_slow_moving_window_is_bounded(app, days):
    with pytest.raises(ValidationError):
        reporting_service.slow_moving_products(days=days)


def test_stock_movement_limit_keeps_newest(sold):
    rows = reporting_service.stock_movement(item_id=sold.id, limit=2)

    assert len(rows) == 2
    assert [r["movement_type"] for r in rows] == ["OUT", "OUT"]
