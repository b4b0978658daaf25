from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from petstore.errors import ConflictError, NotFoundError
from petstore.services import customer_service, sales_service
from petstore.services.sales_service import SaleLineRequest
from petstore.time_utils import utcnow


def test_create_customer_generates_code(customer):
    assert customer.code.startswith("CU")
    assert customer.is_active is True


def test_phone_must_be_unique(customer):
    with pytest.raises(ConflictError):
        customer_service.create_customer(patch={"name": "Other", "phone": customer.phone})


def test_customers_without_phone_do_not_conflict(app):
    customer_service.create_customer(patch={"name": "Walk A", "phone": None})
    customer_service.create_customer(patch={"name": "Walk B", "phone": None})
    assert customer_service.list_customers()["pagination"]["total"] == 2


def test_update_to_taken_phone_conflicts(customer):
    other = customer_service.create_customer(patch={"name": "Sam", "phone": "0900000002"})
    with pytest.raises(ConflictError):
        customer_service.update_customer(other.id, patch={"phone": customer.phone})


def test_delete_is_soft_and_hides_customer(customer):
    customer_service.delete_customer(customer.id)
    with pytest.raises(NotFoundError):
        customer_service.get_customer(customer.id)


def test_delete_refused_when_customer_has_sales(customer, stocked_item):
    sales_service.create_sale(
        customer_id=customer.id,
        lines=[SaleLineRequest(item_id=stocked_item.id, quantity=1, unit_price=Decimal("200"))],
    )
    with pytest.raises(ConflictError):
        customer_service.delete_customer(customer.id)


def test_search_matches_name_or_phone(customer):
    assert [c["id"] for c in customer_service.search_customers("jane")] == [customer.id]
    assert [c["id"] for c in customer_service.search_customers("0000001")] == [customer.id]
    assert customer_service.search_customers("nobody") == []


def test_analytics_over_recent_completed_sales(customer, stocked_item, make_item, stock):
    treats = make_item(name="Dog Treats")
    stock(treats.id, 20, "5")
    sale_day = datetime.combine(utcnow().date() - timedelta(days=2), datetime.min.time())

    sales_service.create_sale(
        customer_id=customer.id,
        sale_date=sale_day,
        lines=[
            SaleLineRequest(item_id=stocked_item.id, quantity=1, unit_price=Decimal("200")),
            SaleLineRequest(item_id=treats.id, quantity=6, unit_price=Decimal("10")),
        ],
    )
    refunded = sales_service.create_sale(
        customer_id=customer.id,
        sale_date=sale_day,
        lines=[SaleLineRequest(item_id=treats.id, quantity=1, unit_price=Decimal("10"))],
    )
    sales_service.cancel_sale(refunded.id, reason="return")
    sales_service.create_sale(
        customer_id=customer.id,
        sale_date=utcnow() - timedelta(days=200),
        lines=[SaleLineRequest(item_id=stocked_item.id, quantity=1, unit_price=Decimal("200"))],
    )

    result = customer_service.customer_analytics(customer.id, days=90)["analytics"]

    assert result["total_transactions"] == 1
    assert result["total_spent"] == 260.0
    assert result["avg_transaction_value"] == 260.0
    assert result["top_items"][0]["name"] == "Dog Treats"
    assert result["top_items"][0]["quantity"] == 6
    assert sum(result["day_frequency"]) == 1
    assert result["day_frequency"][sale_day.weekday()] == 1
    assert result["last_purchase"] is not None
