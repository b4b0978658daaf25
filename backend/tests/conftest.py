"""
Pytest fixtures for the pet store backend tests.

Provides an in-memory database per test, the test client, and catalog /
customer factories.
"""

from decimal import Decimal

import pytest

from petstore import create_app
from petstore.config import TestingConfig
from petstore.extensions import db
from petstore.services import catalog_service, customer_service
from petstore.services.stock_in_service import StockInLine, receive_stock


@pytest.fixture(scope='function')
def app():
    """Create application with a fresh schema for each test."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


@pytest.fixture(scope='function')
def item_type(app):
    """Create the 'Dog Food' item type."""
    return catalog_service.create_item_type(patch={"name": "Dog Food", "is_active": True})


@pytest.fixture(scope='function')
def make_item(app, item_type):
    """Factory: create an item (and its empty inventory row)."""
    counter = {"n": 0}

    def _make(name=None, selling_price="200.00", **extra):
        counter["n"] += 1
        patch = {
            "name": name or f"Test Item {counter['n']}",
            "item_type_id": item_type.id,
            "selling_price": Decimal(selling_price),
            "unit": "pcs",
            "is_active": True,
        }
        patch.update(extra)
        return catalog_service.create_item(patch=patch)

    return _make


@pytest.fixture(scope='function')
def item(make_item):
    return make_item(name="Premium Kibble 5kg")


@pytest.fixture(scope='function')
def stock(app):
    """Helper: receive quantity@cost for an item in its own receipt."""
    def _stock(item_id, quantity, cost_price):
        return receive_stock(lines=[
            StockInLine(item_id=item_id, quantity=quantity, cost_price=Decimal(str(cost_price)))
        ])

    return _stock


@pytest.fixture(scope='function')
def stocked_item(item, stock):
    """Item holding 15 units at an average cost of 110 (10@100 + 5@130)."""
    stock(item.id, 10, "100")
    stock(item.id, 5, "130")
    return item


@pytest.fixture(scope='function')
def customer(app):
    return customer_service.create_customer(patch={
        "name": "Jane Doe",
        "phone": "0900000001",
        "email": "jane@example.com",
        "is_active": True,
    })
