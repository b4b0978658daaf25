# Overview: Flask API routes for reports; parses input and returns JSON responses.

# backend/petstore/routes/reports.py
"""Reporting routes. All read-only; revenue figures count completed sales only."""

from flask import Blueprint, request

from ..responses import ok, arg_int, date_range
from ..services import reporting_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
def dashboard():
    return ok(reporting_service.dashboard())


@reports_bp.get("/revenue/by-period")
def revenue_by_period():
    from_date, to_date = date_range()
    result = reporting_service.revenue_by_period(
        from_date=from_date,
        to_date=to_date,
        group_by=request.args.get("group_by", "day"),
    )
    return ok(result)


@reports_bp.get("/revenue/by-customer")
def revenue_by_customer():
    from_date, to_date = date_range()
    result = reporting_service.revenue_by_customer(
        from_date=from_date, to_date=to_date, limit=arg_int("limit", 20)
    )
    return ok(result)


@reports_bp.get("/revenue/by-product")
def revenue_by_product():
    from_date, to_date = date_range()
    result = reporting_service.revenue_by_product(
        from_date=from_date,
        to_date=to_date,
        item_type_id=arg_int("item_type_id"),
        limit=arg_int("limit", 20),
    )
    return ok(result)


@reports_bp.get("/products/top-selling")
def top_selling():
    from_date, to_date = date_range()
    result = reporting_service.top_selling_products(
        from_date=from_date,
        to_date=to_date,
        item_type_id=arg_int("item_type_id"),
        limit=arg_int("limit"),
    )
    return ok(result)


@reports_bp.get("/products/slow-moving")
def slow_moving():
    result = reporting_service.slow_moving_products(
        days=arg_int("days", 30), limit=arg_int("limit", 20)
    )
    return ok(result)


@reports_bp.get("/products/profitability")
def profitability():
    from_date, to_date = date_range()
    result = reporting_service.product_profitability(
        from_date=from_date, to_date=to_date, limit=arg_int("limit", 20)
    )
    return ok(result)


@reports_bp.get("/inventory/low-stock")
def low_stock():
    return ok(reporting_service.low_stock_report())


@reports_bp.get("/inventory/value")
def inventory_value():
    return ok(reporting_service.inventory_value())


@reports_bp.get("/inventory/stock-movement")
def stock_movement():
    from_date, to_date = date_range()
    result = reporting_service.stock_movement(
        from_date=from_date,
        to_date=to_date,
        item_id=arg_int("item_id"),
        limit=arg_int("limit", 50),
    )
    return ok(result)
