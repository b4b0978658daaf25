# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

"""
Read-only reports over sales, items and inventory.

Only completed sales count as revenue. Every query is built from SQLAlchemy
expressions; client input reaches SQL only as bound parameters or through an
allowlist (group_by).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy import case, func, literal

from ..extensions import db
from ..models import Customer, Inventory, Item, ItemType, Sale, SaleDetail, StockIn, StockInDetail
from petstore.errors import ValidationError
from petstore.time_utils import day_bounds, to_utc_z, to_iso_date, utcnow
from petstore.validation import check_lookback_days

REVENUE_STATUS = "completed"
GROUP_BY_OPTIONS = ("day", "week", "month", "year")
WALK_IN_NAME = "Walk-in customer"
# Items selling at most this many units in the window count as slow-moving
SLOW_MOVING_MAX_SOLD = 2

_SQLITE_FORMATS = {"day": "%Y-%m-%d", "week": "%Y-W%W", "month": "%Y-%m", "year": "%Y"}
_PG_FORMATS = {"day": "YYYY-MM-DD", "week": "IYYY-\"W\"IW", "month": "YYYY-MM", "year": "YYYY"}
_MYSQL_FORMATS = {"day": "%Y-%m-%d", "week": "%x-W%v", "month": "%Y-%m", "year": "%Y"}


def _limit(limit: int | None) -> int:
    if limit is None:
        limit = current_app.config["REPORT_DEFAULT_LIMIT"]
    if limit < 1 or limit > 100:
        raise ValidationError("limit must be between 1 and 100")
    return limit


def _revenue_filters(from_date: date | None, to_date: date | None) -> list:
    start_dt, end_dt = day_bounds(from_date, to_date)
    filters = [Sale.status == REVENUE_STATUS, Sale.deleted_at.is_(None)]
    if start_dt is not None:
        filters.append(Sale.sale_date >= start_dt)
    if end_dt is not None:
        filters.append(Sale.sale_date <= end_dt)
    return filters


def _period_expression(group_by: str, column):
    if group_by not in GROUP_BY_OPTIONS:
        raise ValidationError(f"group_by must be one of: {', '.join(GROUP_BY_OPTIONS)}")
    dialect = db.session.get_bind().dialect.name
    if dialect == "postgresql":
        return func.to_char(column, _PG_FORMATS[group_by])
    if dialect in ("mysql", "mariadb"):
        return func.date_format(column, _MYSQL_FORMATS[group_by])
    return func.strftime(_SQLITE_FORMATS[group_by], column)


def _money(value) -> float:
    return float(value or 0)


def _sales_totals(filters: list) -> dict:
    row = db.session.query(
        func.count(Sale.id).label("total_sales"),
        func.coalesce(func.sum(Sale.final_amount), 0).label("total_revenue"),
        func.coalesce(func.avg(Sale.final_amount), 0).label("avg_order_value"),
    ).filter(*filters).one()
    return {
        "total_sales": int(row.total_sales or 0),
        "total_revenue": _money(row.total_revenue),
        "avg_order_value": round(_money(row.avg_order_value), 2),
    }


def _low_stock_rows(limit: int | None = None) -> list[Inventory]:
    query = (
        Inventory.live_query()
        .join(Item, Item.id == Inventory.item_id)
        .filter(Item.deleted_at.is_(None), Item.is_active.is_(True))
        .filter((Inventory.quantity <= Inventory.min_stock) | (Inventory.quantity == 0))
        .order_by(Inventory.quantity.asc(), Item.name.asc())
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def dashboard() -> dict:
    """Today's figures, this month against last month, low stock and today's best sellers."""
    now = utcnow()
    today = now.date()
    month_start = today.replace(day=1)
    last_month_start = (month_start - timedelta(days=1)).replace(day=1)

    today_filters = _revenue_filters(today, today)

    this_month = _sales_totals(_revenue_filters(month_start, today))
    last_month = _sales_totals(
        _revenue_filters(last_month_start, month_start - timedelta(days=1))
    )

    top_today = (
        db.session.query(
            Item.id.label("item_id"),
            Item.name.label("name"),
            func.sum(SaleDetail.quantity).label("total_sold"),
            func.sum(SaleDetail.subtotal).label("total_revenue"),
        )
        .join(SaleDetail, SaleDetail.item_id == Item.id)
        .join(Sale, Sale.id == SaleDetail.sale_id)
        .filter(*today_filters)
        .group_by(Item.id, Item.name)
        .order_by(func.sum(SaleDetail.quantity).desc())
        .limit(5)
        .all()
    )

    return {
        "today": _sales_totals(today_filters),
        "month_comparison": {
            "this_month": {k: this_month[k] for k in ("total_sales", "total_revenue")},
            "last_month": {k: last_month[k] for k in ("total_sales", "total_revenue")},
        },
        "low_stock_items": [inv.to_dict(include_item=True) for inv in _low_stock_rows(limit=10)],
        "top_products": [
            {
                "item_id": r.item_id,
                "name": r.name,
                "total_sold": int(r.total_sold or 0),
                "total_revenue": _money(r.total_revenue),
            }
            for r in top_today
        ],
        "generated_at": to_utc_z(now),
    }


def revenue_by_period(
    *,
    from_date: date | None = None,
    to_date: date | None = None,
    group_by: str = "day",
) -> dict:
    """
    Completed-sale revenue bucketed by day/week/month/year.

    With no range given, the current month to date is reported.
    """
    if from_date is None and to_date is None:
        from_date = utcnow().date().replace(day=1)

    period = _period_expression(group_by, Sale.sale_date).label("period")
    rows = (
        db.session.query(
            period,
            func.count(Sale.id).label("total_sales"),
            func.coalesce(func.sum(Sale.final_amount), 0).label("total_revenue"),
            func.coalesce(func.sum(Sale.discount), 0).label("total_discount"),
            func.coalesce(func.avg(Sale.final_amount), 0).label("avg_order_value"),
            func.count(func.distinct(Sale.customer_id)).label("unique_customers"),
        )
        .filter(*_revenue_filters(from_date, to_date))
        .group_by(period)
        .order_by(period.asc())
        .all()
    )

    results = [
        {
            "period": str(r.period),
            "total_sales": int(r.total_sales or 0),
            "total_revenue": _money(r.total_revenue),
            "total_discount": _money(r.total_discount),
            "avg_order_value": round(_money(r.avg_order_value), 2),
            "unique_customers": int(r.unique_customers or 0),
        }
        for r in rows
    ]
    total_revenue = sum(r["total_revenue"] for r in results)
    total_sales = sum(r["total_sales"] for r in results)
    return {
        "group_by": group_by,
        "from_date": to_iso_date(from_date),
        "to_date": to_iso_date(to_date),
        "results": results,
        "summary": {
            "total_revenue": total_revenue,
            "total_sales": total_sales,
            "avg_order_value": round(total_revenue / total_sales, 2) if total_sales else 0.0,
        },
    }


def revenue_by_customer(
    *,
    from_date: date | None = None,
    to_date: date | None = None,
    limit: int | None = None,
) -> list[dict]:
    """Revenue per customer; walk-in sales are grouped under customer_id 0."""
    customer_key = func.coalesce(Customer.id, 0)
    revenue = func.sum(Sale.final_amount)
    rows = (
        db.session.query(
            customer_key.label("customer_id"),
            func.coalesce(Customer.name, WALK_IN_NAME).label("customer_name"),
            func.coalesce(Customer.phone, "").label("customer_phone"),
            func.count(Sale.id).label("total_orders"),
            revenue.label("total_revenue"),
            func.avg(Sale.final_amount).label("avg_order_value"),
            func.min(Sale.sale_date).label("first_purchase"),
            func.max(Sale.sale_date).label("last_purchase"),
        )
        .outerjoin(Customer, Customer.id == Sale.customer_id)
        .filter(*_revenue_filters(from_date, to_date))
        .group_by(customer_key, Customer.name, Customer.phone)
        .order_by(revenue.desc())
        .limit(_limit(limit))
        .all()
    )
    return [
        {
            "customer_id": int(r.customer_id),
            "customer_name": r.customer_name,
            "customer_phone": r.customer_phone,
            "total_orders": int(r.total_orders or 0),
            "total_revenue": _money(r.total_revenue),
            "avg_order_value": round(_money(r.avg_order_value), 2),
            "first_purchase": _render_timestamp(r.first_purchase),
            "last_purchase": _render_timestamp(r.last_purchase),
        }
        for r in rows
    ]


def revenue_by_product(
    *,
    from_date: date | None = None,
    to_date: date | None = None,
    item_type_id: int | None = None,
    limit: int | None = None,
) -> list[dict]:
    """
    Revenue per item, highest first.

    estimated_profit uses the cost snapshot on each sale line and falls back to
    the item's current avg_cost for lines recorded without one.
    """
    revenue = func.sum(SaleDetail.subtotal)
    line_cost = func.coalesce(SaleDetail.cost_price, Inventory.avg_cost, 0)
    query = (
        db.session.query(
            Item.id.label("item_id"),
            Item.name.label("name"),
            Item.code.label("code"),
            ItemType.name.label("item_type"),
            func.sum(SaleDetail.quantity).label("total_sold"),
            revenue.label("total_revenue"),
            func.avg(SaleDetail.unit_price).label("avg_selling_price"),
            func.count(func.distinct(Sale.id)).label("total_orders"),
            (revenue - func.sum(SaleDetail.quantity * line_cost)).label("estimated_profit"),
        )
        .join(SaleDetail, SaleDetail.item_id == Item.id)
        .join(Sale, Sale.id == SaleDetail.sale_id)
        .join(ItemType, ItemType.id == Item.item_type_id)
        .outerjoin(Inventory, (Inventory.item_id == Item.id) & Inventory.deleted_at.is_(None))
        .filter(*_revenue_filters(from_date, to_date))
    )
    if item_type_id is not None:
        query = query.filter(Item.item_type_id == item_type_id)

    rows = (
        query.group_by(Item.id, Item.name, Item.code, ItemType.name)
        .order_by(revenue.desc())
        .limit(_limit(limit))
        .all()
    )
    return [
        {
            "item_id": r.item_id,
            "name": r.name,
            "code": r.code,
            "item_type": r.item_type,
            "total_sold": int(r.total_sold or 0),
            "total_revenue": _money(r.total_revenue),
            "avg_selling_price": round(_money(r.avg_selling_price), 2),
            "total_orders": int(r.total_orders or 0),
            "estimated_profit": round(_money(r.estimated_profit), 2),
        }
        for r in rows
    ]


def _render_timestamp(value):
    # SQLite hands aggregate datetimes back as strings
    if isinstance(value, datetime):
        return to_utc_z(value)
    return value


def top_selling_products(
    *,
    from_date: date | None = None,
    to_date: date | None = None,
    item_type_id: int | None = None,
    limit: int | None = None,
) -> list[dict]:
    total_sold = func.sum(SaleDetail.quantity)
    query = (
        db.session.query(
            Item.id.label("item_id"),
            Item.name.label("name"),
            Item.code.label("code"),
            ItemType.name.label("item_type"),
            total_sold.label("total_sold"),
            func.sum(SaleDetail.subtotal).label("total_revenue"),
            func.count(func.distinct(Sale.id)).label("total_orders"),
            func.avg(SaleDetail.unit_price).label("avg_price"),
            func.coalesce(func.max(Inventory.quantity), 0).label("current_stock"),
        )
        .join(SaleDetail, SaleDetail.item_id == Item.id)
        .join(Sale, Sale.id == SaleDetail.sale_id)
        .join(ItemType, ItemType.id == Item.item_type_id)
        .outerjoin(Inventory, (Inventory.item_id == Item.id) & Inventory.deleted_at.is_(None))
        .filter(*_revenue_filters(from_date, to_date))
    )
    if item_type_id is not None:
        query = query.filter(Item.item_type_id == item_type_id)

    rows = (
        query.group_by(Item.id, Item.name, Item.code, ItemType.name)
        .order_by(total_sold.desc())
        .limit(_limit(limit))
        .all()
    )
    return [
        {
            "item_id": r.item_id,
            "name": r.name,
            "code": r.code,
            "item_type": r.item_type,
            "total_sold": int(r.total_sold or 0),
            "total_revenue": _money(r.total_revenue),
            "total_orders": int(r.total_orders or 0),
            "avg_price": round(_money(r.avg_price), 2),
            "current_stock": int(r.current_stock or 0),
        }
        for r in rows
    ]


def slow_moving_products(*, days: int = 30, limit: int | None = None) -> dict:
    """
    Active items still in stock that sold at most SLOW_MOVING_MAX_SOLD units
    in completed sales over the last `days` days. Slowest first, then the
    largest stock.
    """
    check_lookback_days(days)
    cutoff = utcnow() - timedelta(days=days)

    recent = (
        db.session.query(
            SaleDetail.item_id.label("item_id"),
            func.sum(SaleDetail.quantity).label("total_sold"),
            func.max(Sale.sale_date).label("last_sale_date"),
        )
        .join(Sale, Sale.id == SaleDetail.sale_id)
        .filter(Sale.status == REVENUE_STATUS, Sale.deleted_at.is_(None), Sale.sale_date >= cutoff)
        .group_by(SaleDetail.item_id)
        .subquery()
    )
    sold = func.coalesce(recent.c.total_sold, 0)
    stock = func.coalesce(Inventory.quantity, 0)
    unit_cost = func.coalesce(Inventory.avg_cost, 0)

    rows = (
        db.session.query(
            Item.id.label("item_id"),
            Item.name.label("name"),
            Item.code.label("code"),
            ItemType.name.label("item_type"),
            stock.label("current_stock"),
            unit_cost.label("avg_cost"),
            Item.selling_price.label("selling_price"),
            sold.label("sold_in_period"),
            recent.c.last_sale_date.label("last_sale_date"),
            (stock * unit_cost).label("stock_value"),
        )
        .select_from(Item)
        .join(ItemType, ItemType.id == Item.item_type_id)
        .outerjoin(Inventory, (Inventory.item_id == Item.id) & Inventory.deleted_at.is_(None))
        .outerjoin(recent, recent.c.item_id == Item.id)
        .filter(
            Item.is_active.is_(True),
            Item.deleted_at.is_(None),
            sold <= SLOW_MOVING_MAX_SOLD,
            stock > 0,
        )
        .order_by(sold.asc(), stock.desc(), Item.name.asc())
        .limit(_limit(limit))
        .all()
    )
    return {
        "period_days": days,
        "cutoff_date": to_utc_z(cutoff),
        "items": [
            {
                "item_id": r.item_id,
                "name": r.name,
                "code": r.code,
                "item_type": r.item_type,
                "current_stock": int(r.current_stock or 0),
                "avg_cost": round(_money(r.avg_cost), 4),
                "selling_price": _money(r.selling_price),
                "sold_in_period": int(r.sold_in_period or 0),
                "last_sale_date": _render_timestamp(r.last_sale_date),
                "stock_value": round(_money(r.stock_value), 2),
            }
            for r in rows
        ],
    }


def product_profitability(
    *,
    from_date: date | None = None,
    to_date: date | None = None,
    limit: int | None = None,
) -> list[dict]:
    """
    Profit per item from the cost snapshot on each sale line.

    margin_percent = (revenue - cost) / revenue * 100; None when revenue is 0.
    """
    revenue = func.sum(SaleDetail.subtotal)
    cost = func.sum(SaleDetail.quantity * func.coalesce(SaleDetail.cost_price, 0))
    profit = revenue - cost

    rows = (
        db.session.query(
            Item.id.label("item_id"),
            Item.name.label("name"),
            Item.code.label("code"),
            ItemType.name.label("item_type"),
            func.sum(SaleDetail.quantity).label("total_sold"),
            revenue.label("total_revenue"),
            cost.label("total_cost"),
            func.avg(SaleDetail.unit_price).label("avg_selling_price"),
            func.avg(SaleDetail.cost_price).label("avg_cost_price"),
            profit.label("total_profit"),
        )
        .join(SaleDetail, SaleDetail.item_id == Item.id)
        .join(Sale, Sale.id == SaleDetail.sale_id)
        .join(ItemType, ItemType.id == Item.item_type_id)
        .filter(*_revenue_filters(from_date, to_date))
        .group_by(Item.id, Item.name, Item.code, ItemType.name)
        .having(func.sum(SaleDetail.quantity) > 0)
        .order_by(profit.desc())
        .limit(_limit(limit))
        .all()
    )

    results = []
    for r in rows:
        total_revenue = _money(r.total_revenue)
        total_profit = _money(r.total_profit)
        results.append({
            "item_id": r.item_id,
            "name": r.name,
            "code": r.code,
            "item_type": r.item_type,
            "total_sold": int(r.total_sold or 0),
            "total_revenue": total_revenue,
            "total_cost": round(_money(r.total_cost), 2),
            "avg_selling_price": round(_money(r.avg_selling_price), 2),
            "avg_cost_price": round(_money(r.avg_cost_price), 4),
            "total_profit": round(total_profit, 2),
            "profit_margin_percent": (
                round(total_profit / total_revenue * 100, 2) if total_revenue else None
            ),
        })
    return results


def low_stock_report() -> list[dict]:
    rows = _low_stock_rows()
    data = []
    for inv in rows:
        entry = inv.to_dict(include_item=True)
        entry["item_type"] = inv.item.item_type.name if inv.item.item_type else None
        data.append(entry)
    return data


def inventory_value() -> dict:
    """Stock valued at avg_cost (NULL counts as 0), per item type and overall."""
    value = func.coalesce(func.sum(Inventory.quantity * func.coalesce(Inventory.avg_cost, 0)), 0)
    base_filters = (
        Inventory.deleted_at.is_(None),
        Item.deleted_at.is_(None),
        Item.is_active.is_(True),
    )

    by_type = (
        db.session.query(
            ItemType.id.label("item_type_id"),
            ItemType.name.label("item_type"),
            func.count(func.distinct(Item.id)).label("total_items"),
            func.coalesce(func.sum(Inventory.quantity), 0).label("total_quantity"),
            value.label("total_value"),
            func.coalesce(func.avg(func.coalesce(Inventory.avg_cost, 0)), 0).label("avg_cost_price"),
        )
        .select_from(Inventory)
        .join(Item, Item.id == Inventory.item_id)
        .join(ItemType, ItemType.id == Item.item_type_id)
        .filter(*base_filters)
        .group_by(ItemType.id, ItemType.name)
        .order_by(value.desc())
        .all()
    )

    summary = (
        db.session.query(
            func.count(func.distinct(Item.id)).label("total_products"),
            func.coalesce(func.sum(Inventory.quantity), 0).label("total_quantity"),
            value.label("total_value"),
            func.coalesce(func.sum(case((Inventory.quantity <= Inventory.min_stock, 1), else_=0)), 0)
            .label("low_stock_items"),
            func.coalesce(func.sum(case((Inventory.quantity == 0, 1), else_=0)), 0)
            .label("out_of_stock_items"),
        )
        .select_from(Inventory)
        .join(Item, Item.id == Inventory.item_id)
        .filter(*base_filters)
        .one()
    )

    return {
        "by_type": [
            {
                "item_type_id": r.item_type_id,
                "item_type": r.item_type,
                "total_items": int(r.total_items or 0),
                "total_quantity": int(r.total_quantity or 0),
                "total_value": round(_money(r.total_value), 2),
                "avg_cost_price": round(_money(r.avg_cost_price), 4),
            }
            for r in by_type
        ],
        "summary": {
            "total_products": int(summary.total_products or 0),
            "total_quantity": int(summary.total_quantity or 0),
            "total_value": round(_money(summary.total_value), 2),
            "low_stock_items": int(summary.low_stock_items or 0),
            "out_of_stock_items": int(summary.out_of_stock_items or 0),
        },
    }


def stock_movement(
    *,
    from_date: date | None = None,
    to_date: date | None = None,
    item_id: int | None = None,
    limit: int | None = 50,
) -> list[dict]:
    """
    Receipts (IN, positive quantity) and completed sales (OUT, negative
    quantity) merged newest first.
    """
    limit = _limit(limit)
    start_dt, end_dt = day_bounds(from_date, to_date)

    receipts = (
        db.session.query(
            StockInDetail.item_id.label("item_id"),
            Item.name.label("item_name"),
            Item.code.label("item_code"),
            literal("IN").label("movement_type"),
            StockInDetail.quantity.label("quantity"),
            StockInDetail.cost_price.label("unit_price"),
            StockInDetail.subtotal.label("total_amount"),
            StockIn.import_date.label("moved_on"),
            StockIn.code.label("reference_code"),
        )
        .join(StockIn, StockIn.id == StockInDetail.stock_in_id)
        .join(Item, Item.id == StockInDetail.item_id)
        .filter(StockIn.status == "completed", StockIn.deleted_at.is_(None))
    )
    if from_date is not None:
        receipts = receipts.filter(StockIn.import_date >= from_date)
    if to_date is not None:
        receipts = receipts.filter(StockIn.import_date <= to_date)

    sales = (
        db.session.query(
            SaleDetail.item_id.label("item_id"),
            Item.name.label("item_name"),
            Item.code.label("item_code"),
            literal("OUT").label("movement_type"),
            (-SaleDetail.quantity).label("quantity"),
            SaleDetail.unit_price.label("unit_price"),
            SaleDetail.subtotal.label("total_amount"),
            Sale.sale_date.label("moved_on"),
            Sale.code.label("reference_code"),
        )
        .join(Sale, Sale.id == SaleDetail.sale_id)
        .join(Item, Item.id == SaleDetail.item_id)
        .filter(Sale.status == REVENUE_STATUS, Sale.deleted_at.is_(None))
    )
    if start_dt is not None:
        sales = sales.filter(Sale.sale_date >= start_dt)
    if end_dt is not None:
        sales = sales.filter(Sale.sale_date <= end_dt)

    if item_id is not None:
        receipts = receipts.filter(StockInDetail.item_id == item_id)
        sales = sales.filter(SaleDetail.item_id == item_id)

    # each side only needs its newest `limit` rows before the merge
    receipts = receipts.order_by(StockIn.import_date.desc(), StockInDetail.id.desc()).limit(limit)
    sales = sales.order_by(Sale.sale_date.desc(), SaleDetail.id.desc()).limit(limit)

    movements = []
    for r in receipts.all() + sales.all():
        moved_on = r.moved_on
        sort_key = moved_on if isinstance(moved_on, datetime) else datetime.combine(moved_on, datetime.min.time())
        movements.append((sort_key, {
            "item_id": r.item_id,
            "item_name": r.item_name,
            "item_code": r.item_code,
            "movement_type": r.movement_type,
            "description": "Stock In" if r.movement_type == "IN" else "Sale",
            "quantity": int(r.quantity),
            "unit_price": _money(r.unit_price),
            "total_amount": _money(r.total_amount),
            "date": to_utc_z(moved_on) if isinstance(moved_on, datetime) else to_iso_date(moved_on),
            "reference_code": r.reference_code,
        }))

    movements.sort(key=lambda m: m[1]["item_name"])
    movements.sort(key=lambda m: m[0], reverse=True)
    return [m[1] for m in movements[:limit]]
