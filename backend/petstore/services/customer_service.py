# Overview: Service-layer operations for customers; encapsulates business logic and database work.

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Customer, Sale
from petstore.errors import ConflictError, NotFoundError, ValidationError
from petstore.time_utils import utcnow, to_utc_z
from petstore.validation import check_lookback_days
from .concurrency import run_with_retry, transaction_scope
from .document_service import next_document_code
from .pagination import paginate, resolve_sort

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "email", "address", "birthday", "notes", "is_active"}

CUSTOMER_SORT_COLUMNS = {
    "created_at": Customer.created_at,
    "name": Customer.name,
    "code": Customer.code,
}

# Sales that count toward a customer's history
COUNTED_SALE_STATUS = "completed"

DEFAULT_ANALYTICS_DAYS = 90
TOP_ITEMS_LIMIT = 5


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def get_customer(customer_id: int) -> Customer:
    customer = Customer.live_query().filter(Customer.id == customer_id).first()
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def get_customer_with_recent_sales(customer_id: int, *, limit: int = 10) -> dict:
    customer = get_customer(customer_id)
    recent = (
        Sale.live_query()
        .filter(Sale.customer_id == customer.id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )
    data = customer.to_dict()
    data["recent_sales"] = [s.to_dict() for s in recent]
    return data


def list_customers(
    *,
    page: int | None = None,
    per_page: int | None = None,
    search: str | None = None,
    is_active: bool | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> dict:
    query = Customer.live_query()
    if search:
        pattern = _like(search)
        query = query.filter(or_(
            Customer.name.ilike(pattern, escape="\\"),
            Customer.phone.ilike(pattern, escape="\\"),
            Customer.email.ilike(pattern, escape="\\"),
        ))
    if is_active is not None:
        query = query.filter(Customer.is_active.is_(is_active))

    order = resolve_sort(CUSTOMER_SORT_COLUMNS, sort_by, sort_order, default="created_at")
    query = query.order_by(order, Customer.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda c: c.to_dict())


def search_customers(term: str, *, limit: int = 10) -> list[dict]:
    """Autocomplete lookup over active customers by name or phone."""
    query = Customer.live_query().filter(Customer.is_active.is_(True))
    if term and term.strip():
        pattern = _like(term.strip())
        query = query.filter(or_(
            Customer.name.ilike(pattern, escape="\\"),
            Customer.phone.ilike(pattern, escape="\\"),
        ))
    rows = query.order_by(Customer.name.asc()).limit(max(1, min(limit, 100))).all()
    return [{"id": c.id, "code": c.code, "name": c.name, "phone": c.phone} for c in rows]


def _ensure_phone_free(phone: str | None, *, exclude_id: int | None = None) -> None:
    if not phone:
        return
    query = Customer.live_query().filter(Customer.phone == phone)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Phone number already exists")


def _apply_patch(customer: Customer, patch: dict) -> None:
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)


def create_customer(*, patch: dict) -> Customer:
    if not patch.get("name"):
        raise ValidationError("name is required")

    def _op():
        with transaction_scope() as session:
            _ensure_phone_free(patch.get("phone"))
            customer = Customer(code=next_document_code("CUSTOMER"))
            _apply_patch(customer, patch)
            if customer.is_active is None:
                customer.is_active = True
            session.add(customer)
        current_app.logger.info("Customer created code=%s", customer.code)
        return customer

    return run_with_retry(_op)


def update_customer(customer_id: int, *, patch: dict) -> Customer:
    if "name" in patch and not patch["name"]:
        raise ValidationError("name cannot be blank")

    def _op():
        with transaction_scope():
            customer = get_customer(customer_id)
            if patch.get("phone") and patch["phone"] != customer.phone:
                _ensure_phone_free(patch["phone"], exclude_id=customer.id)
            _apply_patch(customer, patch)
        return customer

    return run_with_retry(_op)


def delete_customer(customer_id: int) -> None:
    """Soft-delete; customers referenced by sales are kept."""
    def _op():
        with transaction_scope():
            customer = get_customer(customer_id)
            sales_count = (
                db.session.query(Sale)
                .filter(Sale.customer_id == customer.id)
                .count()
            )
            if sales_count:
                raise ConflictError(
                    f"Cannot delete customer. Customer has {sales_count} sale(s) associated",
                    details={"sales": sales_count},
                )
            customer.soft_delete()
        current_app.logger.info("Customer soft-deleted id=%s", customer_id)

    run_with_retry(_op)


def customer_analytics(customer_id: int, *, days: int = DEFAULT_ANALYTICS_DAYS) -> dict:
    """
    Purchase behaviour over the last `days` days (completed sales only).

    day_frequency is indexed Monday=0 .. Sunday=6.
    """
    check_lookback_days(days)

    customer = get_customer(customer_id)
    since = utcnow() - timedelta(days=days)

    sales = (
        Sale.live_query()
        .filter(
            Sale.customer_id == customer.id,
            Sale.status == COUNTED_SALE_STATUS,
            Sale.sale_date >= since,
        )
        .order_by(Sale.sale_date.asc(), Sale.id.asc())
        .all()
    )

    total_spent = sum((Decimal(s.final_amount) for s in sales), Decimal("0"))
    total_transactions = len(sales)
    avg_value = total_spent / total_transactions if total_transactions else Decimal("0")

    purchases: dict[int, dict] = {}
    day_frequency = [0] * 7
    for sale in sales:
        day_frequency[sale.sale_date.weekday()] += 1
        for detail in sale.details:
            entry = purchases.setdefault(
                detail.item_id,
                {"item_id": detail.item_id, "name": detail.item.name, "quantity": 0, "amount": Decimal("0")},
            )
            entry["quantity"] += detail.quantity
            entry["amount"] += Decimal(detail.subtotal)

    top_items = sorted(purchases.values(), key=lambda e: e["quantity"], reverse=True)[:TOP_ITEMS_LIMIT]

    return {
        "customer": customer.to_dict(),
        "analytics": {
            "days": days,
            "total_spent": float(total_spent),
            "total_transactions": total_transactions,
            "avg_transaction_value": round(float(avg_value), 2),
            "top_items": [dict(e, amount=float(e["amount"])) for e in top_items],
            "day_frequency": day_frequency,
            "last_purchase": to_utc_z(sales[-1].sale_date) if sales else None,
        },
    }
