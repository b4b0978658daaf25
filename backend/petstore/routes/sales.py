# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/petstore/routes/sales.py
from flask import Blueprint, request

from ..models import Sale, SaleDetail
from ..responses import ok, json_body, arg_int, date_range
from ..services import sales_service
from ..services.sales_service import SaleLineRequest
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_sale,
    enforce_rules_sale_line,
    validate_lines,
    validate_payload,
)

SALE_POLICY = ModelValidationPolicy(
    writable_fields={"customer_id", "sale_date", "discount", "payment_method", "notes"},
)

SALE_LINE_POLICY = ModelValidationPolicy(
    writable_fields={"item_id", "quantity", "unit_price"},
    required_on_create={"item_id", "quantity", "unit_price"},
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
def list_sales():
    """
    Query params: page, per_page, search (customer name/phone), customer_id,
    from_date, to_date, payment_method, status, sort_by, sort_order
    """
    from_date, to_date = date_range()
    result = sales_service.list_sales(
        page=arg_int("page"),
        per_page=arg_int("per_page"),
        search=request.args.get("search"),
        customer_id=arg_int("customer_id"),
        from_date=from_date,
        to_date=to_date,
        payment_method=request.args.get("payment_method") or None,
        status=request.args.get("status") or None,
        sort_by=request.args.get("sort_by"),
        sort_order=request.args.get("sort_order"),
    )
    return ok(result)


@sales_bp.get("/summary")
def summary():
    from_date, to_date = date_range()
    return ok(sales_service.sales_summary(from_date=from_date, to_date=to_date))


@sales_bp.get("/<int:sale_id>")
def get_sale(sale_id: int):
    return ok(sales_service.get_sale(sale_id).to_dict(include_details=True))


@sales_bp.post("")
def create_sale():
    """
    Body: {"customer_id"?, "sale_date"?, "discount"?, "payment_method"?, "notes"?,
           "details": [{"item_id", "quantity", "unit_price"}, ...]}
    """
    payload = dict(json_body())
    raw_lines = payload.pop("details", None)

    header = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=True)
    enforce_rules_sale(header)

    cleaned = validate_lines(model=SaleDetail, lines=raw_lines, policy=SALE_LINE_POLICY)
    for index, line in enumerate(cleaned):
        try:
            enforce_rules_sale_line(line)
        except ValidationError as e:
            raise ValidationError(f"details[{index}]: {e}")

    sale = sales_service.create_sale(
        lines=[
            SaleLineRequest(item_id=line["item_id"], quantity=line["quantity"], unit_price=line["unit_price"])
            for line in cleaned
        ],
        customer_id=header.get("customer_id"),
        sale_date=header.get("sale_date"),
        discount=header.get("discount") or 0,
        payment_method=header.get("payment_method") or "cash",
        notes=header.get("notes"),
    )
    return ok(sale.to_dict(include_details=True), 201, "Sale created successfully")


@sales_bp.put("/<int:sale_id>/cancel")
def cancel_sale(sale_id: int):
    reason = json_body().get("reason")
    if reason is not None and not isinstance(reason, str):
        raise ValidationError("reason must be a string")
    sale = sales_service.cancel_sale(sale_id, reason=reason or "")
    return ok(sale.to_dict(include_details=True), message="Sale cancelled successfully")
