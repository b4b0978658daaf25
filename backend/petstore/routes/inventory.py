# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/petstore/routes/inventory.py
from flask import Blueprint, request

from ..models import StockIn, StockInDetail
from ..responses import ok, json_body, arg_int, arg_bool, date_range
from ..services import inventory_service
from ..services.stock_in_service import StockInLine, get_stock_in, receive_stock
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    coerce_int,
    enforce_rules_inventory_adjust,
    enforce_rules_stock_in_line,
    validate_lines,
    validate_payload,
)

STOCK_IN_POLICY = ModelValidationPolicy(
    writable_fields={"import_date", "notes"},
)

STOCK_IN_LINE_POLICY = ModelValidationPolicy(
    writable_fields={"item_id", "quantity", "cost_price", "expiry_date"},
    required_on_create={"item_id", "quantity", "cost_price"},
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
def list_inventory():
    """
    Query params:
    - page, per_page
    - search: item name or code
    - low_stock: true to keep only rows at/below min_stock or empty
    - sort_by: updated_at|last_updated|quantity|min_stock|avg_cost, sort_order: asc|desc
    """
    result = inventory_service.list_inventory(
        page=arg_int("page"),
        per_page=arg_int("per_page"),
        search=request.args.get("search"),
        low_stock=bool(arg_bool("low_stock")),
        sort_by=request.args.get("sort_by"),
        sort_order=request.args.get("sort_order"),
    )
    return ok(result)


@inventory_bp.get("/low-stock")
def low_stock():
    rows = inventory_service.list_low_stock()
    return ok([inv.to_dict(include_item=True) for inv in rows])


@inventory_bp.get("/stock-in-history")
def stock_in_history():
    from_date, to_date = date_range()
    result = inventory_service.list_stock_in_history(
        page=arg_int("page"),
        per_page=arg_int("per_page"),
        from_date=from_date,
        to_date=to_date,
    )
    return ok(result)


@inventory_bp.get("/item/<int:item_id>")
def get_item_inventory(item_id: int):
    inventory = inventory_service.get_inventory_by_item(item_id)
    return ok(inventory.to_dict(include_item=True))


@inventory_bp.get("/stock-in/<int:stock_in_id>")
def get_stock_in_receipt(stock_in_id: int):
    return ok(get_stock_in(stock_in_id).to_dict(include_details=True))


@inventory_bp.post("/stock-in")
def stock_in():
    """
    Body: {"import_date"?: "YYYY-MM-DD", "notes"?: str,
           "details": [{"item_id", "quantity", "cost_price", "expiry_date"?}, ...]}
    """
    payload = dict(json_body())
    raw_lines = payload.pop("details", None)

    header = validate_payload(model=StockIn, payload=payload, policy=STOCK_IN_POLICY, partial=True)
    cleaned = validate_lines(model=StockInDetail, lines=raw_lines, policy=STOCK_IN_LINE_POLICY)
    for index, line in enumerate(cleaned):
        try:
            enforce_rules_stock_in_line(line)
        except ValidationError as e:
            raise ValidationError(f"details[{index}]: {e}")

    stock_in = receive_stock(
        lines=[
            StockInLine(
                item_id=line["item_id"],
                quantity=line["quantity"],
                cost_price=line["cost_price"],
                expiry_date=line.get("expiry_date"),
            )
            for line in cleaned
        ],
        import_date=header.get("import_date"),
        notes=header.get("notes"),
    )
    return ok(stock_in.to_dict(include_details=True), 201, "Stock in completed successfully")


@inventory_bp.post("/adjust")
def adjust():
    """Body: {"item_id", "new_quantity" (>= 0), "reason"}. avg_cost is not recalculated."""
    params = enforce_rules_inventory_adjust(json_body())
    result = inventory_service.adjust_inventory(**params)
    return ok(result, message="Inventory adjusted successfully")


@inventory_bp.put("/min-stock/<int:item_id>")
def update_min_stock(item_id: int):
    payload = json_body()
    if payload.get("min_stock") is None:
        raise ValidationError("min_stock is required")
    min_stock = coerce_int("min_stock", payload["min_stock"])
    inventory = inventory_service.update_min_stock(item_id=item_id, min_stock=min_stock)
    return ok(inventory.to_dict(include_item=True), message="Minimum stock updated successfully")
