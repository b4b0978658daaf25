# Overview: Flask API routes for catalog items; parses input and returns JSON responses.

# backend/petstore/routes/items.py
"""
Item catalog routes.

Creating an item also creates its Inventory row; deleting is a soft delete and
is refused once the item appears on a sale.
"""
from flask import Blueprint, request

from ..models import Item
from ..responses import ok, json_body, arg_int, arg_bool
from ..services import catalog_service, inventory_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_item

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"name", "item_type_id", "description", "selling_price", "unit", "image_path", "is_active"},
    required_on_create={"name", "item_type_id", "selling_price"},
    defaults={"unit": "pcs", "is_active": True},
)

items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("")
def list_items():
    """
    Query params:
    - page, per_page
    - search: matches name or code
    - item_type_id: int
    - is_active: true/false/all
    - sort_by: created_at|name|code|selling_price, sort_order: asc|desc
    """
    result = catalog_service.list_items(
        page=arg_int("page"),
        per_page=arg_int("per_page"),
        search=request.args.get("search"),
        item_type_id=arg_int("item_type_id"),
        is_active=arg_bool("is_active"),
        sort_by=request.args.get("sort_by"),
        sort_order=request.args.get("sort_order"),
    )
    return ok(result)


@items_bp.get("/search")
def search_items():
    term = request.args.get("q", "")
    return ok(catalog_service.search_items(term, limit=arg_int("limit", 20)))


@items_bp.get("/low-stock")
def low_stock_items():
    rows = inventory_service.list_low_stock()
    return ok([inv.item.to_dict(include_inventory=True) for inv in rows])


@items_bp.get("/<int:item_id>")
def get_item(item_id: int):
    return ok(catalog_service.get_item(item_id).to_dict(include_inventory=True))


@items_bp.post("")
def create_item():
    patch = validate_payload(model=Item, payload=json_body(), policy=ITEM_POLICY, partial=False)
    enforce_rules_item(patch)
    item = catalog_service.create_item(patch=patch)
    return ok(item.to_dict(include_inventory=True), 201, "Item created successfully")


@items_bp.put("/<int:item_id>")
def update_item(item_id: int):
    patch = validate_payload(model=Item, payload=json_body(), policy=ITEM_POLICY, partial=True)
    enforce_rules_item(patch)
    item = catalog_service.update_item(item_id, patch=patch)
    return ok(item.to_dict(include_inventory=True), message="Item updated successfully")


@items_bp.delete("/<int:item_id>")
def delete_item(item_id: int):
    catalog_service.delete_item(item_id)
    return ok(None, message="Item deleted successfully")
