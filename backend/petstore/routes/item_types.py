# Overview: Flask API routes for item types; parses input and returns JSON responses.

from flask import Blueprint, request

from ..models import ItemType
from ..responses import ok, json_body, arg_int, arg_bool
from ..services import catalog_service
from ..validation import ModelValidationPolicy, validate_payload

ITEM_TYPE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "is_active"},
    required_on_create={"name"},
    defaults={"is_active": True},
)

item_types_bp = Blueprint("item_types", __name__, url_prefix="/api/item-types")


@item_types_bp.get("")
def list_item_types():
    """
    Query params: page, per_page, search, is_active (true/false/all)
    """
    result = catalog_service.list_item_types(
        page=arg_int("page"),
        per_page=arg_int("per_page"),
        search=request.args.get("search"),
        is_active=arg_bool("is_active"),
    )
    return ok(result)


@item_types_bp.get("/active")
def list_active_item_types():
    return ok(catalog_service.list_active_item_types())


@item_types_bp.get("/<int:item_type_id>")
def get_item_type(item_type_id: int):
    return ok(catalog_service.get_item_type(item_type_id).to_dict())


@item_types_bp.post("")
def create_item_type():
    patch = validate_payload(model=ItemType, payload=json_body(), policy=ITEM_TYPE_POLICY, partial=False)
    item_type = catalog_service.create_item_type(patch=patch)
    return ok(item_type.to_dict(), 201, "Item type created successfully")


@item_types_bp.put("/<int:item_type_id>")
def update_item_type(item_type_id: int):
    patch = validate_payload(model=ItemType, payload=json_body(), policy=ITEM_TYPE_POLICY, partial=True)
    item_type = catalog_service.update_item_type(item_type_id, patch=patch)
    return ok(item_type.to_dict(), message="Item type updated successfully")


@item_types_bp.delete("/<int:item_type_id>")
def delete_item_type(item_type_id: int):
    catalog_service.delete_item_type(item_type_id)
    return ok(None, message="Item type deleted successfully")
