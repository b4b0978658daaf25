# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request

from ..models import Customer
from ..responses import ok, json_body, arg_int, arg_bool
from ..services import customer_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_customer

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email", "address", "birthday", "notes", "is_active"},
    required_on_create={"name"},
    defaults={"is_active": True},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers():
    result = customer_service.list_customers(
        page=arg_int("page"),
        per_page=arg_int("per_page"),
        search=request.args.get("search"),
        is_active=arg_bool("is_active"),
        sort_by=request.args.get("sort_by"),
        sort_order=request.args.get("sort_order"),
    )
    return ok(result)


@customers_bp.get("/search")
def search_customers():
    term = request.args.get("q", "")
    return ok(customer_service.search_customers(term, limit=arg_int("limit", 10)))


@customers_bp.get("/<int:customer_id>")
def get_customer(customer_id: int):
    return ok(customer_service.get_customer_with_recent_sales(customer_id))


@customers_bp.get("/<int:customer_id>/analytics")
def customer_analytics(customer_id: int):
    days = arg_int("days", customer_service.DEFAULT_ANALYTICS_DAYS)
    return ok(customer_service.customer_analytics(customer_id, days=days))


@customers_bp.post("")
def create_customer():
    patch = validate_payload(model=Customer, payload=json_body(), policy=CUSTOMER_POLICY, partial=False)
    enforce_rules_customer(patch)
    customer = customer_service.create_customer(patch=patch)
    return ok(customer.to_dict(), 201, "Customer created successfully")


@customers_bp.put("/<int:customer_id>")
def update_customer(customer_id: int):
    patch = validate_payload(model=Customer, payload=json_body(), policy=CUSTOMER_POLICY, partial=True)
    enforce_rules_customer(patch)
    customer = customer_service.update_customer(customer_id, patch=patch)
    return ok(customer.to_dict(), message="Customer updated successfully")


@customers_bp.delete("/<int:customer_id>")
def delete_customer(customer_id: int):
    customer_service.delete_customer(customer_id)
    return ok(None, message="Customer deleted successfully")
