# backend/petstore/services/catalog_service.py
"""
Catalog Service: item types and items.

- Every read filters soft-deleted rows (deleted_at IS NULL).
- Creating an item creates its Inventory row in the same transaction;
  deleting an item soft-deletes both.
- Names are unique among live rows; codes come from the document sequence.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Item, ItemType, Inventory, SaleDetail
from petstore.errors import ConflictError, InvalidReferenceError, NotFoundError
from .concurrency import transaction_scope, run_with_retry
from .document_service import next_document_code
from .pagination import paginate, resolve_sort

ITEM_TYPE_MUTABLE_FIELDS = {"name", "description", "is_active"}
ITEM_MUTABLE_FIELDS = {"name", "item_type_id", "description", "selling_price", "unit", "image_path", "is_active"}

ITEM_SORT_COLUMNS = {
    "created_at": Item.created_at,
    "name": Item.name,
    "code": Item.code,
    "selling_price": Item.selling_price,
}


def _apply_patch(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k in allowed:
            setattr(obj, k, v)


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# ---------------------------------------------------------------------------
# Item types
# ---------------------------------------------------------------------------

def get_item_type(item_type_id: int) -> ItemType:
    item_type = ItemType.live_query().filter(ItemType.id == item_type_id).first()
    if item_type is None:
        raise NotFoundError("Item type not found")
    return item_type


def list_item_types(
    *,
    page: int | None = None,
    per_page: int | None = None,
    search: str | None = None,
    is_active: bool | None = None,
) -> dict:
    query = ItemType.live_query()
    if search:
        query = query.filter(ItemType.name.ilike(_like(search), escape="\\"))
    if is_active is not None:
        query = query.filter(ItemType.is_active.is_(is_active))
    query = query.order_by(ItemType.name.asc(), ItemType.id.asc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda t: t.to_dict())


def list_active_item_types() -> list[dict]:
    rows = (
        ItemType.live_query()
        .filter(ItemType.is_active.is_(True))
        .order_by(ItemType.name.asc())
        .all()
    )
    return [t.to_dict() for t in rows]


def _ensure_item_type_name_free(name: str, *, exclude_id: int | None = None) -> None:
    # The unique constraint covers deleted rows too
    query = db.session.query(ItemType).filter(ItemType.name == name)
    if exclude_id is not None:
        query = query.filter(ItemType.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Item type name already exists")


def create_item_type(*, patch: dict) -> ItemType:
    def _op():
        with transaction_scope() as session:
            _ensure_item_type_name_free(patch["name"])
            item_type = ItemType()
            _apply_patch(item_type, patch, ITEM_TYPE_MUTABLE_FIELDS)
            session.add(item_type)
        return item_type

    return run_with_retry(_op)


def update_item_type(item_type_id: int, *, patch: dict) -> ItemType:
    def _op():
        with transaction_scope():
            item_type = get_item_type(item_type_id)
            if "name" in patch and patch["name"] != item_type.name:
                _ensure_item_type_name_free(patch["name"], exclude_id=item_type.id)
            _apply_patch(item_type, patch, ITEM_TYPE_MUTABLE_FIELDS)
        return item_type

    return run_with_retry(_op)


def delete_item_type(item_type_id: int) -> None:
    def _op():
        with transaction_scope():
            item_type = get_item_type(item_type_id)
            in_use = (
                Item.live_query()
                .filter(Item.item_type_id == item_type.id)
                .count()
            )
            if in_use:
                raise ConflictError(
                    f"Cannot delete item type. It is being used by {in_use} item(s)",
                    details={"items": in_use},
                )
            item_type.soft_delete()

    run_with_retry(_op)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

def get_item(item_id: int) -> Item:
    item = Item.live_query().filter(Item.id == item_id).first()
    if item is None:
        raise NotFoundError("Item not found")
    return item


def list_items(
    *,
    page: int | None = None,
    per_page: int | None = None,
    search: str | None = None,
    item_type_id: int | None = None,
    is_active: bool | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> dict:
    query = Item.live_query()
    if search:
        pattern = _like(search)
        query = query.filter(or_(
            Item.name.ilike(pattern, escape="\\"),
            Item.code.ilike(pattern, escape="\\"),
        ))
    if item_type_id is not None:
        query = query.filter(Item.item_type_id == item_type_id)
    if is_active is not None:
        query = query.filter(Item.is_active.is_(is_active))

    order = resolve_sort(ITEM_SORT_COLUMNS, sort_by, sort_order, default="created_at")
    query = query.order_by(order, Item.id.desc())
    return paginate(
        query,
        page=page,
        per_page=per_page,
        serialize=lambda i: i.to_dict(include_inventory=True),
    )


def search_items(term: str, *, limit: int = 20) -> list[dict]:
    """Quick lookup for the point-of-sale screen: active items by name or code."""
    if not term or not term.strip():
        return []
    pattern = _like(term.strip())
    rows = (
        Item.live_query()
        .filter(Item.is_active.is_(True))
        .filter(or_(
            Item.name.ilike(pattern, escape="\\"),
            Item.code.ilike(pattern, escape="\\"),
        ))
        .order_by(Item.name.asc())
        .limit(max(1, min(limit, 100)))
        .all()
    )
    return [i.to_dict(include_inventory=True) for i in rows]


def _ensure_item_name_free(name: str, *, exclude_id: int | None = None) -> None:
    query = Item.live_query().filter(func.lower(Item.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Item.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Item name already exists")


def _require_item_type_reference(item_type_id: int) -> None:
    if ItemType.live_query().filter(ItemType.id == item_type_id).first() is None:
        raise InvalidReferenceError("Item type not found", details={"item_type_id": item_type_id})


def create_item(*, patch: dict) -> Item:
    """
    Create an item and its empty Inventory row (quantity 0, min_stock 0,
    avg_cost NULL until the first receipt).
    """
    def _op():
        with transaction_scope() as session:
            _require_item_type_reference(patch["item_type_id"])
            _ensure_item_name_free(patch["name"])

            item = Item(code=next_document_code("ITEM"))
            _apply_patch(item, patch, ITEM_MUTABLE_FIELDS)
            if not item.unit:
                item.unit = "pcs"
            session.add(item)
            session.flush()

            session.add(Inventory(item_id=item.id, quantity=0, min_stock=0))
        current_app.logger.info("Item created code=%s name=%s", item.code, item.name)
        return item

    return run_with_retry(_op)


def update_item(item_id: int, *, patch: dict) -> Item:
    def _op():
        with transaction_scope():
            item = get_item(item_id)
            if "item_type_id" in patch and patch["item_type_id"] != item.item_type_id:
                _require_item_type_reference(patch["item_type_id"])
            if "name" in patch and patch["name"] != item.name:
                _ensure_item_name_free(patch["name"], exclude_id=item.id)
            _apply_patch(item, patch, ITEM_MUTABLE_FIELDS)
        return item

    return run_with_retry(_op)


def delete_item(item_id: int) -> None:
    """Soft-delete an item and its inventory row; refused once the item has been sold."""
    def _op():
        with transaction_scope():
            item = get_item(item_id)
            sales_count = db.session.query(SaleDetail).filter(SaleDetail.item_id == item.id).count()
            if sales_count:
                raise ConflictError(
                    f"Cannot delete item. It has been used in {sales_count} sale(s)",
                    details={"sale_lines": sales_count},
                )
            item.soft_delete()
            inventory = Inventory.live_query().filter(Inventory.item_id == item.id).first()
            if inventory is not None:
                inventory.soft_delete()
        current_app.logger.info("Item soft-deleted id=%s", item_id)

    run_with_retry(_op)
