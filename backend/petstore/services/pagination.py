# Overview: Shared pagination and sorting helpers for list endpoints.

from __future__ import annotations

from typing import Callable

from flask import current_app

from petstore.errors import ValidationError

# Deepest row offset a page request may reach
MAX_ROW_OFFSET = 1_000_000_000


def paginate(query, *, page: int | None, per_page: int | None, serialize: Callable) -> dict:
    """
    Paginate a SQLAlchemy query.

    Returns a dict with 'items', 'count' and 'pagination' metadata. page is
    1-indexed; per_page is capped by MAX_PAGE_SIZE.
    """
    per_page = per_page or current_app.config["DEFAULT_PAGE_SIZE"]
    per_page = max(1, min(per_page, current_app.config["MAX_PAGE_SIZE"]))
    page = max(page or 1, 1)
    if (page - 1) * per_page > MAX_ROW_OFFSET:
        raise ValidationError("page is out of range")

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def resolve_sort(columns: dict, sort_by: str | None, sort_order: str | None, *, default: str):
    """
    Map a client sort key onto an allowlisted column expression.

    Unknown keys are rejected instead of being passed through to SQL.
    """
    key = sort_by or default
    if key not in columns:
        raise ValidationError(f"sort_by must be one of: {', '.join(sorted(columns))}")
    order = (sort_order or "desc").lower()
    if order not in ("asc", "desc"):
        raise ValidationError("sort_order must be asc or desc")
    col = columns[key]
    return col.asc() if order == "asc" else col.desc()
