from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from petstore.errors import ValidationError
from petstore.models import PAYMENT_METHODS
from petstore.time_utils import parse_iso_date, parse_iso_datetime

# Maximum money value accepted from clients: 9,999,999,999.99 fits Numeric(12, 2)
MAX_MONEY = Decimal("9999999999.99")

# Longest "last N days" window a report or analytics query accepts
MAX_LOOKBACK_DAYS = 3650

__all__ = [
    "ValidationError",
    "ModelValidationPolicy",
    "validate_payload",
    "validate_lines",
    "coerce_int",
    "coerce_decimal",
    "check_lookback_days",
]


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Per-endpoint rules for a JSON body:
    - writable_fields: keys a client may send; anything else is rejected
    - required_on_create: keys a create request must carry
    - defaults: values applied on create when the client omits the field
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    defaults: dict | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15") and decimals (e.g., "12.5")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_decimal(key: str, value: Any, scale: int = 2) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            # str() first so 0.1 stays 0.1 instead of its binary expansion
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{key} must be a number")
    else:
        raise ValidationError(f"{key} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    if abs(result) > MAX_MONEY:
        raise ValidationError(f"{key} cannot exceed {MAX_MONEY}")
    # trailing zeros are fine ("1.500"), extra precision is not
    if result.normalize().as_tuple().exponent < -scale:
        raise ValidationError(f"{key} cannot have more than {scale} decimal places")
    return result


def check_lookback_days(days: int, key: str = "days") -> int:
    if days < 1 or days > MAX_LOOKBACK_DAYS:
        raise ValidationError(f"{key} must be between 1 and {MAX_LOOKBACK_DAYS}")
    return days


def _coerce_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        if dt is None:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        return dt
    raise ValidationError(f"{key} must be a datetime")


def _coerce_date(key: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            d = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")
        if d is None:
            raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")
        return d
    raise ValidationError(f"{key} must be a date")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Numeric):
        return coerce_decimal(col.key, value, coltype.scale if coltype.scale is not None else 2)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0"}:
            return value.strip().lower() in {"true", "1"}
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, DateTime):
        return _coerce_datetime(col.key, value)

    if isinstance(coltype, Date):
        return _coerce_date(col.key, value)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a JSON body against the model columns and the endpoint policy,
    returning a dict of coerced values ready to assign to the model.
    Column metadata drives nullability, type coercion (Decimal for money)
    and String length limits.

    partial=False: create semantics (enforce required_on_create, apply defaults)
    partial=True: patch semantics (validate only provided keys)

    Blank strings on nullable text columns are stored as NULL.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}
    if not partial and policy.defaults:
        patch.update(policy.defaults)

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and isinstance(val, str) and val == "":
            if not col.nullable:
                raise ValidationError(f"{k} cannot be blank")
            val = None

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def validate_lines(
    *,
    model: DeclarativeMeta,
    lines: Any,
    policy: ModelValidationPolicy,
    field: str = "details",
) -> list[dict]:
    """Validate a non-empty array of line objects; errors name the offending index."""
    if not isinstance(lines, list) or not lines:
        raise ValidationError(f"{field} must contain at least one line")

    cleaned = []
    for index, line in enumerate(lines):
        try:
            cleaned.append(validate_payload(model=model, payload=line, policy=policy, partial=False))
        except ValidationError as e:
            raise ValidationError(f"{field}[{index}]: {e}")
    return cleaned


def _require_positive(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None and patch[key] <= 0:
        raise ValidationError(f"{key} must be > 0")


def _require_non_negative(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None and patch[key] < 0:
        raise ValidationError(f"{key} must be >= 0")


def enforce_rules_item(patch: dict) -> None:
    _require_non_negative(patch, "selling_price")


def enforce_rules_stock_in_line(patch: dict) -> None:
    if patch.get("quantity") is None or patch["quantity"] < 1:
        raise ValidationError("quantity must be >= 1")
    if patch.get("cost_price") is None:
        raise ValidationError("cost_price is required")
    _require_positive(patch, "cost_price")


def enforce_rules_sale_line(patch: dict) -> None:
    if patch.get("quantity") is None or patch["quantity"] < 1:
        raise ValidationError("quantity must be >= 1")
    if patch.get("unit_price") is None:
        raise ValidationError("unit_price is required")
    _require_positive(patch, "unit_price")


def enforce_rules_sale(patch: dict) -> None:
    _require_non_negative(patch, "discount")
    method = patch.get("payment_method")
    if method is not None and method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")


def enforce_rules_customer(patch: dict) -> None:
    email = patch.get("email")
    if email and "@" not in email:
        raise ValidationError("email must be a valid email address")


def enforce_rules_inventory_adjust(payload: dict) -> dict:
    """
    Manual override payload: item_id, new_quantity (>= 0), reason (required).
    Not a column-shaped payload, so it is checked by hand.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    missing = [k for k in ("item_id", "new_quantity", "reason") if payload.get(k) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    new_quantity = coerce_int("new_quantity", payload["new_quantity"])
    if new_quantity < 0:
        raise ValidationError("new_quantity must be >= 0")

    reason = str(payload["reason"]).strip()
    if not reason:
        raise ValidationError("reason cannot be blank")

    return {
        "item_id": coerce_int("item_id", payload["item_id"]),
        "new_quantity": new_quantity,
        "reason": reason,
    }
