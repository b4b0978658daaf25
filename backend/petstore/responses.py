# Overview: JSON envelope and query-string parsing shared by the API blueprints.

from __future__ import annotations

from datetime import date

from flask import jsonify, request

from .errors import ValidationError
from .time_utils import parse_iso_date

# Query-string integers must fit a signed 64-bit database column
MAX_QUERY_INT = 2**63 - 1


def ok(data=None, status: int = 200, message: str | None = None):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def arg_int(name: str, default: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if abs(value) > MAX_QUERY_INT:
        raise ValidationError(f"{name} is out of range")
    return value


def arg_bool(name: str) -> bool | None:
    """'true'/'false' (also 1/0); 'all' or absent means no filter."""
    raw = request.args.get(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in ("", "all"):
        return None
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise ValidationError(f"{name} must be true, false or all")


def arg_date(name: str) -> date | None:
    try:
        return parse_iso_date(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date (YYYY-MM-DD)")


def date_range() -> tuple[date | None, date | None]:
    from_date = arg_date("from_date")
    to_date = arg_date("to_date")
    if from_date and to_date and from_date > to_date:
        raise ValidationError("from_date must not be after to_date")
    return from_date, to_date
