from __future__ import annotations
from datetime import date, datetime
import math

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .domain.errors import ValidationError
from .time_utils import parse_iso_date, parse_iso_datetime


# Upper bound for any single monetary input (quantity * rate can still exceed it)
MAX_AMOUNT = 999_999_999.99


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate invoice number)."""


class NotFoundError(LookupError):
    """404-level missing record."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - blank_as_zero: numeric fields where "" / null from a form means 0
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    blank_as_zero: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or not stripped.lstrip("-").isdigit():
                raise ValidationError(f"{col.key} must be an integer")
            return int(stripped)
        raise ValidationError(f"{col.key} must be an integer")

    # Floats / numerics (amounts, rates, quantities)
    if isinstance(coltype, (Float, Numeric)):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if isinstance(value, str):
            value = value.strip().replace(",", "")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{col.key} must be a number")
        if not math.isfinite(number):
            raise ValidationError(f"{col.key} must be a finite number")
        if number < 0:
            raise ValidationError(f"{col.key} must be >= 0")
        if number > MAX_AMOUNT:
            raise ValidationError(f"{col.key} cannot exceed {MAX_AMOUNT:,.2f}")
        return number

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Calendar dates (invoice/due/payment dates)
    if isinstance(coltype, Date):
        if isinstance(value, (date, str)):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            if d is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return d
        raise ValidationError(f"{col.key} must be a date")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a form payload into a patch of typed column values.

    Keys outside policy.writable_fields are refused. Values are coerced by
    column type (amounts accept "1,250.50"; dates accept ISO dates or
    datetimes) and checked against nullability and String lengths.

    partial=False enforces required_on_create (POST); partial=True only
    checks the keys that were sent (PUT).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(
            f for f in required
            if payload.get(f) is None or (isinstance(payload.get(f), str) and not payload[f].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    blank_as_zero = policy.blank_as_zero or set()

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if k in blank_as_zero and (raw is None or (isinstance(raw, str) and not raw.strip())):
            patch[k] = 0.0
            continue

        # NULL handling
        if raw is None or (isinstance(raw, str) and not raw.strip() and col.nullable):
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def parse_pagination(args, *, default_limit: int = 10, max_limit: int = 100) -> tuple[int, int]:
    """Read 1-indexed page/limit query params, clamping to sane bounds."""
    page = args.get("page", type=int) or 1
    limit = args.get("limit", type=int) or default_limit
    return max(page, 1), min(max(limit, 1), max_limit)


def drop_blank(payload, keys) -> dict:
    """Remove optional keys sent as null/blank so defaults apply instead."""
    if not isinstance(payload, dict):
        return payload
    cleaned = dict(payload)
    for key in keys:
        if key in cleaned and (cleaned[key] is None or (isinstance(cleaned[key], str) and not cleaned[key].strip())):
            del cleaned[key]
    return cleaned
