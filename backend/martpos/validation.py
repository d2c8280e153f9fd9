from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from martpos.services.pricing import DISCOUNT_TYPES


# Maximum price: 9,999,999,999.99 fits Numeric(12, 2)
MAX_PRICE = Decimal("9999999999.99")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate product code)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    - ignored_fields: keys clients echo back (id, timestamps) that are dropped silently
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    ignored_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Numeric (money, rates) - accept numbers and numeric strings, keep Decimal
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{col.key} must be a number")
        if not result.is_finite():
            raise ValidationError(f"{col.key} must be a finite number")
        return result

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        # Reject floats explicitly
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        # Other types
        raise ValidationError(f"{col.key} must be an integer")

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
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    The model metadata is used whichever storage backend is active; it is the
    single description of what a valid record looks like.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    ignored = policy.ignored_fields or set()
    payload = {k: v for k, v in payload.items() if k not in ignored}

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
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


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized. Stock may go negative (not enforced).
    """
    for field in ("cost_price", "retail_price"):
        if field in patch and patch[field] is not None:
            price = patch[field]
            if price < 0:
                raise ValidationError(f"{field} must be >= 0")
            if price > MAX_PRICE:
                raise ValidationError(f"{field} cannot exceed {MAX_PRICE:,}")

    if "discount_type" in patch and patch["discount_type"] not in DISCOUNT_TYPES:
        raise ValidationError(f"discount_type must be one of {', '.join(DISCOUNT_TYPES)}")

    if "low_stock_threshold" in patch and patch["low_stock_threshold"] is not None:
        if patch["low_stock_threshold"] < 0:
            raise ValidationError("low_stock_threshold must be >= 0")


def enforce_rules_stock_adjust(change: Any) -> int:
    """PATCH /stock requires a non-zero integer change."""
    if isinstance(change, bool) or not isinstance(change, int):
        raise ValidationError("change must be an integer")
    if change == 0:
        raise ValidationError("change must be non-zero")
    return change
