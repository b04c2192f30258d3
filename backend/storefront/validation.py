from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import JSON, Boolean, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Numeric(10, 2): 99,999,999.99 is the largest storable amount
MAX_PRICE = Decimal("99999999.99")
CENTS = Decimal("0.01")

# Largest value a BIGINT / SQLite INTEGER column can bind
MAX_INT = 2**63 - 1

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level uniqueness conflict (e.g., duplicate slug or email)."""


class NotFoundError(LookupError):
    """404-level missing reference (user, product, category)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def __str__(self) -> str:
        return self.args[0]


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats, scientific notation and out-of-range values."""
    result = _parse_int(key, value)
    if abs(result) > MAX_INT:
        raise ValidationError(f"{key} is out of range")
    return result


def _parse_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
    raise ValidationError(f"{key} must be a boolean")


def coerce_money(key: str, value: Any) -> Decimal:
    """
    Parse a monetary amount into an exact Decimal with at most 2 places.

    Floats go through str() so 29.99 stays 29.99 instead of its binary
    approximation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{key} must be a number")
    else:
        raise ValidationError(f"{key} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    if amount != amount.quantize(CENTS):
        raise ValidationError(f"{key} cannot have more than 2 decimal places")
    return amount.quantize(CENTS)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Boolean):
        return coerce_bool(col.key, value)

    if isinstance(coltype, Numeric):
        return coerce_money(col.key, value)

    # Enum before String: Enum is a String subtype
    if isinstance(coltype, Enum):
        if not isinstance(value, str) or value not in coltype.enums:
            raise ValidationError(f"{col.key} must be one of: {', '.join(coltype.enums)}")
        return value

    if isinstance(coltype, JSON):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationError(f"{col.key} must be a list of strings")
        return [v.strip() for v in value]

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if not isinstance(value, str):
            raise ValidationError(f"{col.key} must be a string")
        return value.strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool = False,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
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


def validate_email(key: str, value: Any) -> str:
    if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
        raise ValidationError(f"{key} must be a valid email address")
    return value.strip()


def _enforce_positive_price(patch: dict, key: str) -> None:
    price = patch.get(key)
    if price is None:
        return
    if price <= 0:
        raise ValidationError(f"{key} must be > 0")
    if price > MAX_PRICE:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _enforce_positive_price(patch, "price")
    _enforce_positive_price(patch, "original_price")

    if patch.get("stock_quantity") is not None and patch["stock_quantity"] < 0:
        raise ValidationError("stock_quantity must be >= 0")


def enforce_rules_category(patch: dict) -> None:
    if patch.get("parent_id") is not None and patch["parent_id"] <= 0:
        raise ValidationError("parent_id must be a positive integer")
