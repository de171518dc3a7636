from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError, ConflictError  # noqa: F401  (re-exported for routes)


# Maximum money value: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Largest quantity a single product, line, receipt or adjustment may carry
MAX_QUANTITY = 1_000_000_000

# Row ids must fit a signed 64-bit INTEGER column
MAX_ID = 2**63 - 1


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


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings; rejects bools, floats, decimals
    and scientific notation so that cents never silently lose precision.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

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

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
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

        # Blank optional strings are stored as NULL
        if isinstance(col.type, (String, Text)) and col.nullable and val == "":
            val = None

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_money(patch: dict, field: str) -> None:
    if field in patch and patch[field] is not None:
        value = patch[field]
        if value < 0:
            raise ValidationError(f"{field} must be >= 0")
        if value > MAX_PRICE_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS} ({MAX_PRICE_CENTS / 100:,.2f})")


def _check_quantity(value: int, field: str, details: dict | None = None) -> None:
    if abs(value) > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY:,}", details=details)


def check_id(value: int, field: str, details: dict | None = None) -> None:
    if value < 1 or value > MAX_ID:
        raise ValidationError(f"{field} must be a positive id", details=details)


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_money(patch, "price_cents")
    _check_money(patch, "cost_cents")
    if "quantity" in patch and patch["quantity"] is not None:
        if patch["quantity"] < 0:
            raise ValidationError("quantity must be >= 0")
        _check_quantity(patch["quantity"], "quantity")


def enforce_rules_stock_receive(quantity: int) -> None:
    if quantity <= 0:
        raise ValidationError("quantity_received must be > 0")
    _check_quantity(quantity, "quantity_received")


def enforce_rules_stock_adjust(delta: int) -> None:
    if delta == 0:
        raise ValidationError("delta must be non-zero")
    _check_quantity(delta, "delta")


def enforce_rules_sale(patch: dict, items: list[dict]) -> None:
    """
    SALE requires at least one line and non-negative money.

    amount_paid_cents has no ceiling: the sale engine caps it at the total.
    """
    if not items:
        raise ValidationError("items must contain at least one line")
    if "customer_id" in patch:
        check_id(patch["customer_id"], "customer_id")
    _check_money(patch, "total_amount_cents")
    if patch.get("amount_paid_cents") is not None and patch["amount_paid_cents"] < 0:
        raise ValidationError("amount_paid_cents must be >= 0")
    for index, item in enumerate(items):
        line = {"line": index + 1, "product_id": item["product_id"]}
        check_id(item["product_id"], "product_id", details=line)
        if item["quantity"] <= 0:
            raise ValidationError("quantity must be > 0", details=line)
        _check_quantity(item["quantity"], "quantity", details=line)
        _check_money(item, "price_at_sale_cents")
        _check_money(item, "cost_at_sale_cents")


def int_arg(args, name: str, default: int | None = None) -> int | None:
    """Strictly parse an optional integer query-string argument."""
    raw = args.get(name)
    if raw is None or str(raw).strip() == "":
        return default
    return coerce_int(raw, name)


def page_args(args, default_limit: int | None = None) -> dict:
    """
    Parse page/limit query args.

    limit=all turns paging off (returns every row).
    """
    limit_raw = (args.get("limit") or "").strip().lower()
    if limit_raw == "all":
        return {"page": 1, "per_page": None, "fetch_all": True}

    page = int_arg(args, "page", 1)
    limit = int_arg(args, "limit", default_limit)
    if page < 1 or page > MAX_QUANTITY:
        raise ValidationError(f"page must be between 1 and {MAX_QUANTITY}")
    if limit is not None and limit < 1:
        raise ValidationError("limit must be >= 1")
    return {"page": page, "per_page": limit, "fetch_all": False}
