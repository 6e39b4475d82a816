# Overview: Payload validation against model metadata plus small business rule checks.

from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation
from stockroom.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

MAX_REASON_LENGTH = 200
MAX_NOTES_LENGTH = 500


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate shipment reference)."""


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
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
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


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    # Numeric (exchange rates, margins) as Decimal
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            return Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{col.key} must be a number")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            return value.strip().lower() == "true"
        raise ValidationError(f"{col.key} must be a boolean")

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

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_cents(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        value = patch[key]
        if value < 0:
            raise ValidationError(f"{key} must be >= 0")
        if value > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}")


def enforce_rules_product(patch: dict) -> None:
    for key in (
        "purchase_price_eur_cents",
        "purchase_price_mad_cents",
        "selling_price_cents",
        "promo_price_cents",
    ):
        _check_cents(patch, key)

    if "reorder_level" in patch and patch["reorder_level"] is not None:
        if patch["reorder_level"] < 0:
            raise ValidationError("reorder_level must be >= 0")

    if "quantity_received" in patch and patch["quantity_received"] is not None:
        if patch["quantity_received"] < 0:
            raise ValidationError("quantity_received must be >= 0")

    promo = patch.get("promo_price_cents")
    selling = patch.get("selling_price_cents")
    if promo is not None and selling is not None and promo > selling:
        raise ValidationError("promo_price_cents cannot exceed selling_price_cents")


def enforce_rules_sale(patch: dict) -> None:
    if "quantity" in patch:
        if patch["quantity"] is None or patch["quantity"] < 1:
            raise ValidationError("quantity must be at least 1")
    _check_cents(patch, "price_per_unit_cents")
    if patch.get("notes") is not None and len(patch["notes"]) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes must be at most {MAX_NOTES_LENGTH} characters")


def require_reason(reason: Any) -> str:
    """Adjustments and resets must say why; the text lands in the movement log."""
    if reason is None or not isinstance(reason, str) or not reason.strip():
        raise ValidationError("reason is required")
    reason = reason.strip()
    if len(reason) > MAX_REASON_LENGTH:
        raise ValidationError(f"reason must be at most {MAX_REASON_LENGTH} characters")
    return reason


def clean_notes(notes: Any) -> str | None:
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise ValidationError("notes must be a string")
    notes = notes.strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes must be at most {MAX_NOTES_LENGTH} characters")
    return notes or None


def enforce_rules_adjustment(payload: dict) -> tuple[int, str, str | None]:
    """Returns (delta, reason, notes) for a relative stock adjustment."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if "delta" not in payload:
        raise ValidationError("Missing required fields: delta")
    delta = coerce_int("delta", payload["delta"])
    if delta == 0:
        raise ValidationError("delta must be non-zero")
    return delta, require_reason(payload.get("reason")), clean_notes(payload.get("notes"))


def enforce_rules_reset(payload: dict) -> tuple[int, bool, str, str | None]:
    """Returns (new_stock, reset_sold, reason, notes) for an absolute stock reset."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if "new_stock" not in payload:
        raise ValidationError("Missing required fields: new_stock")
    new_stock = coerce_int("new_stock", payload["new_stock"])
    if new_stock < 0:
        raise ValidationError("new_stock must be >= 0")
    reset_sold = payload.get("reset_sold", True)
    if not isinstance(reset_sold, bool):
        raise ValidationError("reset_sold must be a boolean")
    return new_stock, reset_sold, require_reason(payload.get("reason")), clean_notes(payload.get("notes"))
