from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from phone_pos.errors import InvalidAmount, ValidationFailed


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required on create
    """
    writable_fields: set[str]
    required_on_create: set[str] = frozenset()  # type: ignore[assignment]


# Inventory attributes only. Sale, customer and credit mirror columns are
# maintained by the lifecycle services and are never client-writable.
PHONE_POLICY = ModelValidationPolicy(
    writable_fields={
        "imei1", "imei2", "model_name", "storage", "color", "condition",
        "unlock_status", "battery_health", "vendor", "purchase_date",
        "purchase_price_cents", "notes",
    },
    required_on_create={"imei1", "purchase_price_cents"},
)


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
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValidationFailed(f"{col.key} must be a plain integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationFailed(f"{col.key} must be an integer")
        raise ValidationFailed(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

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
    Validates + normalizes incoming data against column metadata and the
    policy allowlist. Returns a cleaned dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationFailed("Invalid payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationFailed(f"Field not allowed: {k}")

    patch: dict = {}
    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationFailed(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationFailed(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def normalize_imei(value: str | None) -> str:
    """Canonical IMEI form used for storage and duplicate checks."""
    if value is None:
        return ""
    return _WHITESPACE.sub("", str(value)).lower()


def validate_imei(value: str | None, field: str = "imei1") -> str:
    cleaned = normalize_imei(value)
    if not cleaned:
        raise ValidationFailed(f"{field} is required")
    if not cleaned.isdigit():
        raise ValidationFailed(f"{field} must contain only digits")
    if len(cleaned) < 14 or len(cleaned) > 16:
        raise ValidationFailed(f"{field} must be 14-16 digits")
    return cleaned


def require_amount(value: Any, field: str, *, allow_zero: bool = False) -> int:
    """Coerce a cents amount and check it is in range."""
    if isinstance(value, bool) or value is None:
        raise InvalidAmount(f"{field} must be an integer amount in cents")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            raise InvalidAmount(f"{field} must be an integer amount in cents")
        value = int(stripped)
    if not isinstance(value, int):
        raise InvalidAmount(f"{field} must be an integer amount in cents")

    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidAmount(f"{field} must be greater than {'or equal to ' if allow_zero else ''}0")
    if value > MAX_PRICE_CENTS:
        raise InvalidAmount(f"{field} cannot exceed {MAX_PRICE_CENTS}")
    return value


def enforce_rules_phone(patch: dict) -> None:
    """Business rules that are not captured by column metadata alone."""
    if "imei1" in patch:
        patch["imei1"] = validate_imei(patch["imei1"], "imei1")
    if patch.get("imei2"):
        patch["imei2"] = validate_imei(patch["imei2"], "imei2")
    elif "imei2" in patch:
        patch["imei2"] = None
    if "purchase_price_cents" in patch:
        patch["purchase_price_cents"] = require_amount(
            patch["purchase_price_cents"], "purchase_price_cents", allow_zero=True
        )
