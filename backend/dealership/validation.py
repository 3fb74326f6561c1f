from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .models.inventory import PART_CATEGORIES


# Maximum price: 999,999,999 in whole currency units
MAX_PRICE = 999_999_999


class ValidationError(ValueError):
    """
    400-level input problem.

    Carries every violated rule, not just the first one, so a form can show
    all of them at once.
    """

    def __init__(self, messages: str | Iterable[str]):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate part number)."""


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
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

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

    All problems are collected and raised together in one ValidationError.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[str] = []

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            errors.append(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields:
            errors.append(f"Field not allowed: {k}")
            continue
        if k not in cols:
            errors.append(f"Unknown field: {k}")
            continue

        col = cols[k]

        if raw is None:
            if not col.nullable:
                errors.append(f"{k} cannot be null")
            else:
                patch[k] = None
            continue

        try:
            val = _coerce_value(col, raw)
        except ValidationError as e:
            errors.extend(e.messages)
            continue

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                errors.append(f"{k} cannot be blank")
                continue

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                errors.append(f"{k} exceeds max length {col.type.length}")
                continue

        patch[k] = val

    if errors:
        raise ValidationError(errors)

    return patch


def check_min_length(errors: list[str], value: Any, min_length: int, message: str) -> None:
    """Append message when value is not a string of at least min_length visible chars."""
    if not isinstance(value, str) or len(value.strip()) < min_length:
        errors.append(message)


def is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_non_negative_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def as_part_id(value: Any) -> str | None:
    """Part ids are text; JSON clients may send the seeded ids as numbers."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def enforce_rules_part(patch: dict, *, partial: bool) -> None:
    """
    Business rules for part catalog data that column metadata cannot express.
    Keep these small and centralized.
    """
    errors: list[str] = []

    if "name" in patch or not partial:
        check_min_length(errors, patch.get("name"), 3, "Name must be at least 3 characters")

    if "part_number" in patch or not partial:
        check_min_length(errors, patch.get("part_number"), 5, "Valid part number required")

    if "category" in patch or not partial:
        if patch.get("category") not in PART_CATEGORIES:
            errors.append(f"category must be one of {', '.join(PART_CATEGORIES)}")

    if "price" in patch or not partial:
        price = patch.get("price")
        if not is_positive_int(price):
            errors.append("price must be a positive integer")
        elif price > MAX_PRICE:
            errors.append(f"price cannot exceed {MAX_PRICE:,}")

    if patch.get("cost_price") is not None and not is_non_negative_int(patch["cost_price"]):
        errors.append("cost_price must be >= 0")

    if "min_stock" in patch and not is_non_negative_int(patch["min_stock"]):
        errors.append("min_stock must be >= 0")

    if "stock" in patch and not is_non_negative_int(patch["stock"]):
        errors.append("stock must be >= 0")

    if errors:
        raise ValidationError(errors)
