from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Any

from .models.records import PROMOTION_TARGETS, PROMOTION_TYPES
from .time_utils import parse_iso_date


# Maximum unit price accepted from clients
MAX_PRICE = 9_999_999.99


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate inventory id)."""


# Field kinds understood by _coerce_value
STR = "str"
INT = "int"
NUMBER = "number"
DATE = "date"
BOOL = "bool"


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Central policy layer:
    - fields: field name -> kind (security boundary: nothing else is accepted)
    - required_on_create: fields required for POST
    - nullable: fields that may be explicitly null
    """
    fields: dict[str, str]
    required_on_create: frozenset[str] = frozenset()
    nullable: frozenset[str] = frozenset()


def _coerce_value(key: str, kind: str, value: Any):
    if kind == INT:
        # bool is a subclass of int; reject it
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            stripped = value.strip()
            if 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{key} must be a plain integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{key} must be an integer")
        raise ValidationError(f"{key} must be an integer")

    if kind == NUMBER:
        if isinstance(value, bool):
            raise ValidationError(f"{key} must be a number")
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                raise ValidationError(f"{key} must be a number")
        else:
            raise ValidationError(f"{key} must be a number")
        if math.isnan(number) or math.isinf(number):
            raise ValidationError(f"{key} must be a finite number")
        return number

    if kind == DATE:
        if isinstance(value, date):
            return value
        try:
            parsed = parse_iso_date(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be a YYYY-MM-DD date")
        if parsed is None:
            raise ValidationError(f"{key} must be a YYYY-MM-DD date")
        return parsed

    if kind == BOOL:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    # Strings
    return str(value).strip()


def validate_payload(*, payload: Any, policy: PayloadPolicy, partial: bool) -> dict:
    """
    Validates + normalizes incoming JSON against a policy.
    Returns a cleaned patch dict with only declared fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    for k in payload.keys():
        if k not in policy.fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}
    for k, raw in payload.items():
        if raw is None:
            if k not in policy.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(k, policy.fields[k], raw)

        if policy.fields[k] == STR and k in policy.required_on_create and val == "":
            raise ValidationError(f"{k} cannot be blank")

        patch[k] = val

    return patch


def enforce_rules_inventory_item(patch: dict) -> None:
    """
    Business rules that are not captured by field kinds alone.
    Keep these small and centralized.
    """
    if patch.get("price") is not None:
        price = patch["price"]
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_PRICE:
            raise ValidationError(f"price cannot exceed {MAX_PRICE:,.2f}")

    if patch.get("reorder_level") is not None and patch["reorder_level"] < 0:
        raise ValidationError("reorder_level must be >= 0")


def enforce_rules_promotion(patch: dict) -> None:
    if patch.get("type", "percentage") not in PROMOTION_TYPES:
        raise ValidationError("type must be 'percentage'")

    if "value" in patch and not 0 <= patch["value"] <= 100:
        raise ValidationError("value must be between 0 and 100")

    if "target" in patch and patch["target"] not in PROMOTION_TARGETS:
        raise ValidationError("target must be 'item' or 'category'")

    start, end = patch.get("start_date"), patch.get("end_date")
    if start is not None and end is not None and start > end:
        raise ValidationError("start_date must be on or before end_date")


def enforce_rules_receipt_item(patch: dict) -> None:
    # Standalone receipts only accept positive quantities and prices
    if patch.get("quantity") is None or patch["quantity"] <= 0:
        raise ValidationError("quantity must be > 0")
    if patch.get("price") is None or patch["price"] <= 0:
        raise ValidationError("price must be > 0")
