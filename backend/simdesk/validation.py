from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .time_utils import parse_iso_date
from .records import SALE_CLASSES, DIRECTIONS, PAYMENT_METHODS


# Largest money figure accepted on input (currency units, VND)
MAX_MONEY = 999_999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate customer code)."""


@dataclass(frozen=True)
class FieldRule:
    kind: str                       # "str" | "int" | "bool" | "date" | "tags"
    nullable: bool = True
    max_length: int | None = None
    choices: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - fields: what clients are allowed to set (security boundary) and how each is coerced
    - required_on_create: fields required for POST
    """
    fields: dict[str, FieldRule]
    required_on_create: set[str] = field(default_factory=set)


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(key: str, rule: FieldRule, value: Any):
    if rule.kind == "int":
        return _coerce_int(key, value)

    if rule.kind == "bool":
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Calendar dates (accept YYYY-MM-DD or full ISO-8601)
    if rule.kind == "date":
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                parsed = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{key} must be an ISO-8601 date")
            return parsed
        raise ValidationError(f"{key} must be a date")

    if rule.kind == "tags":
        if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
            raise ValidationError(f"{key} must be a list of strings")
        return [t.strip() for t in value if t.strip()]

    # Strings
    text = str(value).strip()
    if rule.choices is not None:
        text = text.upper()
        if text not in rule.choices:
            raise ValidationError(f"{key} must be one of {', '.join(rule.choices)}")
    if rule.max_length and len(text) > rule.max_length:
        raise ValidationError(f"{key} exceeds max length {rule.max_length}")
    return text


def validate_payload(
    *,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against a policy.
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        rule = policy.fields[k]

        # NULL handling
        if raw is None:
            if not rule.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(k, rule, raw)

        # Blank date strings coerce to None
        if val is None and not rule.nullable:
            raise ValidationError(f"{k} cannot be blank")

        # Blank string check for non-nullable text fields
        if rule.kind == "str" and not rule.nullable and val == "":
            raise ValidationError(f"{k} cannot be blank")

        patch[k] = val

    return patch


def _require_positive(patch: dict, key: str) -> None:
    if key in patch and (patch[key] is None or patch[key] <= 0):
        raise ValidationError(f"{key} must be > 0")


def _require_money(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        if patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")
        if patch[key] > MAX_MONEY:
            raise ValidationError(f"{key} cannot exceed {MAX_MONEY:,}")


PRODUCT_TYPE_POLICY = ModelValidationPolicy(
    fields={"name": FieldRule("str", nullable=False, max_length=255)},
    required_on_create={"name"},
)

BATCH_POLICY = ModelValidationPolicy(
    fields={
        "product_type_id": FieldRule("str", nullable=False, max_length=64),
        "import_date": FieldRule("date"),
        "quantity": FieldRule("int", nullable=False),
        "total_import_cost": FieldRule("int", nullable=False),
    },
    required_on_create={"product_type_id", "quantity", "total_import_cost"},
)

CUSTOMER_POLICY = ModelValidationPolicy(
    fields={
        "customer_code": FieldRule("str", max_length=64),
        "name": FieldRule("str", nullable=False, max_length=255),
        "phone": FieldRule("str", max_length=32),
        "email": FieldRule("str", max_length=255),
        "address": FieldRule("str"),
        "customer_class": FieldRule("str", nullable=False, choices=SALE_CLASSES),
        "tags": FieldRule("tags"),
        "note": FieldRule("str"),
    },
    required_on_create={"name"},
)

ORDER_POLICY = ModelValidationPolicy(
    fields={
        "date": FieldRule("date"),
        "customer_id": FieldRule("str", max_length=64),
        "counterparty_name": FieldRule("str", max_length=255),
        "sale_class": FieldRule("str", nullable=False, choices=SALE_CLASSES),
        "product_type_id": FieldRule("str", nullable=False, max_length=64),
        "quantity": FieldRule("int", nullable=False),
        "unit_price": FieldRule("int", nullable=False),
        "due_date": FieldRule("date"),
        "note": FieldRule("str"),
        "is_settled_at_creation": FieldRule("bool"),
        "payment_method": FieldRule("str", choices=PAYMENT_METHODS),
    },
    required_on_create={"sale_class", "product_type_id", "quantity", "unit_price"},
)

TRANSACTION_POLICY = ModelValidationPolicy(
    fields={
        "date": FieldRule("date"),
        "direction": FieldRule("str", nullable=False, choices=DIRECTIONS),
        "category": FieldRule("str", max_length=128),
        "amount": FieldRule("int", nullable=False),
        "method": FieldRule("str", choices=PAYMENT_METHODS),
        "linked_order_id": FieldRule("str", max_length=64),
        "note": FieldRule("str"),
    },
    required_on_create={"direction", "amount"},
)

DUE_DATE_EXTENSION_POLICY = ModelValidationPolicy(
    fields={
        "new_due_date": FieldRule("date", nullable=False),
        "reason": FieldRule("str"),
    },
    required_on_create={"new_due_date"},
)


def enforce_rules_batch(patch: dict) -> None:
    _require_positive(patch, "quantity")
    _require_money(patch, "total_import_cost")


def enforce_rules_order(patch: dict) -> None:
    _require_positive(patch, "quantity")
    _require_money(patch, "unit_price")


def enforce_rules_transaction(patch: dict) -> None:
    # amount is never negative; direction carries the sign
    _require_money(patch, "amount")


def parse_date_arg(key: str, value: str | None) -> date | None:
    """Query-string date (YYYY-MM-DD); empty or missing means no bound."""
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date")
