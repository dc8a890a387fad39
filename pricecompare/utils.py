"""
Request parsing helpers shared by the blueprints.

- get_json_payload: JSON object body (400 otherwise)
- require_fields: non-empty string checks for create handlers
- parse_* : typed field parsing raising ValidationError with a readable message
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from flask import request

from .errors import NotFoundError, ValidationError
from .extensions import db

MAX_INT = 2**63 - 1


def get_json_payload() -> dict:
    """Return the JSON body as a dict. An empty body counts as {}."""
    if not request.get_data():
        return {}
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def require_fields(data: dict, fields: Iterable[str], message: str = "All required fields must be provided") -> None:
    """Every field must be present and, for strings, non-blank."""
    for field in fields:
        if is_blank(data.get(field)):
            raise ValidationError(message)


def parse_str(data: dict, field: str, *, required: bool = False, max_length: int | None = None) -> str | None:
    """Trimmed string; None when absent (or 400 when required)."""
    value = data.get(field)
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if required and not value:
        raise ValidationError(f"{field} is required")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def parse_bool(data: dict, field: str) -> bool:
    value = data.get(field)
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be true or false")
    return value


def parse_decimal(value: Any, field: str, *, minimum: Decimal | None = Decimal("0")) -> Decimal:
    """Parse a decimal (accepts comma or dot); enforce the lower bound."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    raw = str(value).strip().replace(",", ".")
    try:
        number = Decimal(raw)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    # Must fit a float: stored and serialised as one.
    if not number.is_finite() or not math.isfinite(float(number)):
        raise ValidationError(f"{field} must be a number")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must not be negative")
    return number


def parse_number_list(value: Any, field: str) -> list[float]:
    """List of JSON numbers (numeric strings accepted); None -> []."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list of numbers")
    return [float(parse_decimal(0 if is_blank(v) else v, field)) for v in value]


def parse_optional_int(value: Any, field: str) -> int | None:
    """Whole number or None. 2.0 is accepted, 1.9 is not."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    number = parse_decimal(value, field, minimum=None)
    if number != number.to_integral_value():
        raise ValidationError(f"{field} must be an integer")
    if abs(number) > MAX_INT:
        raise ValidationError(f"{field} is out of range")
    return int(number)


def get_or_404(model, entity_id: str, label: str):
    """Load by primary key or raise NotFoundError('<label> not found')."""
    instance = db.session.get(model, entity_id)
    if instance is None:
        raise NotFoundError(f"{label} not found")
    return instance
