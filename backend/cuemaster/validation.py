from __future__ import annotations

import math
from typing import Any


# Upper bound for any operator-entered amount (IQD); keeps typos like an
# extra "000000" out of the ledger.
MAX_AMOUNT = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


# -- snapshot coercion ---------------------------------------------------------
#
# Snapshots come back from the store exactly as some (possibly older) client
# wrote them. Nothing about their shape is enforced, so every reader goes
# through these helpers instead of indexing raw dicts.


def as_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return []


def as_mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except (ValueError, OverflowError):
            return default
    return default


def as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    return bool(value)


def as_int_list(value: Any) -> list[int]:
    return [as_int(v) for v in as_list(value)]


# -- request input ---------------------------------------------------------------


def require_str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None or not str(value).strip():
        raise ValidationError(f"{key} is required")
    return str(value).strip()


def parse_int(value: Any, key: str, *, minimum: int | None = None, maximum: int | None = MAX_AMOUNT) -> int:
    """
    Strict integer parsing for client input.

    Rejects booleans, decimals and scientific notation so that "12.5" or
    "1e6" never silently become a price.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            parsed = int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{key} must be an integer, not a decimal")
        parsed = int(value)
    else:
        raise ValidationError(f"{key} must be an integer")

    if minimum is not None and parsed < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    if maximum is not None and parsed > maximum:
        raise ValidationError(f"{key} must be <= {maximum}")
    return parsed


def optional_int(data: dict, key: str, **kwargs) -> int | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    return parse_int(value, key, **kwargs)
