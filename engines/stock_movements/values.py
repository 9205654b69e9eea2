"""
Stockflow Stock Movements - Value Coercion
============================================
Shared coercion rules for raw form/request values.

Forms arrive from JSON or UI state: numbers may be strings,
dates may be strings, lists or date objects, and blank text
means "not provided". Every layer coerces through here so the
validator and the builder agree on what a value means.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

Number = Union[int, float]

DATE_FORMAT = "%Y-%m-%d"

# Quantities are counts of physical units; anything past this
# magnitude (or finer than its inverse) is treated as garbage.
MAX_QUANTITY_EXPONENT = 15


def is_blank(value: Any) -> bool:
    """None, empty string and whitespace-only strings are blank."""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Coerce a raw quantity into a finite, bounded Decimal.

    Returns None for blank or non-numeric input (booleans included)
    and for values whose exponent falls outside
    +/-MAX_QUANTITY_EXPONENT.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, float, str)):
        try:
            parsed = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    else:
        return None
    if not parsed.is_finite():
        return None
    if not parsed.is_zero() and abs(parsed.adjusted()) > MAX_QUANTITY_EXPONENT:
        return None
    return parsed


def to_identifier(value: Any) -> Optional[int]:
    """
    Coerce a catalog reference into a positive integer id.

    Zero, negatives, fractions and non-numeric text are not ids.
    """
    parsed = to_decimal(value)
    if parsed is None or parsed <= 0 or parsed != parsed.to_integral_value():
        return None
    return int(parsed)


def to_json_number(value: Decimal) -> Number:
    """Integral decimals serialize as int, the rest as float."""
    if abs(value.adjusted()) > MAX_QUANTITY_EXPONENT:
        return float(value)
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def trim_or_none(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    return str(value).strip()


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date.

    Accepts date/datetime objects, "YYYY-MM-DD" strings (a trailing
    time part is ignored) and [yyyy, MM, dd] lists as sent by the
    stock API. Blank input returns None; anything else that cannot
    be read raises ValueError.
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (list, tuple)):
        if len(value) < 3:
            raise ValueError(f"Date list must be [year, month, day], got {value!r}.")
        try:
            return date(int(value[0]), int(value[1]), int(value[2]))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid date list {value!r}.") from exc
    if isinstance(value, str):
        text = value.strip()[:10]
        try:
            return datetime.strptime(text, DATE_FORMAT).date()
        except ValueError as exc:
            raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD.") from exc
    raise ValueError(f"Unsupported date value {value!r}.")


def format_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime(DATE_FORMAT)
