"""Value coercion for field types.

Each coercer takes raw input (usually a string typed by the user) and returns
a tuple of (is_valid, value, error_message). Blank input coerces to None.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from .schema import Field, FieldType

CoerceResult = tuple[bool, Any, str]

# Accepted date input formats, tried in order
DATE_INPUT_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y")

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on", "x", "✓"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "n", "off"})


def is_blank(value: Any) -> bool:
    """Check if a value counts as "not supplied"."""
    return value is None or (isinstance(value, str) and value.strip() == "")


def coerce_text(value: Any) -> CoerceResult:
    if is_blank(value):
        return True, None, ""
    return True, str(value), ""


def coerce_number(value: Any) -> CoerceResult:
    """Parse an int or float, accepting a decimal comma and digit grouping spaces."""
    if is_blank(value):
        return True, None, ""
    if isinstance(value, bool):
        return False, None, "Not a number"
    if isinstance(value, (int, float)):
        return True, value, ""

    text = str(value).strip().replace("\u00a0", "").replace(" ", "").replace(",", ".")
    try:
        return True, int(text), ""
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return False, None, "Not a number"
    if number != number or number in (float("inf"), float("-inf")):
        return False, None, "Not a number"
    return True, number, ""


def coerce_date(value: Any) -> CoerceResult:
    """Parse a date and normalize it to an ISO string (YYYY-MM-DD)."""
    if is_blank(value):
        return True, None, ""
    if isinstance(value, datetime):
        return True, value.date().isoformat(), ""
    if isinstance(value, date):
        return True, value.isoformat(), ""

    text = str(value).strip()
    for fmt in DATE_INPUT_FORMATS:
        try:
            return True, datetime.strptime(text, fmt).date().isoformat(), ""
        except ValueError:
            continue
    return False, None, "Invalid date"


def coerce_boolean(value: Any) -> CoerceResult:
    if is_blank(value):
        return True, None, ""
    if isinstance(value, bool):
        return True, value, ""

    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True, True, ""
    if text in _FALSE_STRINGS:
        return True, False, ""
    return False, None, "Not a yes/no value"


COERCERS: dict[FieldType, Callable[[Any], CoerceResult]] = {
    FieldType.TEXT: coerce_text,
    FieldType.NUMBER: coerce_number,
    FieldType.DATE: coerce_date,
    FieldType.BOOLEAN: coerce_boolean,
}


def coerce_value(value: Any, field: Field) -> CoerceResult:
    """Coerce a raw value for the given field's type."""
    return COERCERS.get(field.type, coerce_text)(value)


def validate_field_value(value: Any, field: Field) -> tuple[bool, str]:
    """Validate a value for a field, including the required rule.

    Returns:
        Tuple of (is_valid, error_message) - error_message is "" if valid
    """
    if is_blank(value):
        if field.required:
            return False, "Required"
        return True, ""

    is_valid, _value, error = coerce_value(value, field)
    return is_valid, error
