"""Fail-fast parsing for decimal, date and percentage values.

Persisted money fields arrive as decimal strings (``"1500000.00"``).
Everything here either returns an exact ``Decimal`` / ``date`` or raises
``ValidationError``; nothing is coerced to zero.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from loan_core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

# 1,250.50 or 1,500,000; commas only between full groups of three
_GROUPED = re.compile(r"[+-]?\d{1,3}(,\d{3})+(\.\d*)?")


def parse_decimal(
    value: Any,
    field_name: str = "value",
    *,
    allow_negative: bool = False,
    allow_zero: bool = True,
) -> Decimal:
    """Parse a value into a finite ``Decimal``.

    Parameters
    ----------
    value : Any
        ``Decimal``, ``int``, ``float`` or numeric string.
    field_name : str
        Name used in error messages.
    allow_negative : bool
        Accept values below zero.
    allow_zero : bool
        Accept exactly zero.

    Returns
    -------
    Decimal
        Parsed value.

    Raises
    ------
    ValidationError
        If the value is missing, non-numeric, not finite or out of range.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number, got {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # repr round-trips the shortest form (0.1 -> "0.1")
        result = _from_text(repr(value), field_name)
    elif isinstance(value, str):
        result = _from_text(_strip_grouping(value.strip(), field_name), field_name)
    else:
        raise ValidationError(
            f"{field_name} must be a number, got {type(value).__name__}"
        )

    if not result.is_finite():
        raise ValidationError(f"{field_name} must be finite, got {value!r}")
    if result < 0 and not allow_negative:
        raise ValidationError(f"{field_name} must not be negative, got {result}")
    if result == 0 and not allow_zero:
        raise ValidationError(f"{field_name} must be greater than zero")
    return result


def parse_positive(value: Any, field_name: str = "value") -> Decimal:
    """Parse a strictly positive decimal."""
    return parse_decimal(value, field_name, allow_zero=False)


def _strip_grouping(text: str, field_name: str) -> str:
    if "," not in text:
        return text
    if not _GROUPED.fullmatch(text):
        raise ValidationError(f"{field_name} has misplaced thousands separators: {text!r}")
    return text.replace(",", "")


def _from_text(text: str, field_name: str) -> Decimal:
    if not text:
        raise ValidationError(f"{field_name} must not be empty")
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"{field_name} is not a valid decimal: {text!r}") from None


def quantize(value: Decimal, places: Decimal = CENT) -> Decimal:
    """Round half-up to ``places`` (two decimals by default)."""
    return value.quantize(places, rounding=ROUND_HALF_UP)


def percentage(numerator: Decimal, denominator: Decimal) -> Decimal | None:
    """Return ``numerator / denominator * 100`` or None for a zero denominator."""
    if denominator == 0:
        return None
    return numerator / denominator * HUNDRED


def parse_date(value: Any, field_name: str = "date") -> date:
    """Parse an ISO date string, ``date`` or ``datetime`` into a ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            raise ValidationError(f"{field_name} is not an ISO date: {value!r}") from None
    raise ValidationError(f"{field_name} must be a date, got {value!r}")


def parse_optional_date(value: Any, field_name: str = "date") -> date | None:
    """Like ``parse_date`` but maps ``None`` and ``""`` to None."""
    if value is None or value == "":
        return None
    return parse_date(value, field_name)


def parse_int(value: Any, field_name: str = "value", *, minimum: int | None = None) -> int:
    """Parse a whole number; ``"1.9"`` and ``1.9`` are rejected, ``"2.0"`` is 2."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer, got {value!r}")
    if isinstance(value, int):
        result = value
    else:
        number = parse_decimal(value, field_name, allow_negative=True)
        if number != number.to_integral_value():
            raise ValidationError(f"{field_name} must be an integer, got {value!r}")
        result = int(number)
    if minimum is not None and result < minimum:
        raise ValidationError(f"{field_name} must be at least {minimum}, got {result}")
    return result
