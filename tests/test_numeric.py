"""Tests for fail-fast numeric and date parsing."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from loan_core.exceptions import ValidationError
from loan_core.numeric import (
    parse_date,
    parse_decimal,
    parse_int,
    parse_optional_date,
    parse_positive,
    percentage,
    quantize,
)


class TestParseDecimal:
    """Tests for parse_decimal."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1500000.00", Decimal("1500000.00")),
            (" 42 ", Decimal("42")),
            ("1,250.50", Decimal("1250.50")),
            ("1,500,000", Decimal("1500000")),
            (7, Decimal("7")),
            (0.1, Decimal("0.1")),
            (Decimal("3.14"), Decimal("3.14")),
        ],
    )
    def test_valid(self, value, expected: Decimal) -> None:
        """Test accepted inputs."""
        assert parse_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, True, "", "abc", "1.2.3", "Infinity", [1]])
    def test_invalid(self, value) -> None:
        """Test malformed inputs are never coerced to zero."""
        with pytest.raises(ValidationError):
            parse_decimal(value)

    def test_negative(self) -> None:
        """Test negatives need opting in."""
        with pytest.raises(ValidationError, match="must not be negative"):
            parse_decimal("-1", "amount")

        assert parse_decimal("-1", allow_negative=True) == Decimal("-1")

    def test_field_name_in_message(self) -> None:
        """Test the field is named in errors."""
        with pytest.raises(ValidationError, match="principal"):
            parse_decimal("x", "principal")

    def test_positive(self) -> None:
        """Test zero is rejected by parse_positive."""
        assert parse_positive("0.01") == Decimal("0.01")
        with pytest.raises(ValidationError, match="greater than zero"):
            parse_positive("0")

    @pytest.mark.parametrize("value", ["1,0,0,0.5", "10,00", "1000,000", ",100", "1,000,"])
    def test_misplaced_thousands_separator(self, value: str) -> None:
        """Test commas are only accepted between groups of three digits."""
        with pytest.raises(ValidationError, match="thousands separators"):
            parse_decimal(value, "amount")


class TestParseInt:
    """Tests for parse_int."""

    @pytest.mark.parametrize("value,expected", [(3, 3), ("3", 3), ("2.0", 2), (Decimal("4"), 4)])
    def test_valid(self, value, expected: int) -> None:
        """Test whole numbers in any form."""
        assert parse_int(value) == expected

    @pytest.mark.parametrize("value", ["1.9", 1.9, True, None, "two"])
    def test_invalid(self, value) -> None:
        """Test fractions are rejected rather than truncated."""
        with pytest.raises(ValidationError):
            parse_int(value, "cycle_number")

    def test_minimum(self) -> None:
        """Test the lower bound."""
        with pytest.raises(ValidationError, match="at least 1"):
            parse_int("0", "cycle_number", minimum=1)


class TestRatios:
    """Tests for quantize and percentage."""

    def test_quantize_half_up(self) -> None:
        """Test half-up rounding to cents."""
        assert quantize(Decimal("2.345")) == Decimal("2.35")
        assert quantize(Decimal("2.344")) == Decimal("2.34")

    def test_quantize_places(self) -> None:
        """Test custom precision."""
        assert quantize(Decimal("66.66"), Decimal("0.1")) == Decimal("66.7")

    def test_percentage(self) -> None:
        """Test ratio and zero denominator."""
        assert percentage(Decimal("1"), Decimal("4")) == Decimal("25")
        assert percentage(Decimal("1"), Decimal("0")) is None


class TestParseDate:
    """Tests for date parsing."""

    def test_iso_string(self) -> None:
        """Test ISO dates and timestamps."""
        assert parse_date("2026-10-19") == date(2026, 10, 19)
        assert parse_date("2026-10-19T13:45:00+03:00") == date(2026, 10, 19)

    def test_date_and_datetime(self) -> None:
        """Test date objects pass through."""
        assert parse_date(date(2026, 1, 1)) == date(2026, 1, 1)
        assert parse_date(datetime(2026, 1, 1, 9, 30)) == date(2026, 1, 1)

    @pytest.mark.parametrize("value", [None, "", "19/10/2026", 20261019])
    def test_invalid(self, value) -> None:
        """Test rejected dates."""
        with pytest.raises(ValidationError):
            parse_date(value)

    def test_optional(self) -> None:
        """Test empty values map to None."""
        assert parse_optional_date(None) is None
        assert parse_optional_date("") is None
        assert parse_optional_date("2026-10-19") == date(2026, 10, 19)
