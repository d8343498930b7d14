"""Tests for report window validation."""

import pytest
from datetime import date

from profiteer.models import AllTime, Month, Year
from profiteer.validation import PeriodValidationError, PeriodValidator


TODAY = date(2025, 10, 19)


@pytest.fixture
def validator():
    return PeriodValidator(min_year=1970, max_future_years=1)


class TestPeriodValidator:
    """Tests for PeriodValidator."""

    def test_all_time(self, validator):
        result = validator.validate("all_time", today=TODAY)
        assert result.is_valid
        assert result.period == AllTime()
        assert result.issues == []

    def test_mode_aliases(self, validator):
        assert validator.parse("All Time", today=TODAY) == AllTime()
        assert validator.parse("MONTH", 2025, 1, today=TODAY) == Month(year=2025, month=1)
        assert validator.parse("yearly", 2024, today=TODAY) == Year(year=2024)

    def test_month_from_strings(self, validator):
        """Query-string input arrives as text."""
        assert validator.parse("month", "2025", " 10 ", today=TODAY) == Month(year=2025, month=10)

    def test_month_out_of_range(self, validator):
        result = validator.validate("month", 2025, 13, today=TODAY)
        assert not result.is_valid
        assert result.period is None
        assert result.errors[0].field == "month"
        assert result.errors[0].issue_type == "out_of_range"

    def test_month_zero(self, validator):
        with pytest.raises(PeriodValidationError, match="outside 1-12"):
            validator.parse("month", 2025, 0, today=TODAY)

    def test_year_before_epoch(self, validator):
        with pytest.raises(PeriodValidationError, match="Year 1969"):
            validator.parse("year", 1969, today=TODAY)

    def test_year_too_far_in_future(self, validator):
        assert validator.validate("year", 2026, today=TODAY).is_valid
        assert not validator.validate("year", 2027, today=TODAY).is_valid

    def test_missing_year(self, validator):
        result = validator.validate("month", None, 5, today=TODAY)
        assert not result.is_valid
        assert result.errors[0].issue_type == "missing"

    def test_malformed_year(self, validator):
        result = validator.validate("year", "20x5", today=TODAY)
        assert not result.is_valid
        assert result.errors[0].issue_type == "invalid_format"

    @pytest.mark.parametrize("raw", ["--5", "2²", "+-1", "20 25", "1e3", "٢٠٢٥"])
    def test_non_decimal_text_is_invalid_format(self, validator, raw):
        result = validator.validate("month", raw, 1, today=TODAY)
        assert not result.is_valid
        assert result.errors[0].field == "year"
        assert result.errors[0].issue_type == "invalid_format"

        result = validator.validate("month", 2025, raw, today=TODAY)
        assert result.errors[0].field == "month"
        assert result.errors[0].issue_type == "invalid_format"

    def test_negative_text_is_a_number(self, validator):
        result = validator.validate("month", 2025, "-1", today=TODAY)
        assert result.errors[0].issue_type == "out_of_range"

    def test_unknown_mode(self, validator):
        with pytest.raises(PeriodValidationError) as exc_info:
            validator.parse("week", 2025, today=TODAY)
        assert exc_info.value.issues[0].field == "mode"

    def test_error_is_value_error(self, validator):
        with pytest.raises(ValueError):
            validator.parse(None, today=TODAY)

    def test_ignored_values_are_warnings(self, validator):
        result = validator.validate("all_time", 2025, 3, today=TODAY)
        assert result.is_valid
        assert len(result.warnings) == 2

        result = validator.validate("year", 2025, 3, today=TODAY)
        assert result.is_valid
        assert result.period == Year(year=2025)
        assert result.warnings == ["Month is ignored for a yearly window"]

    def test_defaults_from_settings(self):
        validator = PeriodValidator()
        assert validator.validate("year", 1970, today=TODAY).is_valid
        assert not validator.validate("year", 1969, today=TODAY).is_valid

    def test_user_friendly_summary(self, validator):
        ok = validator.validate("month", 2025, 10, today=TODAY)
        assert validator.get_user_friendly_summary(ok) == "Showing October 2025."

        bad = validator.validate("month", 2025, 13, today=TODAY)
        assert "Month 13 is outside 1-12" in validator.get_user_friendly_summary(bad)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
