"""
Report Window Validation

DESIGN DECISION: A report window is checked BEFORE any computation runs.
The reconstructor assumes it gets a well-formed window and never handles a
bad month or year internally.

Checks:
- Mode is one of all_time / month / year
- Year and month are present when the mode needs them
- Year and month parse as integers
- Month is within 1-12
- Year is within the configured sane range
  (min_report_year .. current year + max_future_years)

IMPORTANT: Validation NEVER silently fixes issues.
A value that is ignored (e.g. a month passed with All Time) is reported as
a warning; anything that would change the answer is an error.
"""

import re
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from profiteer.config import get_settings
from profiteer.models.period import AllTime, DateFilterPeriod, Month, Year

# ASCII digits only; str.isdigit also accepts superscripts
_WHOLE_NUMBER = re.compile(r"-?[0-9]+")


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of validating one report window request."""

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    is_valid: bool
    period: Optional[DateFilterPeriod] = Field(
        default=None,
        description="The parsed window; None when invalid"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]


class PeriodValidationError(ValueError):
    """Raised when a report window request has error-level issues."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        messages = "; ".join(i.message for i in issues if i.severity == "error")
        super().__init__(f"Invalid report window: {messages}")


_MODE_ALIASES = {
    "all_time": "all_time",
    "alltime": "all_time",
    "all": "all_time",
    "month": "month",
    "monthly": "month",
    "year": "year",
    "yearly": "year",
}


class PeriodValidator:
    """
    Turns raw (mode, year, month) input into a DateFilterPeriod.

    Input usually comes from query strings or form fields, so year and
    month may arrive as strings.
    """

    def __init__(
        self,
        min_year: Optional[int] = None,
        max_future_years: Optional[int] = None,
    ):
        """
        Initialize validator.

        Args:
            min_year: Earliest allowed year. Defaults to settings.
            max_future_years: Years past the current one that are still
                              allowed. Defaults to settings.
        """
        if min_year is None or max_future_years is None:
            app = get_settings().app
            min_year = app.min_report_year if min_year is None else min_year
            max_future_years = (
                app.max_future_years if max_future_years is None else max_future_years
            )
        self._min_year = min_year
        self._max_future_years = max_future_years

    def _parse_int(
        self,
        field: str,
        value: Any,
        issues: list[ValidationIssue],
    ) -> Optional[int]:
        if value is None or (isinstance(value, str) and not value.strip()):
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{field.capitalize()} is required for this window",
                severity="error",
                suggested_fix=f"Provide a {field}",
            ))
            return None
        if isinstance(value, bool):
            value = None
        elif isinstance(value, int):
            return value
        elif isinstance(value, str) and _WHOLE_NUMBER.fullmatch(value.strip()):
            return int(value.strip())
        issues.append(ValidationIssue(
            field=field,
            issue_type="invalid_format",
            message=f"{field.capitalize()} must be a whole number, got {value!r}",
            severity="error",
        ))
        return None

    def _check_year(
        self,
        year: int,
        today: date,
        issues: list[ValidationIssue],
    ) -> None:
        max_year = today.year + self._max_future_years
        if year < self._min_year or year > max_year:
            issues.append(ValidationIssue(
                field="year",
                issue_type="out_of_range",
                message=f"Year {year} is outside {self._min_year}-{max_year}",
                severity="error",
                suggested_fix="Pick a year with recorded activity",
            ))

    def validate(
        self,
        mode: Any,
        year: Any = None,
        month: Any = None,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Validate a report window request.

        Returns:
            ValidationResult with the parsed period when valid
        """
        today = today or date.today()
        issues: list[ValidationIssue] = []
        period: Optional[DateFilterPeriod] = None

        key = str(mode).strip().lower().replace(" ", "_").replace("-", "_") if mode else ""
        normalized = _MODE_ALIASES.get(key)

        if normalized is None:
            issues.append(ValidationIssue(
                field="mode",
                issue_type="invalid_value",
                message=f"Unknown report window {mode!r}",
                severity="error",
                suggested_fix="Use all_time, month or year",
            ))
        elif normalized == "all_time":
            for field, value in (("year", year), ("month", month)):
                if value not in (None, ""):
                    issues.append(ValidationIssue(
                        field=field,
                        issue_type="ignored",
                        message=f"{field.capitalize()} is ignored for All Time",
                        severity="warning",
                    ))
            period = AllTime()
        else:
            parsed_year = self._parse_int("year", year, issues)
            if parsed_year is not None:
                self._check_year(parsed_year, today, issues)

            parsed_month = None
            if normalized == "month":
                parsed_month = self._parse_int("month", month, issues)
                if parsed_month is not None and not 1 <= parsed_month <= 12:
                    issues.append(ValidationIssue(
                        field="month",
                        issue_type="out_of_range",
                        message=f"Month {parsed_month} is outside 1-12",
                        severity="error",
                    ))
            elif month not in (None, ""):
                issues.append(ValidationIssue(
                    field="month",
                    issue_type="ignored",
                    message="Month is ignored for a yearly window",
                    severity="warning",
                ))

            if not any(i.severity == "error" for i in issues):
                if normalized == "month":
                    period = Month(year=parsed_year, month=parsed_month)
                else:
                    period = Year(year=parsed_year)

        is_valid = not any(i.severity == "error" for i in issues)
        return ValidationResult(
            is_valid=is_valid,
            period=period if is_valid else None,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    def parse(
        self,
        mode: Any,
        year: Any = None,
        month: Any = None,
        today: Optional[date] = None,
    ) -> DateFilterPeriod:
        """Validate and return the period, or raise PeriodValidationError."""
        result = self.validate(mode, year, month, today=today)
        if not result.is_valid:
            raise PeriodValidationError(result.issues)
        return result.period

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Short text for whoever picked the window."""
        if result.is_valid and not result.warnings:
            return f"Showing {result.period.display_text()}."

        lines = []
        for issue in result.errors:
            lines.append(f"- {issue.message}")
            if issue.suggested_fix:
                lines.append(f"  ({issue.suggested_fix})")
        for warning in result.warnings:
            lines.append(f"- Note: {warning}")
        return "\n".join(lines)
