"""Input validation package."""

from profiteer.validation.validator import (
    PeriodValidationError,
    PeriodValidator,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "PeriodValidationError",
    "PeriodValidator",
    "ValidationIssue",
    "ValidationResult",
]
