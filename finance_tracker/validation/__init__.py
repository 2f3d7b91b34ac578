"""Input validation package."""

from finance_tracker.validation.validator import (
    InputValidator,
    ValidationFailedError,
    get_user_friendly_summary,
    has_errors,
    raise_for_errors,
)

__all__ = [
    "InputValidator",
    "ValidationFailedError",
    "get_user_friendly_summary",
    "has_errors",
    "raise_for_errors",
]
