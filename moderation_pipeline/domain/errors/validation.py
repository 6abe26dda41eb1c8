"""Validation and configuration errors.

Validation errors are raised before any state is created, so a failed
submission never leaves partial records behind.
"""

from __future__ import annotations

from collections.abc import Sequence

from moderation_pipeline.domain.exceptions import ModerationError


class ValidationError(ModerationError):
    """Raised when caller-supplied input is malformed.

    Attributes:
        errors: Individual validation problems, one per offending field.
    """

    def __init__(self, errors: Sequence[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors: tuple[str, ...] = tuple(errors)
        super().__init__("; ".join(self.errors) or "Validation failed")


class ReportValidationError(ValidationError):
    """Raised when a report submission is missing required fields."""

    def __init__(self, errors: Sequence[str]) -> None:
        super().__init__(errors)
        self.args = (f"Invalid report submission: {'; '.join(self.errors)}",)


class ConfigurationError(ValidationError):
    """Raised for unknown or out-of-range configuration options.

    Attributes:
        option: The offending option name, if a single option is at fault.
    """

    def __init__(self, message: str, option: str | None = None) -> None:
        self.option = option
        super().__init__(message)
