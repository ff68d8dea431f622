"""
Base helpers for domain value objects.

Domain models are separate from database models: ORM rows in
``questforge.database.models`` are schema only, while the frozen
dataclasses in this package carry parsing and lookup behavior.
Validation failures raise ``DomainValidationError``; services translate
them into the ``ValidationError`` their callers see.
"""

from __future__ import annotations

from typing import Any, Optional


class DomainValidationError(Exception):
    """
    Raised when a value object cannot be built from its raw form.

    Parameters
    ----------
    message : str
        Human-readable error message
    field : Optional[str]
        Field name that failed validation (if applicable)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def validate_non_negative(value: int, field_name: str) -> None:
    if value < 0:
        raise DomainValidationError(
            f"{field_name} must be non-negative, got {value}",
            field=field_name,
        )


def validate_not_empty(value: Any, field_name: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise DomainValidationError(f"{field_name} cannot be empty", field=field_name)
