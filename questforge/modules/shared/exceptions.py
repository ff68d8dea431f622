"""
Domain exceptions for the quest engine.

Purpose
-------
Structured, domain-specific exception hierarchy raised by quest and reward
services. Callers (an API layer, a worker) translate these into responses
using ``error_code`` and ``to_dict()``.

Taxonomy
--------
- NOT_FOUND          -> NotFoundError
- VALIDATION         -> ValidationError
- UNAUTHORIZED       -> UnauthorizedError
- CLAIM_REJECTED     -> ClaimRejectedError
- ORACLE_UNAVAILABLE -> OracleUnavailableError (absorbed by OracleGuard)
- INTERNAL           -> InternalError (persistence failures, rolled back)

Design Notes
------------
- All domain exceptions inherit from `QuestDomainException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict-like)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, not concerning (e.g., losing a claim race)
    INFO = "info"  # Normal operation (e.g., validation failures)
    WARNING = "warning"  # Concerning but handled (e.g., oracle outage)
    ERROR = "error"  # Unexpected errors requiring attention
    CRITICAL = "critical"  # System-level failures requiring immediate action


class QuestDomainException(Exception):
    """
    Base exception for all quest-domain errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise QuestDomainException(
        ...     "Claim failed",
        ...     {"reason": "quest archived"}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class NotFoundError(QuestDomainException):
    """
    Raised when a requested resource cannot be found.

    Args:
        resource_type: Type of resource (e.g., "CommunityQuest", "CommunityReward")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={
                "resource_type": resource_type,
                "identifier": identifier,
            },
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ValidationError(QuestDomainException):
    """
    Raised when a quest definition or input fails validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(
        self,
        field: str,
        message: str,
        missing_keys: Optional[list[str]] = None,
    ) -> None:
        self.field = field
        self.validation_message = message
        self.missing_keys = list(missing_keys or [])
        error_message = f"Validation error for {field}: {message}"
        details: Dict[str, Any] = {
            "field": field,
            "validation_message": message,
        }
        if self.missing_keys:
            details["missing_keys"] = self.missing_keys
        super().__init__(
            error_message,
            details=details,
            error_code=f"VALIDATION_{field.upper()}",
        )


class UnauthorizedError(QuestDomainException):
    """Raised when an operation requires an invoker and none was supplied."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(
            f"Unauthorized: {action} requires an authenticated account",
            details={"action": action},
            error_code="UNAUTHORIZED",
        )


class ClaimRejectedError(QuestDomainException):
    """
    Raised when a claim is refused.

    Covers ineligible status, already-claimed ledger rows, lost claim races,
    and exhausted claimable quantities.

    Args:
        reason: Explanation of why the claim was refused
        status: Quest status observed when the claim was refused, if any
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = False

    def __init__(self, reason: str, status: Optional[str] = None) -> None:
        self.reason = reason
        self.status = status
        super().__init__(
            f"Claim rejected: {reason}",
            details={"reason": reason, "status": status},
            error_code="CLAIM_REJECTED",
        )


class OracleUnavailableError(QuestDomainException):
    """
    Raised inside OracleGuard when an oracle fails, times out, or its circuit
    is open. Never escapes requirement evaluation.
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, oracle: str, reason: str) -> None:
        self.oracle = oracle
        self.reason = reason
        super().__init__(
            f"Oracle '{oracle}' unavailable: {reason}",
            details={"oracle": oracle, "reason": reason},
            error_code="ORACLE_UNAVAILABLE",
        )


class InternalError(QuestDomainException):
    """
    Raised when persistence fails mid-claim. The transaction has been
    rolled back when this surfaces.
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, cause: Optional[BaseException] = None) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(
            f"Internal error during {operation}",
            details={
                "operation": operation,
                "cause": type(cause).__name__ if cause is not None else None,
            },
            error_code="INTERNAL",
        )


class InvalidOperationError(QuestDomainException):
    """
    Raised when an operation violates a quest rule.

    Args:
        action: Description of the invalid action
        reason: Explanation of why it's not allowed

    Example:
        >>> raise InvalidOperationError(
        ...     "claim_reward",
        ...     "Quest has no rewards"
        ... )
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        message = f"Invalid operation '{action}': {reason}"
        super().__init__(
            message,
            details={
                "action": action,
                "reason": reason,
            },
            error_code=f"INVALID_{action.upper()}",
        )


class ConfigurationError(QuestDomainException):
    """Raised when a service is wired with missing or invalid configuration."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        super().__init__(
            f"Configuration error for {key}: {reason}",
            details={"key": key, "reason": reason},
            error_code="CONFIGURATION_ERROR",
        )


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """
    Check if an exception represents a transient error that can be retried.

    Args:
        exc: Exception to check

    Returns:
        True if error is retryable, False otherwise.
    """
    if isinstance(exc, QuestDomainException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """
    Get the severity level of an exception for logging.

    Args:
        exc: Exception to check

    Returns:
        ErrorSeverity level.
    """
    if isinstance(exc, QuestDomainException):
        return exc.severity
    return ErrorSeverity.ERROR  # Default for unknown exceptions


def should_alert(exc: Exception) -> bool:
    """True if severity is ERROR or CRITICAL."""
    severity = get_error_severity(exc)
    return severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
