"""
Base Service Foundation

Purpose
-------
Foundational class for the quest engine's domain services. Services
implement business logic, open transactions through DatabaseService,
enforce quest rules, and emit domain events after commit.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- Event emission helpers
- Validation error wrapping

What this class does NOT do:
- Manage database transactions (that's DatabaseService's job)
- Contain quest-specific logic

Usage
-----
    class CommunityRewardService(BaseService):
        def __init__(self, score_provider, issuer, event_bus=None):
            super().__init__(Config, event_bus, get_logger(__name__))
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from questforge.modules.shared.exceptions import ConfigurationError, ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from questforge.core.event.bus import EventBus


class BaseService:
    """
    Base class for all domain services.

    Args:
        config: Configuration source; the ``Config`` class or any object
            exposing settings as attributes
        event_bus: Event bus for cross-module communication (optional)
        logger: Structured logger instance
    """

    def __init__(
        self,
        config: Any,
        event_bus: Optional[EventBus],
        logger: Logger,
    ) -> None:
        self._config = config
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve a configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        value = getattr(self._config, key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Emit a domain event. Call only after the owning transaction committed.

        Args:
            event_type: Type/name of the event
            data: Event payload data
            context: Optional additional context (account_id, community_id, ...)
        """
        if self._events is None:
            return
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log a service operation with structured context."""
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """Log a service error with full context."""
        self.log.error(
            f"Service error during {operation}: {str(error)}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )

    def validate_positive_int(self, value: int, name: str) -> None:
        """
        Validate that a value is a positive integer.

        Raises:
            ValidationError: If value is not positive
        """
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ValidationError(
                name, f"{name} must be a positive integer, got {value}"
            )

    def validate_non_negative_int(self, value: int, name: str) -> None:
        """
        Validate that a value is a non-negative integer.

        Raises:
            ValidationError: If value is negative
        """
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValidationError(
                name, f"{name} must be a non-negative integer, got {value}"
            )
