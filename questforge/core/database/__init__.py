"""
Database subsystem for Questforge.

Provides the async SQLAlchemy engine, session/transaction management, the
circuit breaker guarding writes, and the ORM base classes and mixins used by
every model.
"""

from questforge.core.database.base import (
    Base,
    IdMixin,
    TimestampMixin,
    json_column_type,
    utc_now,
)
from questforge.core.database.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    CircuitState,
)
from questforge.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    # ORM Base & Mixins
    "Base",
    "IdMixin",
    "TimestampMixin",
    "json_column_type",
    "utc_now",
    # Main service
    "DatabaseService",
    # Exceptions
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
    # Circuit breaker
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
]
