"""
Questforge Shared Module

Domain-level foundations for the quest and reward modules:
- Domain exceptions and error handling helpers
- Base service and repository patterns

Usage
-----
    from questforge.modules.shared import (
        BaseService,
        BaseRepository,
        ClaimRejectedError,
        NotFoundError,
    )
"""

from __future__ import annotations

from .base_repository import BaseRepository, insert_if_absent
from .base_service import BaseService
from .exceptions import (
    ClaimRejectedError,
    ConfigurationError,
    ErrorSeverity,
    InternalError,
    InvalidOperationError,
    NotFoundError,
    OracleUnavailableError,
    QuestDomainException,
    UnauthorizedError,
    ValidationError,
    get_error_severity,
    is_transient_error,
    should_alert,
)

__all__ = [
    "BaseRepository",
    "BaseService",
    "ClaimRejectedError",
    "ConfigurationError",
    "ErrorSeverity",
    "InternalError",
    "InvalidOperationError",
    "NotFoundError",
    "OracleUnavailableError",
    "QuestDomainException",
    "UnauthorizedError",
    "ValidationError",
    "get_error_severity",
    "insert_if_absent",
    "is_transient_error",
    "should_alert",
]
