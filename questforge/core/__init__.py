"""
Core infrastructure layer for Questforge.

Purpose
-------
Provide a single import surface for the infrastructure subsystems:

- Configuration (Config)
- Database subsystem (DatabaseService, ORM base and mixins)
- Redis subsystem (RedisService, used for the oracle answer cache)
- Logging (structured logging, logger factory, LogContext)
- Event bus (in-process domain event publication)

Non-Responsibilities
--------------------
- Business logic (lives under questforge.modules)
"""

from questforge.core.config import Config
from questforge.core.logging import LogContext, get_logger

__all__ = ["Config", "LogContext", "get_logger"]
