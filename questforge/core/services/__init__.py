"""
Service wiring for the quest engine.
"""

from questforge.core.services.container import OracleSet, ServiceContainer

__all__ = ["OracleSet", "ServiceContainer"]
