"""
Configuration subsystem for Questforge.

Static, environment-driven configuration lives in ``config.py``. There is no
dynamic (database-backed) configuration layer: quest definitions are data,
not settings.
"""

from questforge.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
