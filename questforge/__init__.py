"""
Questforge: community quest evaluation and reward claiming.

Subpackages
-----------
- core: configuration, logging, database and Redis services, event bus
- database: ORM models
- domain: value objects materialised from stored quest records
- modules: quest, reward, oracle and effect services
"""

__version__ = "0.1.0"
