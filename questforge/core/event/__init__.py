"""
Questforge event system: in-process pub/sub for domain events.
"""

from questforge.core.event.bus import (
    CallbackType,
    EventBus,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "CallbackType",
    "EventBus",
    "EventListener",
    "EventPayload",
    "ListenerPriority",
]
