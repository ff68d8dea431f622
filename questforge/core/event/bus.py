"""
Questforge EventBus: in-process async pub/sub for domain events.

Purpose
-------
Decouples the claim orchestrators from whatever reacts to a claim
(notifications, analytics, cache invalidation). Services publish after
their transaction commits; listeners never influence the claim outcome.

Responsibilities
----------------
- Register/unregister listeners with priorities
- Publish events to exact and wildcard ("quest.*") subscribers
- Run listeners in priority order (lower value first)
- Isolate listener errors: one failing listener never blocks the others
  and never propagates to the publisher

Published events
----------------
- quest.created
- quest.completed
- quest.reward_claimed
- community_reward.claimed
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from questforge.core.logging.logger import get_logger

logger = get_logger(__name__)

EventPayload = dict[str, Any]

CallbackType = Union[
    Callable[[EventPayload], Awaitable[Any]],
    Callable[[EventPayload], Any],
]


class ListenerPriority(Enum):
    """Execution order of listeners for one event (lower = earlier)."""

    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


@dataclass(slots=True, frozen=True)
class EventListener:
    callback: CallbackType
    priority: ListenerPriority
    identifier: str


class EventBus:
    """
    Async EventBus.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("quest.reward_claimed", on_claimed)
    >>> await bus.publish("quest.reward_claimed", {"account_id": 7})
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[EventListener]] = {}
        self._error_count = 0

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        """Ensure the callback accepts exactly one parameter (the payload)."""
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            return

        params = list(sig.parameters.values())
        if len(params) != 1:
            callback_name = getattr(callback, "__qualname__", repr(callback))
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{callback_name}'"
            )

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
    ) -> str:
        """
        Subscribe a callback to an event name or a "prefix.*" pattern.

        Returns the listener identifier for unsubscribe().
        """
        self._validate_callback_signature(callback)

        if identifier is None:
            module = getattr(callback, "__module__", "unknown")
            qualname = getattr(callback, "__qualname__", repr(callback))
            identifier = f"{module}.{qualname}@{event_name}"

        listeners = self._listeners.setdefault(event_name, [])
        if any(existing.identifier == identifier for existing in listeners):
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": identifier},
            )
            return identifier

        listeners.append(EventListener(callback, priority, identifier))
        listeners.sort(key=lambda listener: listener.priority.value)

        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": identifier,
                "priority": priority.name,
            },
        )
        return identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        listeners = self._listeners.get(event_name, [])
        remaining = [l for l in listeners if l.identifier != identifier]
        removed = len(remaining) != len(listeners)
        self._listeners[event_name] = remaining
        return removed

    def clear(self) -> None:
        self._listeners.clear()

    def _listeners_for(self, event_name: str) -> list[EventListener]:
        matched = list(self._listeners.get(event_name, []))
        for pattern, listeners in self._listeners.items():
            if pattern.endswith(".*") and event_name.startswith(pattern[:-1]):
                matched.extend(listeners)
        matched.sort(key=lambda listener: listener.priority.value)
        return matched

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish an event to all matching listeners.

        Returns the results of listeners that completed; failed listeners are
        logged and skipped.
        """
        listeners = self._listeners_for(event_name)
        if not listeners:
            logger.debug(
                "EventBus: no listeners for event",
                extra={"event_name": event_name},
            )
            return []

        results: list[Any] = []
        for listener in listeners:
            try:
                result = listener.callback(data)
                if inspect.isawaitable(result):
                    result = await result
                results.append(result)
            except Exception as exc:
                self._error_count += 1
                logger.error(
                    "EventBus: listener failed",
                    extra={
                        "event_name": event_name,
                        "listener_id": listener.identifier,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )

        return results

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name:
            return len(self._listeners_for(event_name))
        return sum(len(listeners) for listeners in self._listeners.values())

    @property
    def error_count(self) -> int:
        return self._error_count
