# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Structured event stream for the decision gateway.

Host applications subscribe here to be told about mode changes, recorded
decisions, and critical lockouts. Delivery is synchronous and in
subscription order. A subscriber that raises is logged and skipped so that
one faulty notification channel cannot unwind the audit path.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Iterable, Literal

from pydantic import BaseModel, Field

from sovereign_gateway.types import Clock, EventName, utc_now

logger = logging.getLogger("sovereign.gateway.events")

EventPriority = Literal["normal", "high"]

EventHandler = Callable[["GatewayEvent"], None]


class GatewayEvent(BaseModel, frozen=True):
    """
    A single notification published by the gateway.

    Attributes:
        name: The :class:`~sovereign_gateway.types.EventName`.
        payload: JSON-friendly details of what happened.
        priority: ``"high"`` for events a human operator should see now.
        timestamp: UTC time the event was published.
    """

    name: EventName
    payload: dict[str, Any] = Field(default_factory=dict)
    priority: EventPriority = "normal"
    timestamp: datetime


class _Subscription:
    __slots__ = ("handler", "names")

    def __init__(self, handler: EventHandler, names: frozenset[EventName] | None) -> None:
        self.handler = handler
        self.names = names

    def wants(self, name: EventName) -> bool:
        return self.names is None or name in self.names


class EventBus:
    """
    Publish/subscribe hub for :class:`GatewayEvent` values.

    Example::

        bus = EventBus()
        unsubscribe = bus.subscribe(print, names={EventName.CRITICAL_LOCKOUT})
        bus.emit(EventName.CRITICAL_LOCKOUT, {"decision_id": "..."}, priority="high")
        unsubscribe()
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utc_now
        self._subscriptions: list[_Subscription] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        handler: EventHandler,
        names: Iterable[EventName | str] | None = None,
    ) -> Callable[[], None]:
        """
        Register ``handler`` for events.

        Args:
            handler: Callable invoked with each matching :class:`GatewayEvent`.
            names: Event names to receive. ``None`` receives every event.

        Returns:
            A callable that removes this subscription when invoked.
        """
        wanted = frozenset(EventName(n) for n in names) if names is not None else None
        subscription = _Subscription(handler, wanted)
        with self._lock:
            self._subscriptions.append(subscription)

        def _unsubscribe() -> None:
            with self._lock:
                if subscription in self._subscriptions:
                    self._subscriptions.remove(subscription)

        return _unsubscribe

    def emit(
        self,
        name: EventName,
        payload: dict[str, Any] | None = None,
        priority: EventPriority = "normal",
    ) -> GatewayEvent:
        """
        Publish an event to every interested subscriber.

        Returns:
            The :class:`GatewayEvent` that was delivered.
        """
        event = GatewayEvent(
            name=name,
            payload=payload or {},
            priority=priority,
            timestamp=self._clock(),
        )
        with self._lock:
            targets = [s for s in self._subscriptions if s.wants(name)]

        for subscription in targets:
            try:
                subscription.handler(event)
            except Exception:
                logger.exception(
                    "event_handler_failed",
                    extra={"event": event.name.value, "priority": event.priority},
                )
        return event

    def subscriber_count(self) -> int:
        """Return the number of active subscriptions."""
        with self._lock:
            return len(self._subscriptions)
