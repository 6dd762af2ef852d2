"""In-process publish/subscribe for engine events.

The orchestrator publishes install progress and log lines here; the
presentation layer subscribes through the boundary, which restricts
which channels may be observed.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class Subscription:
    """Handle returned by ``EventBus.subscribe``; call ``close()`` to stop."""

    def __init__(self, bus: EventBus, channel: str, listener: Listener) -> None:
        self._bus = bus
        self.channel = channel
        self.listener = listener

    def close(self) -> None:
        """Unsubscribe the listener (idempotent)."""
        self._bus.unsubscribe(self)


class EventBus:
    """Thread-safe, in-process pub/sub.

    Listeners run synchronously in the publishing thread, outside the
    bus lock. A listener that raises is logged and never affects the
    publisher or the other listeners.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Subscription]] = {}

    def subscribe(self, channel: str, listener: Listener) -> Subscription:
        """Register a listener for a channel.

        Args:
            channel: Channel name, e.g. ``install:log``.
            listener: Callable receiving each payload.

        Returns:
            Subscription handle.
        """
        subscription = Subscription(self, channel, listener)
        with self._lock:
            self._subscribers.setdefault(channel, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription; unknown subscriptions are ignored."""
        with self._lock:
            listeners = self._subscribers.get(subscription.channel, [])
            if subscription in listeners:
                listeners.remove(subscription)

    def subscriber_count(self, channel: str) -> int:
        """Number of listeners on a channel."""
        with self._lock:
            return len(self._subscribers.get(channel, []))

    def publish(self, channel: str, payload: Any) -> int:
        """Deliver a payload to every listener of a channel.

        Returns:
            Number of listeners that received the payload without error.
        """
        with self._lock:
            listeners = list(self._subscribers.get(channel, []))

        delivered = 0
        for subscription in listeners:
            try:
                subscription.listener(payload)
            except Exception:
                logger.exception("Listener for %s failed", channel)
                continue
            delivered += 1
        return delivered
