"""Single-shot lifecycle event channel.

A LifecycleEvent delivers at most one payload to its subscribers and then
closes permanently. Subscribing to a closed channel is allowed but the
callback never runs.

Example:
    >>> event = LifecycleEvent()
    >>> sub = event.subscribe(print)
    >>> delivered = event.publish("gone")
    gone
    >>> event.publish("again")  # already delivered
    False
    >>> event.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Cancellable registration on a LifecycleEvent."""

    def __init__(self, channel: LifecycleEvent, callback: Callable) -> None:
        self._channel: LifecycleEvent | None = channel
        self.callback = callback

    @property
    def active(self) -> bool:
        """Whether the callback can still be delivered to."""
        return self._channel is not None and not self._channel.closed

    def unsubscribe(self) -> None:
        """Stop receiving the event. Safe to call repeatedly."""
        if self._channel is not None:
            self._channel._remove(self)
            self._channel = None


class LifecycleEvent(Generic[T]):
    """At-most-once notification channel.

    Attributes:
        closed: True once the channel can no longer deliver
        delivered: True if a payload was published before closing
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscription] = []
        self._waiters: list[asyncio.Future] = []
        self.closed = False
        self.delivered = False
        self._payload: T | None = None

    def subscribe(self, callback: Callable[[T], object]) -> Subscription:
        """Register a callback for the single payload."""
        sub = Subscription(self, callback)
        if self.closed:
            sub._channel = None
        else:
            self._subscribers.append(sub)
        return sub

    def publish(self, payload: T) -> bool:
        """Deliver the payload to every subscriber.

        Returns:
            True if the payload was delivered, False if the channel had
            already fired or was closed
        """
        if self.closed or self.delivered:
            return False
        self.delivered = True
        self._payload = payload

        for sub in list(self._subscribers):
            try:
                sub.callback(payload)
            except Exception:
                # One failing subscriber must not starve the others
                logger.exception("Lifecycle subscriber %r raised", sub.callback)

        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(payload)
        self._waiters.clear()
        return True

    def close(self) -> None:
        """Close the channel and drop all subscribers."""
        if self.closed:
            return
        self.closed = True
        for sub in self._subscribers:
            sub._channel = None
        self._subscribers.clear()
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(None)
        self._waiters.clear()

    async def wait(self) -> T | None:
        """Wait for the payload; returns None if closed without one."""
        if self.delivered:
            return self._payload
        if self.closed:
            return None
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return await waiter

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _remove(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)

    def __repr__(self) -> str:
        return (
            f"LifecycleEvent(subscribers={len(self._subscribers)}, "
            f"delivered={self.delivered}, closed={self.closed})"
        )
