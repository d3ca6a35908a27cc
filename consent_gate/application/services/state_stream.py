"""Replay-latest state stream.

A small observable for values that change over time (consent snapshots, CMP
signals, diagnostic event lists). It keeps the latest value, replays it to
every new subscriber, and conflates: a subscriber that falls behind only
ever sees the most recent value, never a backlog.

Threading:
- ``emit()`` may be called from any thread. Delivery to a subscription
  happens on the event loop the subscription was created on.
- Each emission carries a sequence number, so a delivery scheduled from
  another thread can never overwrite a newer value delivered in-loop.

Usage:
    stream = StateStream(ConsentSnapshot.empty())
    subscription = stream.subscribe()          # inside a running loop
    async for snapshot in subscription:
        ...
    subscription.close()                       # ends the async-for
"""

from __future__ import annotations

import asyncio
import threading
from typing import Generic, TypeVar

T = TypeVar("T")


def _in_loop(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


class StateStream(Generic[T]):
    """Holder of a current value with replay-latest subscriptions."""

    def __init__(self, initial: T) -> None:
        """Initialize the stream.

        Args:
            initial: Value replayed to subscribers before any emission.
        """
        self._value = initial
        self._seq = 0
        self._lock = threading.Lock()
        self._subscriptions: set[StreamSubscription[T]] = set()

    @property
    def value(self) -> T:
        """The latest emitted value."""
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def emit(self, value: T) -> None:
        """Replace the current value and push it to every subscriber."""
        with self._lock:
            self._seq += 1
            self._value = value
            for subscription in list(self._subscriptions):
                subscription._offer(self._seq, value)

    def subscribe(self) -> StreamSubscription[T]:
        """Subscribe from inside a running event loop.

        The current value is delivered immediately.

        Returns:
            An async iterator of values; close it to unsubscribe.
        """
        loop = asyncio.get_running_loop()
        subscription: StreamSubscription[T] = StreamSubscription(self, loop)
        with self._lock:
            self._subscriptions.add(subscription)
            subscription._offer(self._seq, self._value)
        return subscription

    def _discard(self, subscription: StreamSubscription[T]) -> None:
        with self._lock:
            self._subscriptions.discard(subscription)


class StreamSubscription(Generic[T]):
    """Conflating async iterator over a StateStream.

    Holds at most one undelivered value. Iteration ends once ``close()`` is
    called; values still pending at that point are dropped.
    """

    def __init__(self, stream: StateStream[T], loop: asyncio.AbstractEventLoop) -> None:
        self._stream = stream
        self._loop = loop
        self._event = asyncio.Event()
        self._pending: T | None = None
        self._has_pending = False
        self._last_seq = -1
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, seq: int, value: T) -> None:
        if self._closed:
            return
        if _in_loop(self._loop):
            self._deliver(seq, value)
            return
        try:
            self._loop.call_soon_threadsafe(self._deliver, seq, value)
        except RuntimeError:
            # Loop already closed; nobody is left to iterate.
            self._closed = True

    def _deliver(self, seq: int, value: T) -> None:
        if self._closed or seq <= self._last_seq:
            return
        self._last_seq = seq
        self._pending = value
        self._has_pending = True
        self._event.set()

    def close(self) -> None:
        """Unsubscribe. Safe to call more than once and from any thread."""
        if self._closed:
            return
        self._closed = True
        self._stream._discard(self)
        if _in_loop(self._loop):
            self._event.set()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._event.set)

    def __aiter__(self) -> StreamSubscription[T]:
        return self

    async def __anext__(self) -> T:
        while True:
            if self._closed:
                raise StopAsyncIteration
            if self._has_pending:
                value = self._pending
                self._pending = None
                self._has_pending = False
                self._event.clear()
                return value  # type: ignore[return-value]
            await self._event.wait()

    def __enter__(self) -> StreamSubscription[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
