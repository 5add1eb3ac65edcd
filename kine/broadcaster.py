"""Fan-out of one event stream to many subscribers."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, Iterator

log = logging.getLogger(__name__)

SUBSCRIPTION_CAPACITY = 100

ConnectFunc = Callable[[], Iterable[Any]]


class Subscription:
    """A bounded stream of events; iterate it to receive them."""

    def __init__(self, owner: "Broadcaster", capacity: int = SUBSCRIPTION_CAPACITY) -> None:
        self._owner = owner
        self._capacity = capacity
        self._items: Deque[Any] = deque()
        self._cond = threading.Condition()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def _offer(self, item: Any) -> bool:
        """Queue an item; return False when the buffer is full."""
        with self._cond:
            if self._closed:
                return True
            if len(self._items) >= self._capacity:
                return False
            self._items.append(item)
            self._cond.notify_all()
            return True

    def _close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def close(self) -> None:
        """Unsubscribe; events already buffered can still be read."""
        self._owner._unsubscribe(self)

    def __iter__(self) -> Iterator[Any]:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._items or self._closed)
                if not self._items:
                    return
                item = self._items.popleft()
            yield item


class Broadcaster:
    """Connects to a source on first subscription and copies its events to subscribers.

    A subscriber whose buffer is full is dropped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._running = False
        self._subs: Dict[Subscription, None] = {}

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def subscribe(self, connect: ConnectFunc) -> Subscription:
        with self._lock:
            if not self._running:
                source = connect()
                thread = threading.Thread(
                    target=self._stream, args=(source,), name="broadcaster", daemon=True
                )
                thread.start()
                self._running = True
            sub = Subscription(self)
            self._subs[sub] = None
            return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._drop(sub)

    def _drop(self, sub: Subscription) -> None:
        if sub in self._subs:
            del self._subs[sub]
            sub._close()

    def _stream(self, source: Iterable[Any]) -> None:
        try:
            for item in source:
                with self._lock:
                    for sub in list(self._subs):
                        if not sub._offer(item):
                            self._drop(sub)
        except Exception as exc:
            log.error("event source failed: %s", exc)
        finally:
            with self._lock:
                for sub in list(self._subs):
                    self._drop(sub)
                self._running = False