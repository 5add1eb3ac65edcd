"""Lease expiry tracking: a time-ordered heap and a watcher thread."""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

log = logging.getLogger(__name__)

DeleteFn = Callable[[str, int], Any]


@dataclass
class ExpireEntry:
    """A key revision that expires at a wall-clock time (seconds since epoch)."""

    key: str
    seq: int
    expires: float


class ExpireHeap:
    """Thread-safe min-heap of entries ordered by expiry time."""

    def __init__(self) -> None:
        self._entries: List[Tuple[float, int, ExpireEntry]] = []
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def add(self, entry: ExpireEntry) -> None:
        with self._lock:
            heapq.heappush(self._entries, (entry.expires, next(self._counter), entry))

    def remove(self) -> Optional[ExpireEntry]:
        """Pop and return the earliest entry, or None when empty."""
        with self._lock:
            if not self._entries:
                return None
            return heapq.heappop(self._entries)[2]

    def peek(self) -> Optional[ExpireEntry]:
        """Return the earliest entry without removing it."""
        with self._lock:
            return self._entries[0][2] if self._entries else None

    def next(self, expired: float) -> Optional[ExpireEntry]:
        """Pop the earliest entry if it expires at or before the given time."""
        with self._lock:
            if not self._entries or self._entries[0][0] > expired:
                return None
            return heapq.heappop(self._entries)[2]

    def remove_by_key(self, key: str) -> List[ExpireEntry]:
        """Remove and return every entry for the key."""
        with self._lock:
            removed = [item[2] for item in self._entries if item[2].key == key]
            if removed:
                self._entries = [item for item in self._entries if item[2].key != key]
                heapq.heapify(self._entries)
            return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def is_empty(self) -> bool:
        return len(self) == 0


class ExpireWatcher:
    """Calls a delete function for each entry once its expiry time passes."""

    def __init__(self, fn: Optional[DeleteFn]) -> None:
        self.heap = ExpireHeap()
        self._fn = fn
        self._wake = threading.Event()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def add(self, key: str, seq: int, expires: float) -> None:
        self.heap.add(ExpireEntry(key=key, seq=seq, expires=expires))
        self._wake.set()

    def remove_key(self, key: str) -> List[ExpireEntry]:
        removed = self.heap.remove_by_key(key)
        if removed:
            self._wake.set()
        return removed

    def start(self) -> None:
        """Start the background thread that processes expirations."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, name="expire-watcher", daemon=True)
        self._thread.start()
        log.info("started expire watcher")

    def stop(self) -> None:
        """Stop the background thread and wait for it to finish."""
        self._stopped.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        while not self._stopped.is_set():
            entry = self.heap.peek()
            if entry is None:
                self._wake.wait()
            else:
                wait = entry.expires - time.time()
                if wait <= 0:
                    self._process_expired()
                    continue
                self._wake.wait(wait)
            self._wake.clear()

    def _process_expired(self) -> None:
        now = time.time()
        while not self._stopped.is_set():
            entry = self.heap.next(now)
            if entry is None:
                return
            if self._fn is not None:
                try:
                    self._fn(entry.key, entry.seq)
                except Exception as exc:  # the watcher must keep running
                    log.error("error deleting expired key: %s, err=%s", entry.key, exc)