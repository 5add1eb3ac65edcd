"""Tracking of the last applied stream sequence for read-after-write waits."""

from __future__ import annotations

import threading


class SequenceTracker:
    """Holds the last sequence applied to the index and lets writers wait for it."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._last = 0
        self._ready = threading.Event()

    def advance(self, seq: int) -> None:
        """Record the sequence just applied and wake every waiter."""
        with self._cond:
            self._last = seq
            self._cond.notify_all()

    def last(self) -> int:
        """Return the last applied sequence."""
        with self._cond:
            return self._last

    def wait_for_sequence(self, seq: int, timeout: float) -> None:
        """Block until the sequence has been applied.

        Raises TimeoutError if that does not happen within the timeout (seconds).
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._last >= seq, timeout):
                raise TimeoutError(f"timeout waiting for sequence {seq}")

    @property
    def ready(self) -> bool:
        """Whether the initial replay has completed."""
        return self._ready.is_set()

    def mark_ready(self) -> None:
        """Mark the initial replay as complete; repeated calls have no effect."""
        self._ready.set()

    def wait_ready(self, timeout: float = 60.0) -> None:
        """Block until marked ready, raising TimeoutError after the timeout."""
        if not self._ready.wait(timeout):
            raise TimeoutError("timeout waiting for btree to be ready")