"""In-memory index of recent key revisions, ordered by key."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from sortedcontainers import SortedDict


class Operation(enum.Enum):
    """The kind of change recorded for a key revision."""

    PUT = "PUT"
    DELETE = "DEL"
    PURGE = "PURGE"


@dataclass(frozen=True)
class SeqOp:
    """One recorded change: stream sequence, operation and optional expiry time."""

    seq: int
    op: Operation
    expires: Optional[float] = None


class KeyNotFoundError(LookupError):
    """Raised when a key, or a live revision of it, is not in the index."""

    def __init__(self, message: str = "key not found") -> None:
        super().__init__(message)


class FutureRevisionError(ValueError):
    """Raised when a revision beyond the last applied sequence is requested."""

    def __init__(self) -> None:
        super().__init__("mvcc: required revision is a future revision")


class CompactedError(ValueError):
    """Raised when a revision older than the compact revision is requested."""

    def __init__(self) -> None:
        super().__init__("mvcc: required revision has been compacted")


def seek_key(prefix: str, start_key: str) -> Tuple[str, bool]:
    """Return the key to start listing from and whether only that key matches."""
    exact = not prefix.endswith("/") and start_key == ""

    if start_key == "" or start_key == prefix:
        return prefix, exact

    base = prefix[:-1] if prefix.endswith("/") else prefix

    rest = start_key[len(base):] if start_key.startswith(base) else start_key
    if rest.startswith("/"):
        rest = rest[1:]

    key = f"{base}/{rest}" if rest else prefix
    return key, exact


def get_seq_op(
    ops: Sequence[SeqOp], revision: int, allow_deleted: bool
) -> Optional[SeqOp]:
    """Return the latest operation at or before the revision (0 for latest).

    A non-put operation yields None unless deleted entries are allowed.
    """
    for op in reversed(ops):
        if revision <= 0 or op.seq <= revision:
            if op.op is not Operation.PUT and not allow_deleted:
                return None
            return op
    return None


class RevisionIndex:
    """Keeps the last few operations of every key and answers revision queries."""

    def __init__(self, history: int) -> None:
        if history < 1:
            raise ValueError("history must be at least 1")
        self._history = history
        self._tree: "SortedDict[str, List[SeqOp]]" = SortedDict()
        self._lock = threading.RLock()
        self._last_seq = 0
        self._compact_rev = 0

    @property
    def last_seq(self) -> int:
        """The sequence of the most recently applied operation."""
        with self._lock:
            return self._last_seq

    @property
    def compact_revision(self) -> int:
        """The revision below which history is no longer served."""
        with self._lock:
            return self._compact_rev

    def set_compact_revision(self, revision: int) -> None:
        with self._lock:
            self._compact_rev = revision

    def apply(
        self, key: str, seq: int, op: Operation, expires: Optional[float] = None
    ) -> None:
        """Record an operation for a key, dropping the oldest beyond the history size."""
        with self._lock:
            ops = self._tree.get(key)
            if ops is None:
                ops = []
                self._tree[key] = ops
            if len(ops) >= self._history:
                del ops[: len(ops) - self._history + 1]
            ops.append(SeqOp(seq=seq, op=op, expires=expires))
            self._last_seq = seq

    def check_revision(self, key: str, revision: int) -> None:
        """Raise if the key is unknown or the revision is in the future or compacted."""
        with self._lock:
            if key and key not in self._tree:
                raise KeyNotFoundError()
            if revision > 0:
                if revision > self._last_seq:
                    raise FutureRevisionError()
                if revision < self._compact_rev:
                    raise CompactedError()

    def get_revision_op(
        self, key: str, revision: int, allow_deleted: bool
    ) -> SeqOp:
        """Return the operation of the key visible at the revision."""
        with self._lock:
            ops = self._tree.get(key)
            if ops is None:
                raise KeyNotFoundError()
            op = get_seq_op(list(ops), revision, allow_deleted)
        if op is None:
            raise KeyNotFoundError()
        return op

    def list_ops(
        self, prefix: str, start_key: str, revision: int
    ) -> List[Tuple[str, int]]:
        """Return (key, seq) pairs of live keys under the prefix, in key order."""
        self.check_revision("", revision)
        seek, exact = seek_key(prefix, start_key)

        matches: List[Tuple[str, int]] = []
        with self._lock:
            start = self._tree.bisect_left(seek) if seek else 0
            keys = self._tree.keys()
            for pos in range(start, len(keys)):
                key = keys[pos]
                if exact and key != seek:
                    break
                if not key.startswith(prefix):
                    break
                op = get_seq_op(self._tree[key], revision, False)
                if op is not None:
                    matches.append((key, op.seq))
        return matches

    def count(self, prefix: str, start_key: str, revision: int) -> int:
        """Return the number of live keys that list_ops would return."""
        return len(self.list_ops(prefix, start_key, revision))

    def snapshot(self) -> Dict[str, List[SeqOp]]:
        """Return a copy of the recorded operations per key."""
        with self._lock:
            return {key: list(ops) for key, ops in self._tree.items()}