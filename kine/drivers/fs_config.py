"""Parsing of fs:// endpoints into filesystem backend settings."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from kine.drivers.registry import DriverConfig

DEFAULT_SNAPSHOT_EVERY = 1000
DEFAULT_SEGMENT_BYTES = 64 << 20

QUERY_SYNC = "sync"
QUERY_SNAPSHOT_INTERVAL = "snapshot_interval"
QUERY_SEGMENT_BYTES = "segment_bytes"

_ALLOWED_QUERY = {QUERY_SYNC, QUERY_SNAPSHOT_INTERVAL, QUERY_SEGMENT_BYTES}
_ABSOLUTE_ERROR = "fs backend requires absolute path DSN like fs:///var/lib/kine"

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}
_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


@dataclass
class FsConfig:
    """Settings for the filesystem log backend."""

    root_dir: str
    sync_every_write: bool = True
    snapshot_every: int = DEFAULT_SNAPSHOT_EVERY
    segment_bytes: int = DEFAULT_SEGMENT_BYTES
    compact_min_retain: int = 0


def _parse_bool(value: str) -> bool:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid syntax: {value!r}")


def _parse_positive_int(name: str, value: str) -> int:
    if _INT_RE.fullmatch(value):
        number = int(value)
        if _INT64_MIN <= number <= _INT64_MAX and number > 0:
            return number
    raise ValueError(f"invalid fs backend {name!r} value {value!r}")


def parse_config(cfg: Optional[DriverConfig]) -> FsConfig:
    """Build an FsConfig from a driver configuration with an fs:// endpoint."""
    if cfg is None:
        raise ValueError("fs backend requires driver config")
    if cfg.endpoint == "":
        raise ValueError("fs backend requires explicit endpoint")

    parts = urlsplit(cfg.endpoint)
    if parts.scheme != "fs":
        raise ValueError(f"fs backend requires scheme fs, got {parts.scheme!r}")
    if parts.netloc != "":
        raise ValueError(_ABSOLUTE_ERROR)

    root_dir = posixpath.normpath(parts.path) if parts.path else "."
    if root_dir in (".", "") or not posixpath.isabs(root_dir):
        raise ValueError(_ABSOLUTE_ERROR)

    query = parse_qs(parts.query, keep_blank_values=True)
    for key in query:
        if key not in _ALLOWED_QUERY:
            raise ValueError(f"fs backend does not support query parameter {key!r}")

    def first(name: str) -> str:
        values = query.get(name)
        return values[0] if values else ""

    result = FsConfig(root_dir=root_dir, compact_min_retain=cfg.compact_min_retain)

    value = first(QUERY_SYNC)
    if value:
        try:
            result.sync_every_write = _parse_bool(value)
        except ValueError as exc:
            raise ValueError(
                f"invalid fs backend {QUERY_SYNC!r} value {value!r}: {exc}"
            ) from exc

    value = first(QUERY_SNAPSHOT_INTERVAL)
    if value:
        result.snapshot_every = _parse_positive_int(QUERY_SNAPSHOT_INTERVAL, value)

    value = first(QUERY_SEGMENT_BYTES)
    if value:
        result.segment_bytes = _parse_positive_int(QUERY_SEGMENT_BYTES, value)

    return result