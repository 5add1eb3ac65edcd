"""Driver registry and the configuration handed to driver constructors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

_DSN_ERROR = (
    "invalid datastore endpoint; endpoint should be a DSN URI in the format "
    "<scheme>://<authority>"
)


@dataclass
class TlsConfig:
    """File locations and verification settings for a TLS connection."""

    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    trusted_ca_file: str = ""
    skip_verify: bool = False


@dataclass
class DriverConfig:
    """Settings passed to a driver constructor.

    Durations are expressed in seconds.
    """

    endpoint: str = ""
    scheme: str = ""
    data_source_name: str = ""
    connection_pool_config: Any = None
    backend_tls_config: TlsConfig = field(default_factory=TlsConfig)
    metrics_registerer: Any = None
    compact_interval: float = 0.0
    compact_interval_jitter: int = 0
    compact_timeout: float = 0.0
    compact_min_retain: int = 0
    compact_batch_size: int = 0
    poll_batch_size: int = 0


Constructor = Callable[[DriverConfig], Tuple[bool, Any]]


class UnknownDriverError(LookupError):
    """Raised when an endpoint names a scheme with no registered driver."""

    def __init__(self, scheme: str = "") -> None:
        super().__init__("unknown driver")
        self.scheme = scheme


@dataclass
class _DriverTable:
    constructors: Dict[str, Constructor] = field(default_factory=dict)
    default_scheme: str = ""


_table = _DriverTable()


def register(scheme: str, constructor: Constructor) -> None:
    """Register a constructor for the given scheme."""
    _table.constructors[scheme] = constructor


def set_default(scheme: str) -> None:
    """Set the scheme used when no endpoint is configured."""
    _table.default_scheme = scheme


def get_default() -> Optional[Constructor]:
    """Return the default driver constructor, or None if it is not registered."""
    return _table.constructors.get(_table.default_scheme)


def get(scheme: str) -> Optional[Constructor]:
    """Return the constructor registered for a scheme, or None."""
    return _table.constructors.get(scheme)


def validate_dsn_uri(value: str) -> None:
    """Ensure the value has the form <scheme>://<authority>."""
    if "://" not in value:
        raise ValueError(_DSN_ERROR)


def _scheme_and_address(value: str) -> Tuple[str, str]:
    scheme, sep, address = value.partition("://")
    if not sep:
        return "", value
    return scheme, address


def new_driver(cfg: DriverConfig) -> Tuple[bool, Any]:
    """Build the backend selected by the configured endpoint.

    Returns a pair of (leader_elect, backend) as produced by the constructor.
    """
    if cfg.endpoint == "":
        driver = get_default()
        if driver is None:
            raise LookupError("no default driver found")
        return driver(cfg)

    validate_dsn_uri(cfg.endpoint)
    cfg.scheme, cfg.data_source_name = _scheme_and_address(cfg.endpoint)

    driver = get(cfg.scheme)
    if driver is None:
        raise UnknownDriverError(cfg.scheme)
    return driver(cfg)