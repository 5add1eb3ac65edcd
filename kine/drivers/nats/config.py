"""Parsing of nats:// connection strings into client and bucket settings."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, unquote, urlsplit

from kine.drivers.registry import TlsConfig

log = logging.getLogger(__name__)

DEFAULT_BUCKET = "kine"
DEFAULT_REPLICAS = 1
DEFAULT_REV_HISTORY = 10
DEFAULT_SLOW_METHOD = 0.5

# Whether an embedded server is available; when it is not, the options that
# only configure an embedded server are ignored.
EMBEDDED = False

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_UINT_RE = re.compile(r"[0-9]+")


@dataclass
class NatsConfig:
    """Connection, bucket and embedded-server settings.

    Durations are expressed in seconds.
    """

    client_url: str = ""
    rev_history: int = DEFAULT_REV_HISTORY
    bucket: str = DEFAULT_BUCKET
    replicas: int = DEFAULT_REPLICAS
    slow_threshold: float = DEFAULT_SLOW_METHOD
    no_embed: bool = False
    dont_listen: bool = False
    server_config: str = ""
    stdout_logging: bool = False
    host: str = ""
    port: int = 0
    data_dir: str = ""
    cert_file: str = ""
    key_file: str = ""
    ca_file: str = ""
    creds_file: str = ""
    user: str = ""
    password: str = ""
    token: str = ""
    nkey_file: str = ""
    inbox_prefix: str = ""


def _parse_duration(text: str) -> float:
    """Parse a duration such as "500ms" or "1h2m3.5s" into seconds."""
    original = text
    sign = 1.0
    if text[:1] in ("+", "-"):
        if text[0] == "-":
            sign = -1.0
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f"invalid duration {original!r}")
    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {original!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return sign * total


def _parse_uint8(text: str) -> Optional[int]:
    """Return the value as an unsigned 8-bit integer, or None if it is not one."""
    if not _UINT_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= 255 else None


def _parse_query(raw: str) -> Dict[str, List[str]]:
    if ";" in raw:
        raise ValueError("invalid semicolon separator in query")
    result: Dict[str, List[str]] = {}
    for key, value in parse_qsl(raw, keep_blank_values=True):
        result.setdefault(key, []).append(value)
    return result


def _split_netloc(netloc: str) -> Tuple[Optional[str], str]:
    """Split a network location into its user info (or None) and host part."""
    userinfo, sep, host = netloc.rpartition("@")
    if not sep:
        return None, netloc
    return userinfo, host


def _hostname_and_port(host: str) -> Tuple[str, str]:
    if host.startswith("["):
        end = host.find("]")
        if end != -1:
            rest = host[end + 1:]
            port = rest[1:] if rest.startswith(":") else ""
            return host[1:end], port
    name, sep, port = host.rpartition(":")
    if not sep:
        return host, ""
    return name, port


def _load_context(path: str, config: NatsConfig) -> List[str]:
    """Read a context file; settings already present on the config take precedence."""
    with open(path, encoding="utf-8") as handle:
        context = json.load(handle)

    fields = {
        "user": "user",
        "password": "password",
        "token": "token",
        "creds": "creds_file",
        "nkey": "nkey_file",
        "cert": "cert_file",
        "key": "key_file",
        "ca": "ca_file",
        "inbox_prefix": "inbox_prefix",
    }
    for source, target in fields.items():
        value = context.get(source) or ""
        if value and not getattr(config, target):
            setattr(config, target, value)

    return str(context.get("url") or "").split(",")


def parse_connection(dsn: str, tls_info: TlsConfig) -> NatsConfig:
    """Build a NatsConfig from a comma separated list of nats:// URLs.

    Query parameters are read from the first URL only.
    """
    config = NatsConfig()

    connections = dsn.split(",")
    first = urlsplit(connections[0])
    first_userinfo, first_host = _split_netloc(first.netloc)

    hostname, port = _hostname_and_port(first_host)
    config.host = hostname
    if port:
        try:
            config.port = int(port)
        except ValueError:
            config.port = 0

    query = _parse_query(first.query)

    def get(name: str) -> str:
        values = query.get(name)
        return values[0] if values else ""

    value = get("bucket")
    if value:
        config.bucket = value

    value = get("replicas")
    if value:
        replicas = _parse_uint8(value)
        if replicas is not None:
            if 1 <= replicas <= 5:
                config.replicas = replicas
            else:
                raise ValueError("invalid replicas, must be >= 1 and <= 5")

    value = get("slowMethod")
    if value:
        try:
            config.slow_threshold = _parse_duration(value)
        except ValueError:
            raise ValueError("invalid slowMethod duration " + value) from None

    value = get("revHistory")
    if value:
        revs = _parse_uint8(value)
        if revs is not None:
            if 2 <= revs <= 64:
                config.rev_history = revs
            else:
                raise ValueError("invalid revHistory, must be >= 2 and <= 64")

    if tls_info.key_file and tls_info.cert_file:
        config.cert_file = tls_info.cert_file
        config.key_file = tls_info.key_file

    if tls_info.ca_file:
        config.ca_file = tls_info.ca_file

    value = get("credsFile")
    if value:
        config.creds_file = value

    value = get("contextFile")
    if value:
        if first_host:
            raise ValueError("when using context endpoint no host should be provided")
        log.debug("loading nats context file: %s", value)
        connections = _load_context(value, config)

    urls = []
    for idx, connection in enumerate(connections):
        parts = urlsplit(connection)
        if parts.scheme != "nats":
            raise ValueError("invalid connection string=" + connection)
        userinfo, host = _split_netloc(parts.netloc)
        if userinfo is not None and idx == 0:
            user_parts = userinfo.split(":")
            if len(user_parts) > 1:
                config.user = unquote(user_parts[0])
                config.password = unquote(user_parts[1])
            else:
                config.token = unquote(user_parts[0])
        urls.append("nats://" + host)

    config.client_url = ",".join(urls)

    if EMBEDDED:
        config.no_embed = "noEmbed" in query
        config.server_config = get("serverConfig")
        config.stdout_logging = "stdoutLogging" in query
        config.dont_listen = "dontListen" in query
        config.data_dir = get("dataDir")

    log.debug("using config %r", config)
    return config