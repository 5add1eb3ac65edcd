import pytest

from kine.drivers.fs_config import (
    DEFAULT_SEGMENT_BYTES,
    DEFAULT_SNAPSHOT_EVERY,
    parse_config,
)
from kine.drivers.registry import DriverConfig


def test_parse_config_defaults():
    config = parse_config(DriverConfig(endpoint="fs:///var/lib/kine"))
    assert config.root_dir == "/var/lib/kine"
    assert config.sync_every_write is True
    assert config.snapshot_every == DEFAULT_SNAPSHOT_EVERY
    assert config.segment_bytes == DEFAULT_SEGMENT_BYTES


def test_parse_config_default_values():
    config = parse_config(DriverConfig(endpoint="fs:///var/lib/kine"))
    assert config.snapshot_every == 1000
    assert config.segment_bytes == 64 << 20


def test_parse_config_query_overrides():
    config = parse_config(
        DriverConfig(
            endpoint="fs:///tmp/kine-dev?sync=false&snapshot_interval=42&segment_bytes=8192"
        )
    )
    assert config.root_dir == "/tmp/kine-dev"
    assert config.sync_every_write is False
    assert config.snapshot_every == 42
    assert config.segment_bytes == 8192


def test_parse_config_rejects_empty_endpoint():
    with pytest.raises(ValueError):
        parse_config(DriverConfig())


def test_parse_config_rejects_missing_config():
    with pytest.raises(ValueError):
        parse_config(None)


def test_parse_config_rejects_relative_like_path():
    with pytest.raises(ValueError):
        parse_config(DriverConfig(endpoint="fs://./data/kine"))


def test_parse_config_rejects_unknown_query_parameter():
    with pytest.raises(ValueError):
        parse_config(DriverConfig(endpoint="fs:///var/lib/kine?unknown=1"))


@pytest.mark.parametrize(
    "endpoint",
    [
        "fs:///var/lib/kine?sync=maybe",
        "fs:///var/lib/kine?snapshot_interval=0",
        "fs:///var/lib/kine?segment_bytes=-1",
    ],
)
def test_parse_config_rejects_invalid_values(endpoint):
    with pytest.raises(ValueError):
        parse_config(DriverConfig(endpoint=endpoint))


def test_parse_config_rejects_other_scheme():
    with pytest.raises(ValueError, match="scheme fs"):
        parse_config(DriverConfig(endpoint="sqlite:///var/lib/kine"))


def test_parse_config_cleans_path_and_carries_retain():
    config = parse_config(
        DriverConfig(endpoint="fs:///var/lib//kine/../kine/", compact_min_retain=7)
    )
    assert config.root_dir == "/var/lib/kine"
    assert config.compact_min_retain == 7