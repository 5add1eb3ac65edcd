"""Building blocks for an etcd-style key/value store."""

__version__ = "0.1.0"