# kine

Building blocks for an etcd-style key/value store: a registry of storage
drivers keyed by URI scheme, parsers for `fs://` and `nats://` endpoints,
the key encoding and in-memory revision index of a NATS JetStream backend,
a lease-expiry watcher, and an event fan-out for watchers.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `kine.drivers.registry`

- `register(scheme, constructor)`, `set_default(scheme)`, `get(scheme)` and
  `get_default()` manage a process-wide table of driver constructors. A
  constructor is called with a `DriverConfig` and returns a pair
  `(leader_elect, backend)`. Nothing is registered out of the box.
- `validate_dsn_uri(value)` raises `ValueError` unless the value contains
  `://`.
- `new_driver(cfg)` uses the default driver when `cfg.endpoint` is empty
  (raising `LookupError` if none is registered); otherwise it validates the
  endpoint, fills in `cfg.scheme` and `cfg.data_source_name`, and calls the
  constructor for that scheme, raising `UnknownDriverError` if there is none.
- `DriverConfig` and `TlsConfig` are dataclasses holding the settings;
  durations are in seconds.

### `kine.drivers.fs_config`

`parse_config(cfg)` turns an `fs:///absolute/path` endpoint into an
`FsConfig` (`root_dir`, `sync_every_write`, `snapshot_every`,
`segment_bytes`, `compact_min_retain`). The query parameters `sync`,
`snapshot_interval` and `segment_bytes` override the defaults (`true`, 1000,
64 MiB); any other parameter, a host part, a relative path or an invalid
value raises `ValueError`.

```python
from kine.drivers.fs_config import parse_config
from kine.drivers.registry import DriverConfig

cfg = parse_config(DriverConfig(endpoint="fs:///var/lib/kine?sync=false"))
cfg.root_dir          # "/var/lib/kine"
cfg.sync_every_write  # False
```

### `kine.drivers.nats.codec`

`KeyCodec` maps slash-separated keys onto dot-separated subjects, each
segment Base58 encoded (Bitcoin alphabet); keys without a leading slash get a
leading `meta` token. `encode` raises `InvalidKeyError` for `""` and `"/"`.
`base58_encode` and `base58_decode` are available on their own.

```python
from kine.drivers.nats.codec import KeyCodec

codec = KeyCodec()
codec.encode("/a/a")        # "2g.2g"
codec.decode("2g.2g")       # "/a/a"
codec.encode_range("/a/a")  # "2g.2g.>"
```

### `kine.drivers.nats.config`

`parse_connection(dsn, tls_info)` reads a comma separated list of `nats://`
URLs into a `NatsConfig`. Query parameters on the first URL set `bucket`,
`replicas` (1–5), `revHistory` (2–64), `slowMethod` (a duration such as
`500ms`), `credsFile` and `contextFile` (a JSON file whose `url`, `user`,
`password`, `token`, `creds`, `nkey`, `cert`, `key`, `ca` and `inbox_prefix`
fill settings not already given). User info on the first URL becomes a
user/password pair or a token. Out-of-range values and non-`nats` URLs raise
`ValueError`.

### `kine.drivers.nats.index`

`RevisionIndex(history)` keeps the last `history` operations
(`SeqOp`: sequence, `Operation`, optional expiry) of every key, ordered by
key. `apply` records an operation; `check_revision` raises
`KeyNotFoundError`, `FutureRevisionError` or `CompactedError`;
`get_revision_op`, `list_ops` and `count` answer queries at a revision
(0 meaning latest); `set_compact_revision`, `last_seq`, `compact_revision`
and `snapshot` expose its state. `seek_key` and `get_seq_op` are the helpers
behind listing.

### `kine.drivers.nats.sequence`

`SequenceTracker` records the last applied sequence (`advance`, `last`),
lets callers block until a sequence is reached (`wait_for_sequence`, raising
`TimeoutError`), and marks the end of an initial replay (`mark_ready`,
`wait_ready`, `ready`).

### `kine.drivers.nats.expire`

`ExpireHeap` is a thread-safe min-heap of `ExpireEntry(key, seq, expires)`,
with `expires` in seconds since the epoch. `ExpireWatcher(fn)` runs a
background thread (`start`, `stop`) that calls `fn(key, seq)` for every entry
whose time has passed; `add` schedules an entry and `remove_key` cancels all
entries of a key.

### `kine.broadcaster`

`Broadcaster.subscribe(connect)` calls `connect()` on the first subscription
to obtain an iterable of events, copies them on a background thread to every
`Subscription`, and returns a new subscription. Iterate a subscription to
receive events; `close()` unsubscribes. A subscriber with 100 unread events
is dropped, and all subscriptions end when the source is exhausted.

## What this package does not do

There is no server and no command: nothing here listens for etcd clients.
There is no storage backend either. No driver is registered, so
`new_driver` works only with constructors you register yourself; the
filesystem and NATS modules parse configuration and provide in-memory pieces
but do not write files or connect to a NATS server, and there is no SQL
backend.