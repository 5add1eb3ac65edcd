"""Key encoding, connection parsing, revision index and lease expiry for a NATS key/value backend."""