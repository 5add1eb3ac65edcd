"""Key encoding that maps slash-separated keys onto dot-separated subjects."""

from __future__ import annotations

NO_ROOT_PREFIX = "meta"

_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {ch: i for i, ch in enumerate(_ALPHABET)}


class InvalidKeyError(ValueError):
    """Raised for keys that cannot be represented as subjects."""

    def __init__(self, message: str = "invalid key") -> None:
        super().__init__(message)


def base58_encode(data: bytes) -> str:
    """Encode bytes with the Bitcoin base58 alphabet."""
    zeros = len(data) - len(data.lstrip(b"\x00"))
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, rem = divmod(number, 58)
        digits.append(_ALPHABET[rem])
    return _ALPHABET[0] * zeros + "".join(reversed(digits))


def base58_decode(text: str) -> bytes:
    """Decode a Bitcoin-alphabet base58 string."""
    number = 0
    for ch in text:
        try:
            number = number * 58 + _INDEX[ch]
        except KeyError:
            raise ValueError(f"invalid base58 character {ch!r}") from None
    zeros = len(text) - len(text.lstrip(_ALPHABET[0]))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * zeros + body


class KeyCodec:
    """Turns keys like /this/is/a.test.key into base58 tokens joined by dots."""

    def encode_range(self, prefix: str) -> str:
        """Return a wildcard subject matching every key under the prefix."""
        if prefix == "/":
            return ">"
        if prefix == NO_ROOT_PREFIX:
            return f"{NO_ROOT_PREFIX}.>"
        return f"{self.encode(prefix)}.>"

    def encode(self, key: str) -> str:
        """Encode a key; keys without a leading slash get the meta token."""
        if key in ("", "/"):
            raise InvalidKeyError()

        has_root_prefix = key.startswith("/")
        parts = [] if has_root_prefix else [NO_ROOT_PREFIX]
        for part in key.strip("/").split("/"):
            raw = (part or "/").encode("utf-8", "surrogateescape")
            parts.append(base58_encode(raw))
        return ".".join(parts)

    def decode(self, key: str) -> str:
        """Decode an encoded subject token sequence back into a key."""
        has_root_prefix = not key.startswith(NO_ROOT_PREFIX)
        parts = []
        for token in key.split("."):
            if token == NO_ROOT_PREFIX:
                continue
            part = base58_decode(token).decode("utf-8", "surrogateescape")
            parts.append("" if part == "/" else part)

        if not parts:
            raise InvalidKeyError()

        decoded = "/".join(parts)
        return f"/{decoded}" if has_root_prefix else decoded