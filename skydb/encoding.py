"""Binary encoding helpers shared by links, keys and entry digests.

Integers are 8-byte little-endian; byte strings are length-prefixed. These
layouts are part of the wire protocol and must not change.
"""

from __future__ import annotations

import hashlib

HASH_SIZE = 32
SPECIFIER_LEN = 16

MAX_UINT64 = 2**64 - 1


def encode_number(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as 8 little-endian bytes."""
    if value < 0 or value > MAX_UINT64:
        raise ValueError(f"value {value} does not fit in an unsigned 64-bit integer")
    return value.to_bytes(8, "little")


def encode_prefixed_bytes(data: bytes) -> bytes:
    return encode_number(len(data)) + data


def encode_utf8_string(text: str) -> bytes:
    return encode_prefixed_bytes(text.encode("utf-8"))


def new_specifier(name: str) -> bytes:
    """Return ``name`` zero-padded to a 16-byte specifier."""
    raw = name.encode("utf-8")
    if len(raw) > SPECIFIER_LEN:
        raise ValueError(f"specifier {name!r} is longer than {SPECIFIER_LEN} bytes")
    return raw.ljust(SPECIFIER_LEN, b"\x00")


def hash_all(*parts: bytes) -> bytes:
    """BLAKE2b-256 over the concatenation of ``parts``."""
    h = hashlib.blake2b(digest_size=HASH_SIZE)
    for part in parts:
        h.update(part)
    return h.digest()


ED25519_SPECIFIER = new_specifier("ed25519")
PUBLIC_KEY_SIZE = 32


def marshal_ed25519_public_key(public_key: bytes) -> bytes:
    """Sia encoding of an Ed25519 public key: specifier, then prefixed key."""
    if len(public_key) != PUBLIC_KEY_SIZE:
        raise ValueError(f"expected a {PUBLIC_KEY_SIZE}-byte public key, got {len(public_key)} bytes")
    return ED25519_SPECIFIER + encode_prefixed_bytes(public_key)
