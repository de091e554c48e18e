"""Key derivation, entry digests, and Ed25519 signatures.

Keys travel as hex strings: a 32-byte public key and a 64-byte private key
(seed followed by public key). Entry digests use a frozen byte layout,
because signatures already stored in the registry are checked against it.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from skydb.encoding import (
    HASH_SIZE,
    PUBLIC_KEY_SIZE,
    encode_number,
    encode_prefixed_bytes,
    encode_utf8_string,
    hash_all,
)
from skydb.errors import FormatError

if TYPE_CHECKING:
    from skydb.registry.models import RegistryEntry

PRIVATE_KEY_SIZE = 64
SIGNATURE_SIZE = 64

# PBKDF2 parameters for seed phrases. Changing them changes every derived key.
_PBKDF2_ITERATIONS = 1000
_PBKDF2_SALT = b""


@dataclass(frozen=True)
class KeyPair:
    """Hex-encoded Ed25519 key pair."""

    public_key: str
    private_key: str


@dataclass(frozen=True)
class KeyPairAndSeed(KeyPair):
    seed: str = ""


def derive_keypair(seed: str) -> KeyPair:
    """Derive a key pair from a seed string. The same seed yields the same keys."""
    seed_bytes = hashlib.pbkdf2_hmac(
        "sha256", seed.encode("utf-8"), _PBKDF2_SALT, _PBKDF2_ITERATIONS, dklen=32
    )
    return _keypair_from_signing_key(SigningKey(seed_bytes))


def gen_keypair_and_seed(length: int = 64) -> KeyPairAndSeed:
    """Generate a random hex seed of ``length`` characters and its key pair."""
    if length <= 0 or length % 2:
        raise ValueError(f"seed length must be a positive even number, got {length}")
    seed = secrets.token_hex(length // 2)
    keys = derive_keypair(seed)
    return KeyPairAndSeed(public_key=keys.public_key, private_key=keys.private_key, seed=seed)


def public_key_from_private_key(private_key: str) -> str:
    return bytes(_signing_key(private_key).verify_key).hex()


def _keypair_from_signing_key(signing_key: SigningKey) -> KeyPair:
    public = bytes(signing_key.verify_key)
    return KeyPair(public_key=public.hex(), private_key=(bytes(signing_key) + public).hex())


def _signing_key(private_key: str) -> SigningKey:
    raw = decode_hex("private key", private_key, PRIVATE_KEY_SIZE)
    signing_key = SigningKey(raw[:32])
    if bytes(signing_key.verify_key) != raw[32:]:
        raise FormatError("private key does not contain its own public key")
    return signing_key


def decode_hex(label: str, value: str, size: int) -> bytes:
    """Decode a fixed-size hex string, raising FormatError on any mismatch."""
    try:
        raw = bytes.fromhex(value)
    except ValueError as e:
        raise FormatError(f"{label} is not valid hex") from e
    if len(raw) != size:
        raise FormatError(f"{label} must be {size} bytes, got {len(raw)}")
    return raw


def decode_public_key(public_key: str) -> bytes:
    """Decode a hex public key; an ``ed25519:`` prefix is accepted."""
    if public_key.startswith("ed25519:"):
        public_key = public_key[len("ed25519:"):]
    return decode_hex("public key", public_key, PUBLIC_KEY_SIZE)


def normalize_public_key(public_key: str) -> str:
    """Lowercase hex form of a public key, without the ``ed25519:`` prefix."""
    return decode_public_key(public_key).hex()


# ---------------------------------------------------------------------------
# Digests
# ---------------------------------------------------------------------------


def hash_data_key(data_key: str) -> bytes:
    return hash_all(encode_utf8_string(data_key))


def data_key_digest(data_key: str | bytes) -> bytes:
    """Digest for a data key given as text or as an already-hashed 32-byte value."""
    if isinstance(data_key, bytes):
        if len(data_key) != HASH_SIZE:
            raise FormatError(f"hashed data key must be {HASH_SIZE} bytes, got {len(data_key)}")
        return data_key
    return hash_data_key(data_key)


def entry_digest(entry: RegistryEntry) -> bytes:
    """BLAKE2b-256 of data-key digest, length-prefixed data, and revision."""
    return hash_all(
        data_key_digest(entry.data_key),
        encode_prefixed_bytes(entry.data),
        encode_number(entry.revision),
    )


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


def sign(private_key: str, digest: bytes) -> bytes:
    return _signing_key(private_key).sign(digest).signature


def verify(public_key: str, digest: bytes, signature: bytes) -> bool:
    """Check ``signature`` over ``digest``. A wrong signature returns False."""
    verify_key = VerifyKey(decode_public_key(public_key))
    if len(signature) != SIGNATURE_SIZE:
        return False
    try:
        verify_key.verify(digest, signature)
    except BadSignatureError:
        return False
    return True
