"""Tests for key derivation, digests and signatures."""

import hashlib

import pytest

from skydb.crypto import (
    KeyPairAndSeed,
    data_key_digest,
    decode_public_key,
    derive_keypair,
    entry_digest,
    gen_keypair_and_seed,
    hash_data_key,
    normalize_public_key,
    public_key_from_private_key,
    sign,
    verify,
)
from skydb.errors import FormatError
from skydb.registry.models import RegistryEntry


def _blake2b(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def test_derive_keypair_is_deterministic():
    keys = derive_keypair("insecure test seed")
    assert derive_keypair("insecure test seed") == keys
    assert derive_keypair("another seed") != keys


def test_keypair_layout():
    keys = derive_keypair("insecure test seed")
    assert len(keys.public_key) == 64
    assert len(keys.private_key) == 128
    # The private key is the 32-byte seed followed by the public key.
    assert keys.private_key.endswith(keys.public_key)
    assert public_key_from_private_key(keys.private_key) == keys.public_key


def test_gen_keypair_and_seed():
    keys = gen_keypair_and_seed()
    assert isinstance(keys, KeyPairAndSeed)
    assert len(keys.seed) == 64
    assert derive_keypair(keys.seed).public_key == keys.public_key
    assert gen_keypair_and_seed().seed != keys.seed


def test_gen_keypair_and_seed_rejects_odd_length():
    with pytest.raises(ValueError):
        gen_keypair_and_seed(63)


def test_private_key_must_match_its_public_half():
    keys = derive_keypair("a")
    other = derive_keypair("b")
    forged = keys.private_key[:64] + other.public_key
    with pytest.raises(FormatError):
        public_key_from_private_key(forged)


def test_private_key_must_be_hex():
    with pytest.raises(FormatError):
        public_key_from_private_key("zz" * 64)


def test_decode_public_key():
    keys = derive_keypair("a")
    raw = bytes.fromhex(keys.public_key)
    assert decode_public_key(keys.public_key) == raw
    assert decode_public_key("ed25519:" + keys.public_key) == raw
    assert normalize_public_key("ed25519:" + keys.public_key.upper()) == keys.public_key


def test_decode_public_key_rejects_wrong_size():
    with pytest.raises(FormatError):
        decode_public_key("ab" * 31)


def test_hash_data_key_layout():
    expected = _blake2b((3).to_bytes(8, "little") + b"app")
    assert hash_data_key("app") == expected
    assert data_key_digest("app") == expected


def test_data_key_digest_passes_hashed_keys_through():
    digest = bytes(range(32))
    assert data_key_digest(digest) == digest
    with pytest.raises(FormatError):
        data_key_digest(b"short")


def test_entry_digest_layout():
    entry = RegistryEntry(data_key="app", data=b"hello", revision=11)
    expected = _blake2b(
        hash_data_key("app")
        + (5).to_bytes(8, "little")
        + b"hello"
        + (11).to_bytes(8, "little")
    )
    assert entry_digest(entry) == expected


def test_entry_digest_depends_on_revision():
    a = RegistryEntry(data_key="app", data=b"x", revision=1)
    b = RegistryEntry(data_key="app", data=b"x", revision=2)
    assert entry_digest(a) != entry_digest(b)


def test_sign_and_verify():
    keys = derive_keypair("signer")
    digest = entry_digest(RegistryEntry(data_key="app", data=b"x", revision=0))
    signature = sign(keys.private_key, digest)
    assert len(signature) == 64
    assert verify(keys.public_key, digest, signature)


def test_verify_rejects_tampered_signature():
    keys = derive_keypair("signer")
    digest = entry_digest(RegistryEntry(data_key="app", data=b"x", revision=0))
    signature = bytearray(sign(keys.private_key, digest))
    signature[0] ^= 0x01
    assert not verify(keys.public_key, digest, bytes(signature))


def test_verify_rejects_other_key():
    keys = derive_keypair("signer")
    other = derive_keypair("someone else")
    digest = entry_digest(RegistryEntry(data_key="app", data=b"x", revision=0))
    assert not verify(other.public_key, digest, sign(keys.private_key, digest))


def test_verify_rejects_wrong_signature_length():
    keys = derive_keypair("signer")
    assert not verify(keys.public_key, bytes(32), b"short")
