"""Raw bytes, base64 and base32 forms of content and entry links."""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from enum import IntEnum

from skydb.encoding import HASH_SIZE, hash_all, marshal_ed25519_public_key
from skydb.errors import FormatError

RAW_LINK_SIZE = 2 + HASH_SIZE
BASE64_ENCODED_LINK_SIZE = 46
BASE32_ENCODED_LINK_SIZE = 55

URI_SKYNET_PREFIX = "sia://"

# Stored as entry data to mark a deleted SkyDB entry.
DELETION_ENTRY_DATA = bytes(RAW_LINK_SIZE)

_BASE64_RE = re.compile(r"^[a-zA-Z0-9_-]{46}$")
_BASE32_RE = re.compile(r"^[0-9a-vA-V]{55}$")


class LinkVersion(IntEnum):
    """Version discriminator held in the low two bits of the bitfield."""

    CONTENT = 1
    ENTRY = 2


@dataclass(frozen=True)
class Link:
    """A parsed 34-byte link."""

    bitfield: int
    merkle_root: bytes

    def __post_init__(self) -> None:
        if not 0 <= self.bitfield <= 0xFFFF:
            raise FormatError(f"bitfield {self.bitfield} does not fit in 16 bits")
        if len(self.merkle_root) != HASH_SIZE:
            raise FormatError(
                f"merkle root must be {HASH_SIZE} bytes, got {len(self.merkle_root)}"
            )
        _validate_bitfield(self.bitfield)

    @property
    def version(self) -> LinkVersion:
        return LinkVersion((self.bitfield & 0b11) + 1)

    @property
    def is_entry_link(self) -> bool:
        return self.version == LinkVersion.ENTRY

    def to_bytes(self) -> bytes:
        return self.bitfield.to_bytes(2, "little") + self.merkle_root

    def to_base32(self) -> str:
        return format_link(self.to_bytes(), subdomain=True)

    def to_uri(self) -> str:
        return format_uri(str(self))

    def __str__(self) -> str:
        return format_link(self.to_bytes())

    @classmethod
    def from_bytes(cls, raw: bytes) -> Link:
        if len(raw) != RAW_LINK_SIZE:
            raise FormatError(f"raw link must be {RAW_LINK_SIZE} bytes, got {len(raw)}")
        return cls(bitfield=int.from_bytes(raw[:2], "little"), merkle_root=bytes(raw[2:]))

    @classmethod
    def from_string(cls, value: str) -> Link:
        return cls.from_bytes(decode_link(value))


def _validate_bitfield(bitfield: int) -> None:
    version = (bitfield & 0b11) + 1
    if version == LinkVersion.CONTENT:
        # Mode is the run of one-bits after the version; 8 or more is invalid.
        rest = bitfield >> 2
        mode = 0
        while rest & 1:
            mode += 1
            rest >>= 1
        if mode > 7:
            raise FormatError("content link bitfield has an invalid mode")
    elif version == LinkVersion.ENTRY:
        if bitfield != 1:
            raise FormatError("entry link bitfield must not set bits above the version")
    else:
        raise FormatError(f"unsupported link version {version}")


def trim_uri_prefix(value: str, prefix: str = URI_SKYNET_PREFIX) -> str:
    """Strip ``sia://`` or ``sia:`` (case-insensitive) from the front of ``value``."""
    long_prefix = prefix.lower()
    short_prefix = long_prefix.rstrip("/")
    lowered = value.lower()
    if lowered.startswith(long_prefix):
        return value[len(long_prefix):]
    if lowered.startswith(short_prefix):
        return value[len(short_prefix):]
    return value


def format_link(raw: bytes, *, subdomain: bool = False) -> str:
    """Encode raw link bytes.

    The canonical form is unpadded URL-safe base64 (46 chars). With
    ``subdomain=True`` returns the unpadded lowercase base32hex form (55 chars),
    which survives case-insensitive hostnames.
    """
    if len(raw) != RAW_LINK_SIZE:
        raise FormatError(f"raw link must be {RAW_LINK_SIZE} bytes, got {len(raw)}")
    if subdomain:
        return base64.b32hexencode(raw).decode("ascii").rstrip("=").lower()
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def format_uri(link: str) -> str:
    return URI_SKYNET_PREFIX + trim_uri_prefix(link)


def decode_link(value: str) -> bytes:
    """Decode a base64 or base32 link, with or without a URI prefix."""
    body = trim_uri_prefix(value)
    if len(body) == BASE64_ENCODED_LINK_SIZE:
        if not _BASE64_RE.match(body):
            raise FormatError(f"link {value!r} contains characters outside base64url")
        raw = base64.urlsafe_b64decode(body + "==")
        if format_link(raw) != body:
            raise FormatError(f"link {value!r} is not canonically encoded")
    elif len(body) == BASE32_ENCODED_LINK_SIZE:
        if not _BASE32_RE.match(body):
            raise FormatError(f"link {value!r} contains characters outside base32hex")
        try:
            raw = base64.b32hexdecode(body.upper() + "=")
        except binascii.Error as e:
            raise FormatError(f"link {value!r} is not valid base32: {e}") from e
        if format_link(raw, subdomain=True) != body.lower():
            raise FormatError(f"link {value!r} is not canonically encoded")
    else:
        raise FormatError(
            f"link must be {BASE64_ENCODED_LINK_SIZE} (base64) or "
            f"{BASE32_ENCODED_LINK_SIZE} (base32) characters, got {len(body)}"
        )
    # Validates the version discriminator.
    Link.from_bytes(raw)
    return raw


def convert_base64_to_base32(link: str) -> str:
    return format_link(decode_link(link), subdomain=True)


def convert_base32_to_base64(link: str) -> str:
    return format_link(decode_link(link))


def new_entry_link(public_key: bytes, data_key_digest: bytes) -> Link:
    """Entry link for (public_key, data_key_digest); a pure function of both."""
    if len(data_key_digest) != HASH_SIZE:
        raise FormatError(f"data key digest must be {HASH_SIZE} bytes, got {len(data_key_digest)}")
    return Link(bitfield=LinkVersion.ENTRY - 1, merkle_root=derive_entry_id(public_key, data_key_digest))


def derive_entry_id(public_key: bytes, data_key_digest: bytes) -> bytes:
    try:
        marshalled = marshal_ed25519_public_key(public_key)
    except ValueError as e:
        raise FormatError(str(e)) from e
    return hash_all(marshalled, data_key_digest)


def is_deletion_sentinel(data: bytes) -> bool:
    return data == DELETION_ENTRY_DATA


def new_content_link(content: bytes) -> Link:
    """Content link addressing ``content`` by its BLAKE2b-256 hash.

    This is how the local portal names uploads. Portals derive the root from
    the upload's Merkle tree instead, so the two never collide by accident.
    """
    return Link(bitfield=LinkVersion.CONTENT - 1, merkle_root=hash_all(content))
