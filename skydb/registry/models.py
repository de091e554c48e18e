"""Registry entries, signed entries, and the protocol limits on them."""

from __future__ import annotations

from dataclasses import dataclass

from skydb.crypto import data_key_digest
from skydb.encoding import MAX_UINT64
from skydb.errors import EntryTooLargeError

MAX_REVISION = MAX_UINT64
MAX_ENTRY_LENGTH = 70  # bytes of entry data the registry accepts


@dataclass(frozen=True)
class RegistryEntry:
    """A single (data key, data, revision) value in the registry."""

    data_key: str | bytes  # text key, or its 32-byte digest
    data: bytes
    revision: int

    @property
    def data_key_digest(self) -> bytes:
        return data_key_digest(self.data_key)

    def validate(self) -> None:
        """Reject entries the registry would refuse, without a round trip."""
        if len(self.data) > MAX_ENTRY_LENGTH:
            raise EntryTooLargeError(
                f"entry data is {len(self.data)} bytes, the maximum is {MAX_ENTRY_LENGTH}"
            )
        if not 0 <= self.revision <= MAX_REVISION:
            raise ValueError(f"revision {self.revision} is outside [0, {MAX_REVISION}]")


@dataclass(frozen=True)
class SignedRegistryEntry:
    """An entry and the Ed25519 signature over its digest."""

    entry: RegistryEntry
    signature: bytes

    @property
    def revision(self) -> int:
        return self.entry.revision


@dataclass(frozen=True)
class RemoteEntry:
    """An entry as reported by a transport, before verification.

    ``public_key`` and ``data_key_digest`` are only populated by lookups by
    entry ID, where the caller does not know them in advance.
    """

    data: bytes
    revision: int
    signature: bytes
    public_key: str = ""
    data_key_digest: bytes = b""
