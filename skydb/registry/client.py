"""Verified reads and validated writes of single registry entries."""

from __future__ import annotations

from skydb.crypto import (
    data_key_digest,
    decode_public_key,
    entry_digest,
    normalize_public_key,
    public_key_from_private_key,
    sign,
    verify,
)
from skydb.errors import FormatError, TrustError
from skydb.links import derive_entry_id, format_uri, new_entry_link
from skydb.logging import get_logger
from skydb.registry.models import MAX_REVISION, RegistryEntry, RemoteEntry, SignedRegistryEntry
from skydb.transport.base import RegistryTransport

logger = get_logger(__name__)


class RegistryClient:
    """Fetches and publishes signed registry entries through a transport.

    Every fetched entry is re-verified against the public key it was looked
    up under. An entry that fails verification raises :class:`TrustError`;
    its data is never handed to the caller.
    """

    def __init__(self, transport: RegistryTransport):
        self.transport = transport

    async def get_entry(
        self, public_key: str, data_key: str | bytes
    ) -> SignedRegistryEntry | None:
        """Fetch the entry for (public_key, data_key).

        Returns None when the registry holds no entry for the key.
        """
        public_key = normalize_public_key(public_key)
        digest_hex = data_key_digest(data_key).hex()

        remote = await self.transport.get_entry(public_key, digest_hex)
        if remote is None:
            logger.debug("Registry entry not found", public_key=public_key, data_key=digest_hex)
            return None

        return self._verified(public_key, data_key, remote)

    async def get_entry_by_id(
        self, entry_id: bytes
    ) -> tuple[str, SignedRegistryEntry] | None:
        """Fetch an entry by its entry ID.

        The public key and data-key digest reported by the transport must hash
        back to ``entry_id``, and the signature must verify under that key.

        Returns:
            (public_key, signed_entry), or None when no entry exists.
        """
        remote = await self.transport.get_entry_by_id(entry_id.hex())
        if remote is None:
            logger.debug("Registry entry not found", entry_id=entry_id.hex())
            return None

        try:
            derived = derive_entry_id(decode_public_key(remote.public_key), remote.data_key_digest)
        except FormatError as e:
            raise TrustError(f"entry {entry_id.hex()} has no usable public key") from e
        if derived != entry_id:
            logger.warning("Registry entry ID mismatch", entry_id=entry_id.hex())
            raise TrustError(f"entry returned for {entry_id.hex()} belongs to a different key")

        public_key = normalize_public_key(remote.public_key)
        return public_key, self._verified(public_key, remote.data_key_digest, remote)

    async def set_entry(
        self, public_key: str, entry: RegistryEntry, signature: bytes
    ) -> None:
        """Publish a signed entry.

        Size and revision limits are checked before any network call.

        Raises:
            ConflictError: the registry holds an equal or newer revision
            TransportError: network or service failure
        """
        public_key = normalize_public_key(public_key)
        entry.validate()

        await self.transport.set_entry(
            public_key,
            entry.data_key_digest.hex(),
            entry.data,
            entry.revision,
            signature,
        )
        logger.debug("Registry entry published", public_key=public_key, revision=entry.revision)

    async def sign_and_set_entry(self, private_key: str, entry: RegistryEntry) -> None:
        """Sign ``entry`` with ``private_key`` and publish it."""
        signature = sign(private_key, entry_digest(entry))
        await self.set_entry(public_key_from_private_key(private_key), entry, signature)

    def entry_link(self, public_key: str, data_key: str | bytes) -> str:
        """Deterministic ``sia://`` entry link for (public_key, data_key). No network call."""
        return entry_link(public_key, data_key)

    def _verified(
        self, public_key: str, data_key: str | bytes, remote: RemoteEntry
    ) -> SignedRegistryEntry:
        if not 0 <= remote.revision <= MAX_REVISION:
            raise TrustError(f"registry entry has out-of-range revision {remote.revision}")
        entry = RegistryEntry(data_key=data_key, data=remote.data, revision=remote.revision)
        if not verify(public_key, entry_digest(entry), remote.signature):
            logger.warning(
                "Registry entry signature verification failed",
                public_key=public_key,
                revision=remote.revision,
            )
            raise TrustError(
                f"signature of registry entry (revision {remote.revision}) "
                f"does not verify for public key {public_key}"
            )
        return SignedRegistryEntry(entry=entry, signature=remote.signature)


def entry_link(public_key: str, data_key: str | bytes) -> str:
    """``sia://`` entry link for (public_key, data_key)."""
    link = new_entry_link(decode_public_key(public_key), data_key_digest(data_key))
    return format_uri(str(link))
