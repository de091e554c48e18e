"""Protocols for the registry and blob-store collaborators."""

from typing import Protocol

from skydb.registry.models import RemoteEntry


class RegistryTransport(Protocol):
    """
    Protocol for registry access.

    Implementations do no signature checking on reads; verification is the
    caller's responsibility. Network and service failures raise
    TransportError.
    """

    async def get_entry(self, public_key: str, data_key_digest: str) -> RemoteEntry | None:
        """
        Look up the entry for a hex public key and hex data-key digest.

        Returns:
            The entry, or None when the registry holds no entry
        """
        ...

    async def get_entry_by_id(self, entry_id: str) -> RemoteEntry | None:
        """
        Look up an entry by its hex entry ID.

        The returned entry carries its public key and data-key digest.
        """
        ...

    async def set_entry(
        self,
        public_key: str,
        data_key_digest: str,
        data: bytes,
        revision: int,
        signature: bytes,
    ) -> None:
        """
        Publish a signed entry.

        Raises:
            ConflictError: revision is not greater than the stored one
            TransportError: network or service failure
        """
        ...


class BlobStore(Protocol):
    """Protocol for immutable content storage."""

    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        """Store ``data`` and return its content link."""
        ...

    async def download(self, link: str) -> bytes:
        """Fetch the bytes a content link addresses."""
        ...


class SkynetTransport(RegistryTransport, BlobStore, Protocol):
    """A portal: both a registry and a blob store."""

    async def aclose(self) -> None:
        ...
