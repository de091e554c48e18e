"""SkyDB — JSON documents stored as content links behind registry entries.

A write uploads the document, then publishes a registry entry pointing at
the upload under the key's revision lock. A read fetches the verified entry
and downloads the content link it holds.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from skydb.config import GetJSONOptions
from skydb.crypto import entry_digest, public_key_from_private_key, sign
from skydb.errors import ConflictError, FormatError, RevisionOverflowError, TransportError
from skydb.links import DELETION_ENTRY_DATA, Link, format_uri, is_deletion_sentinel, parse_link
from skydb.logging import get_logger
from skydb.registry.client import RegistryClient
from skydb.registry.models import MAX_REVISION, RegistryEntry
from skydb.registry.revision_cache import RevisionCache
from skydb.transport.base import BlobStore

logger = get_logger(__name__)

JSON_RESPONSE_VERSION = 2
JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class JSONResponse:
    """A SkyDB document and the ``sia://`` content link it was read from or written to."""

    data: dict[str, Any] | None = None
    data_link: str | None = None


class SkyDB:
    """Get, set and delete JSON documents under (public key, data key)."""

    def __init__(self, registry: RegistryClient, blobs: BlobStore, revision_cache: RevisionCache):
        self.registry = registry
        self.blobs = blobs
        self.revision_cache = revision_cache

    async def get_json(
        self,
        public_key: str,
        data_key: str | bytes,
        options: GetJSONOptions | None = None,
    ) -> JSONResponse:
        """Read the document stored under (public_key, data_key).

        Returns an empty response when the entry does not exist or was
        deleted. With ``options.cached_data_link`` set to the current link,
        returns the link without downloading the document again.
        """
        opts = options or GetJSONOptions()

        signed = await self.registry.get_entry(public_key, data_key)
        if signed is None:
            return JSONResponse()
        self.revision_cache.observe(public_key, data_key, signed.revision)

        data = signed.entry.data
        if is_deletion_sentinel(data):
            return JSONResponse()

        link = Link.from_bytes(data)
        if link.is_entry_link:
            raise FormatError("SkyDB entry points at an entry link, expected a content link")
        data_link = link.to_uri()

        if opts.cached_data_link == data_link:
            return JSONResponse(data=None, data_link=data_link)

        content = await self.blobs.download(str(link))
        return JSONResponse(data=_unwrap_document(content), data_link=data_link)

    async def set_json(
        self, private_key: str, data_key: str | bytes, json_data: dict[str, Any]
    ) -> JSONResponse:
        """Store ``json_data`` under the private key's public key and ``data_key``.

        Raises:
            ConflictError: another writer holds an equal or newer revision;
                the cache has been refreshed, so the caller may retry
            RevisionOverflowError: the entry is at the maximum revision
        """
        if not isinstance(json_data, dict):
            raise TypeError(f"json_data must be a dict, got {type(json_data).__name__}")

        document = json.dumps({"_data": json_data, "_v": JSON_RESPONSE_VERSION}).encode("utf-8")
        link = await self.blobs.upload(document, _filename(data_key), JSON_CONTENT_TYPE)
        raw = Link.from_string(link).to_bytes()

        await self._publish(private_key, data_key, raw)
        return JSONResponse(data=json_data, data_link=format_uri(link))

    async def delete_json(self, private_key: str, data_key: str | bytes) -> None:
        """Mark the entry deleted. Later reads return an empty response."""
        await self._publish(private_key, data_key, DELETION_ENTRY_DATA)

    async def set_data_link(self, private_key: str, data_key: str | bytes, data_link: str) -> None:
        """Point the entry at existing content, without uploading anything."""
        parsed = parse_link(data_link)
        if parsed is None:
            raise FormatError(f"{data_link!r} is not a link")
        link = Link.from_string(parsed.link)
        if link.is_entry_link:
            raise FormatError("SkyDB entries must point at content links")
        await self._publish(private_key, data_key, link.to_bytes())

    async def _publish(self, private_key: str, data_key: str | bytes, data: bytes) -> int:
        public_key = public_key_from_private_key(private_key)

        async def seed() -> int | None:
            signed = await self.registry.get_entry(public_key, data_key)
            return signed.revision if signed else None

        async def write(cached_revision: int) -> tuple[int, int]:
            if cached_revision >= MAX_REVISION:
                raise RevisionOverflowError(
                    "entry already has the maximum revision and cannot be updated"
                )
            revision = cached_revision + 1
            entry = RegistryEntry(data_key=data_key, data=data, revision=revision)
            signature = sign(private_key, entry_digest(entry))
            try:
                await self.registry.set_entry(public_key, entry, signature)
            except ConflictError:
                await self._refresh(public_key, data_key)
                raise
            logger.debug("SkyDB entry written", public_key=public_key, revision=revision)
            return revision, revision

        return await self.revision_cache.with_lock(public_key, data_key, write, seed)

    async def _refresh(self, public_key: str, data_key: str | bytes) -> None:
        """Pull the registry's revision into the cache after a rejected write."""
        try:
            signed = await self.registry.get_entry(public_key, data_key)
        except TransportError as e:
            logger.warning("Could not refresh revision after conflict", error=str(e))
            return
        if signed is not None:
            self.revision_cache.observe(public_key, data_key, signed.revision)
            logger.info(
                "Revision conflict, cache refreshed",
                public_key=public_key,
                revision=signed.revision,
            )


def _unwrap_document(content: bytes) -> dict[str, Any]:
    try:
        document = json.loads(content)
    except ValueError as e:
        raise FormatError("SkyDB content is not valid JSON") from e
    if isinstance(document, dict) and "_data" in document:
        return document["_data"]
    return document


def _filename(data_key: str | bytes) -> str:
    if isinstance(data_key, bytes):
        return data_key.hex()
    return data_key or "skydb"
