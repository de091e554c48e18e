"""Resolve entry links to the content links their entries hold."""

from __future__ import annotations

from skydb.errors import FormatError, NotFoundError
from skydb.links import Link, is_deletion_sentinel, parse_link
from skydb.logging import get_logger
from skydb.registry.client import RegistryClient
from skydb.registry.revision_cache import RevisionCache

logger = get_logger(__name__)


class EntryLinkResolver:
    """Resolves entry links to the content links their entries currently hold."""

    def __init__(self, registry: RegistryClient, revision_cache: RevisionCache):
        self.registry = registry
        self.revision_cache = revision_cache

    async def resolve(self, entry_link: str) -> str:
        """Return the ``sia://`` content link ``entry_link`` points at.

        Raises:
            FormatError: not an entry link, or the entry holds another entry link
            NotFoundError: no entry exists, or it was deleted
            TrustError: the entry failed verification
        """
        try:
            parsed = parse_link(entry_link)
        except FormatError:
            parsed = None
        # parse_link only matches base64; base32 links, bare or prefixed, are decoded directly.
        link = Link.from_string(parsed.link if parsed else entry_link)
        if not link.is_entry_link:
            raise FormatError(f"{link} is a content link, not an entry link")

        found = await self.registry.get_entry_by_id(link.merkle_root)
        if found is None:
            raise NotFoundError(f"no registry entry for {link}")
        public_key, signed = found
        self.revision_cache.observe(public_key, signed.entry.data_key, signed.revision)

        data = signed.entry.data
        if is_deletion_sentinel(data):
            raise NotFoundError(f"registry entry for {link} was deleted")

        target = Link.from_bytes(data)
        if target.is_entry_link:
            raise FormatError(f"{link} resolves to another entry link")

        logger.debug("Resolved entry link", entry_link=str(link), public_key=public_key)
        return target.to_uri()
