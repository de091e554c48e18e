"""Top-level client wiring one transport to the registry, SkyDB and resolver."""

from __future__ import annotations

from skydb.config import ClientConfig
from skydb.db import EntryLinkResolver, SkyDB
from skydb.registry.client import RegistryClient
from skydb.registry.revision_cache import RevisionCache
from skydb.transport import PortalTransport, SkynetTransport


class SkynetClient:
    """Entry point for SkyDB access.

    Each client owns its own :class:`RevisionCache`; two clients in one
    process do not share revisions or locks.

    Parameters
    ----------
    config : ClientConfig | None
        Portal settings. Defaults to ``ClientConfig()``.
    transport : SkynetTransport | None
        Registry and blob-store collaborator. Defaults to a
        :class:`PortalTransport` built from *config*.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: SkynetTransport | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.transport = transport or PortalTransport(self.config)
        self.revision_cache = RevisionCache()
        self.registry = RegistryClient(self.transport)
        self.db = SkyDB(self.registry, self.transport, self.revision_cache)
        self.resolver = EntryLinkResolver(self.registry, self.revision_cache)

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> SkynetClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
