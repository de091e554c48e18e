"""Network collaborators behind the registry and blob store."""

from skydb.transport.base import BlobStore, RegistryTransport, SkynetTransport
from skydb.transport.local import LocalPortal
from skydb.transport.portal import PortalTransport

__all__ = [
    "BlobStore",
    "LocalPortal",
    "PortalTransport",
    "RegistryTransport",
    "SkynetTransport",
]
