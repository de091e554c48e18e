"""SkyDB — a client-side consistency layer for the Skynet registry.

Signed, revisioned registry entries that point at immutable content links,
with local serialization of concurrent writers.
"""

__version__ = "0.1.0"

from skydb.client import SkynetClient
from skydb.config import ClientConfig, GetJSONOptions, load_config
from skydb.crypto import KeyPair, derive_keypair, gen_keypair_and_seed
from skydb.db import JSONResponse

__all__ = [
    "ClientConfig",
    "GetJSONOptions",
    "JSONResponse",
    "KeyPair",
    "SkynetClient",
    "derive_keypair",
    "gen_keypair_and_seed",
    "load_config",
]
