"""SkyDB — mutable JSON documents on top of the registry and blob store."""

from skydb.db.resolver import EntryLinkResolver
from skydb.db.skydb import JSONResponse, SkyDB

__all__ = ["EntryLinkResolver", "JSONResponse", "SkyDB"]
