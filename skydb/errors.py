"""Error taxonomy for the SkyDB client.

Absence of an entry is never an error: lookups return ``None`` instead.
"""

from __future__ import annotations


class SkyDBError(Exception):
    """Base class for all errors raised by this package."""


class FormatError(SkyDBError, ValueError):
    """A link, key or digest is malformed. Local and never retried."""


class TrustError(SkyDBError):
    """A fetched entry failed signature or identity verification."""


class ConflictError(SkyDBError):
    """The registry rejected a revision as not newer than the stored one."""

    def __init__(self, message: str, *, public_key: str = "", revision: int | None = None):
        super().__init__(message)
        self.public_key = public_key
        self.revision = revision


class TransportError(SkyDBError):
    """Network or service failure reported by a transport."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(SkyDBError, LookupError):
    """An entry link resolved to no content."""


class RevisionOverflowError(SkyDBError):
    """The entry already holds the maximum representable revision."""


class EntryTooLargeError(SkyDBError, ValueError):
    """Entry data exceeds the registry's data length ceiling."""
