"""Local portal implementation.

An in-process registry and blob store for development, tests, and offline
use. Optionally persists entries as JSON and blobs as files in a local
directory.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from skydb.crypto import decode_public_key, entry_digest, verify
from skydb.errors import ConflictError, FormatError, TransportError
from skydb.links import Link, derive_entry_id, new_content_link
from skydb.logging import get_logger
from skydb.registry.models import RegistryEntry, RemoteEntry

logger = get_logger(__name__)


class LocalPortal:
    """In-process portal: a registry that enforces revisions, plus a blob store.

    Publishes are checked the way a real portal checks them: the signature
    must verify and the revision must be greater than the stored one. Both
    checks and the write happen without an intervening ``await``.
    """

    INDEX_FILE = "index.json"
    BLOB_DIR = "blobs"

    def __init__(self, portal_dir: str | Path | None = None, latency: float = 0.0):
        self.portal_dir = Path(portal_dir) if portal_dir is not None else None
        self.latency = latency
        self._blobs: dict[str, bytes] = {}

        if self.portal_dir is not None:
            (self.portal_dir / self.BLOB_DIR).mkdir(parents=True, exist_ok=True)
            self.index_path = self.portal_dir / self.INDEX_FILE
        self._index: dict[str, dict] = self._load_index()

    async def aclose(self) -> None:
        return None

    # -- registry ------------------------------------------------------------

    async def get_entry(self, public_key: str, data_key_digest: str) -> RemoteEntry | None:
        await self._pause()
        entry_id = _entry_id(public_key, data_key_digest)
        data = self._index.get(entry_id)
        return _dict_to_remote_entry(data) if data else None

    async def get_entry_by_id(self, entry_id: str) -> RemoteEntry | None:
        await self._pause()
        data = self._index.get(entry_id)
        return _dict_to_remote_entry(data) if data else None

    async def set_entry(
        self,
        public_key: str,
        data_key_digest: str,
        data: bytes,
        revision: int,
        signature: bytes,
    ) -> None:
        await self._pause()

        digest = bytes.fromhex(data_key_digest)
        entry = RegistryEntry(data_key=digest, data=data, revision=revision)
        if not verify(public_key, entry_digest(entry), signature):
            raise TransportError("entry signature does not verify", status_code=400)

        entry_id = _entry_id(public_key, data_key_digest)
        existing = self._index.get(entry_id)
        if existing and revision <= existing["revision"]:
            raise ConflictError(
                f"revision {revision} is not greater than stored revision {existing['revision']}",
                public_key=public_key,
                revision=revision,
            )

        self._index[entry_id] = {
            "public_key": public_key,
            "data_key": data_key_digest,
            "data": data.hex(),
            "revision": revision,
            "signature": signature.hex(),
        }
        self._save_index()
        logger.debug("Stored registry entry", entry_id=entry_id, revision=revision)

    # -- blobs ---------------------------------------------------------------

    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        await self._pause()
        link = str(new_content_link(data))
        if self.portal_dir is not None:
            (self.portal_dir / self.BLOB_DIR / link).write_bytes(data)
        else:
            self._blobs[link] = data
        return link

    async def download(self, link: str) -> bytes:
        await self._pause()
        try:
            key = str(Link.from_string(link))
        except FormatError as e:
            raise TransportError(f"invalid link {link!r}", status_code=400) from e

        if self.portal_dir is not None:
            path = self.portal_dir / self.BLOB_DIR / key
            if path.exists():
                return path.read_bytes()
        elif key in self._blobs:
            return self._blobs[key]
        raise TransportError(f"no content for {key}", status_code=404)

    # -- helpers -------------------------------------------------------------

    async def _pause(self) -> None:
        # sleep(0) still yields to other tasks.
        await asyncio.sleep(self.latency)

    def _load_index(self) -> dict[str, dict]:
        if self.portal_dir is not None and self.index_path.exists():
            with open(self.index_path) as f:
                return json.load(f)
        return {}

    def _save_index(self):
        if self.portal_dir is None:
            return
        with open(self.index_path, "w") as f:
            json.dump(self._index, f, indent=2)


def _entry_id(public_key: str, data_key_digest: str) -> str:
    try:
        digest = bytes.fromhex(data_key_digest)
    except ValueError as e:
        raise TransportError("data key digest is not valid hex", status_code=400) from e
    return derive_entry_id(decode_public_key(public_key), digest).hex()


def _dict_to_remote_entry(data: dict) -> RemoteEntry:
    return RemoteEntry(
        data=bytes.fromhex(data["data"]),
        revision=data["revision"],
        signature=bytes.fromhex(data["signature"]),
        public_key=data["public_key"],
        data_key_digest=bytes.fromhex(data["data_key"]),
    )
