"""Last-known revisions and per-key write serialization.

One cache belongs to one client. Within that client, at most one mutating
operation per (public key, data key) is in flight; the rest queue on the
key's lock. Writers in other processes are not coordinated here: the
registry's rejection of stale revisions covers them.

Known limitation: entries are created on first touch and never evicted, so
the cache grows with the number of distinct keys a client writes or reads.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from skydb.crypto import data_key_digest, normalize_public_key
from skydb.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Cached revision for a key known to have no registry entry yet; the first
# write is NO_ENTRY + 1 == 0.
NO_ENTRY = -1

# An operation receives the current revision and returns (result, revision
# written), with revision None when it decided not to write.
Operation = Callable[[int], Awaitable[tuple[T, int | None]]]
Seeder = Callable[[], Awaitable[int | None]]


@dataclass
class CachedRevisionEntry:
    """Cached revision for one key, and the lock serializing its writers."""

    revision: int | None = None  # None until seeded
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class RevisionCache:
    """Per-(public key, data key) revision numbers with exclusive write regions."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], CachedRevisionEntry] = {}
        # Keeps shielded operations alive after their caller goes away.
        self._inflight: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, public_key: str, data_key: str | bytes) -> int | None:
        """Cached revision for a key, or None if the key has not been seeded."""
        cached = self._entries.get(_cache_key(public_key, data_key))
        return cached.revision if cached else None

    def observe(self, public_key: str, data_key: str | bytes, revision: int) -> None:
        """Record a revision seen on a read. Only ever moves the cache forward."""
        cached = self._get_or_create(public_key, data_key)
        if cached.revision is None or revision > cached.revision:
            cached.revision = revision

    async def with_lock(
        self,
        public_key: str,
        data_key: str | bytes,
        operation: Operation[T],
        seed: Seeder,
    ) -> T:
        """Run ``operation`` while holding the key's lock.

        Waits for the lock when another operation on the same key is in
        flight. If the key has no cached revision yet, ``seed`` is awaited
        first; it returns the registry's current revision, or None when the
        registry holds no entry.

        The revision ``operation`` reports is committed only if it returns
        normally. The locked body runs in its own task: cancelling the caller
        does not interrupt a write already under way.
        """
        cached = self._get_or_create(public_key, data_key)
        task = asyncio.ensure_future(self._run_locked(cached, operation, seed))
        self._inflight.add(task)
        task.add_done_callback(self._finished)
        return await asyncio.shield(task)

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._inflight.discard(task)
        # Retrieve the outcome even when the caller was cancelled and never will.
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Locked operation failed", error=str(task.exception()))

    async def _run_locked(
        self, cached: CachedRevisionEntry, operation: Operation[T], seed: Seeder
    ) -> T:
        async with cached.lock:
            if cached.revision is None:
                remote = await seed()
                # A concurrent observe() may have landed while we awaited.
                seeded = NO_ENTRY if remote is None else remote
                if cached.revision is None or seeded > cached.revision:
                    cached.revision = seeded

            result, written = await operation(cached.revision)

            if written is not None and written > cached.revision:
                cached.revision = written
            return result

    def _get_or_create(self, public_key: str, data_key: str | bytes) -> CachedRevisionEntry:
        key = _cache_key(public_key, data_key)
        cached = self._entries.get(key)
        if cached is None:
            cached = CachedRevisionEntry()
            self._entries[key] = cached
            logger.debug("Tracking revisions for new key", public_key=key[0], data_key=key[1])
        return cached


def _cache_key(public_key: str, data_key: str | bytes) -> tuple[str, str]:
    return normalize_public_key(public_key), data_key_digest(data_key).hex()
