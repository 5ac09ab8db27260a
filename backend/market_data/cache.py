"""
market_data/cache.py
─────────────────────
In-process read-through cache with single-flight population.

Lookup rules for ``get_or_populate(key, ttl, populate)``
--------------------------------------------------------
1. Fresh entry → returned with ``cached=True``; ``populate`` is not called.
2. A populate for ``key`` already in flight → the caller joins it and gets
   its entry with ``cached=True`` (it did not pay for the fetch).
3. Otherwise this caller starts ``populate`` and gets ``cached=False``.

A failed populate leaves the previous entry untouched, so the last-known-good
payload stays available through :meth:`CacheStore.peek`.  A populate that
was running when its key was invalidated (or the store cleared) still
answers its callers but does not write the key back.

Entries expire lazily at read time; nothing sweeps the map.  State lives for
the process lifetime only.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from market_data.models import CacheEntry, CacheResult

logger = logging.getLogger(__name__)

Populate = Callable[[], Awaitable[Any]]


class CacheStore:
    """
    Key → :class:`CacheEntry` map guarded by per-key single-flight.

    All bookkeeping happens on the event loop between ``await`` points, so
    the check-then-register of an in-flight task cannot interleave with
    another caller and needs no lock.

    Args:
        clock: Monotonic seconds source used for freshness (patchable).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        # Bumped by invalidate/clear so a populate started earlier skips the store.
        self._generations: Dict[str, int] = {}
        self._cleared = 0

    def __len__(self) -> int:
        return len(self._entries)

    # ── public API ────────────────────────────────────────────────────────

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` whatever its age, or ``None``."""
        return self._entries.get(key)

    def is_fresh(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.is_fresh(self._clock())

    def is_populating(self, key: str) -> bool:
        return key in self._inflight

    def invalidate(self, key: str) -> None:
        """Drop ``key``.  A populate already running for it is not stored."""
        self._entries.pop(key, None)
        self._generations[key] = self._generations.get(key, 0) + 1

    def clear(self) -> None:
        """Drop every entry.  Populates already running are not stored."""
        self._entries.clear()
        self._cleared += 1

    async def get_or_populate(
        self,
        key: str,
        ttl: float,
        populate: Populate,
        *,
        force: bool = False,
    ) -> CacheResult:
        """
        Serve ``key`` from cache or populate it exactly once.

        Args:
            key:      Dataset key (``"indices:major"``, ``"commodities"``).
            ttl:      Freshness window in seconds for a new entry.
            populate: Coroutine factory producing the payload.
            force:    Skip the freshness check.  Still joins an in-flight
                      populate rather than starting a second one.

        Returns:
            :class:`CacheResult` with the payload and the ``cached`` flag.

        Raises:
            Exception: Whatever ``populate`` raised; every joined caller
                       sees the same error.
        """
        if not force:
            entry = self._entries.get(key)
            if entry is not None and entry.is_fresh(self._clock()):
                logger.debug("Cache hit for %s (age %.1fs)", key, entry.age(self._clock()))
                return CacheResult(entry.payload, cached=True, fetched_at=entry.fetched_at)

        task = self._inflight.get(key)
        if task is not None:
            logger.debug("Joining in-flight populate for %s", key)
            entry = await asyncio.shield(task)
            return CacheResult(entry.payload, cached=True, fetched_at=entry.fetched_at)

        # The task is owned by the store, not the caller: a caller that goes
        # away does not cancel population for everyone else.
        task = asyncio.ensure_future(
            self._populate(key, ttl, populate, self._generation(key))
        )
        self._inflight[key] = task
        task.add_done_callback(lambda done: self._release(key, done))

        entry = await asyncio.shield(task)
        return CacheResult(entry.payload, cached=False, fetched_at=entry.fetched_at)

    # ── private helpers ───────────────────────────────────────────────────

    async def _populate(
        self, key: str, ttl: float, populate: Populate, generation: tuple
    ) -> CacheEntry:
        started = self._clock()
        logger.info("Populating %s", key)
        payload = await populate()
        entry = CacheEntry(
            payload=payload,
            fetched_at=datetime.now(timezone.utc),
            stored_at=self._clock(),
            ttl=ttl,
        )
        if self._generation(key) != generation:
            logger.info("Populated %s after it was invalidated; not stored", key)
            return entry
        self._entries[key] = entry
        logger.info("Populated %s in %.2fs (ttl=%gs)", key, self._clock() - started, ttl)
        return entry

    def _generation(self, key: str) -> tuple:
        return (self._cleared, self._generations.get(key, 0))

    def _release(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Populate for %s failed: %s", key, exc)
