"""Read-through cache for aggregated feed results."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

COMPETITORS = "competitors"
INDUSTRY = "industry"
DEFAULT_TTL_SECONDS = 15 * 60


class _Entry(NamedTuple):
    value: Any
    stored_at: float


class FeedCache:
    """TTL cache keyed by feed family (competitors / industry).

    Entries are replaced whole, so readers see either a complete value or
    nothing. ``get_or_refresh`` holds a per-key lock across the
    check-load-store sequence, so concurrent callers for the same key share
    one fetch. ``invalidate`` bumps a generation counter: a refresh that
    started before the invalidation still returns its result to its caller
    but does not repopulate the cache.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._generation = 0

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _fresh(self, entry: _Entry | None) -> bool:
        return entry is not None and self._clock() - entry.stored_at < self.ttl_seconds

    def get(self, key: str) -> Any | None:
        """Return the cached value for *key* if still inside the TTL window."""
        entry = self._entries.get(key)
        return entry.value if self._fresh(entry) else None

    async def get_or_refresh(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        *,
        force: bool = False,
    ) -> Any:
        """Return the cached value for *key*, loading it when missing or stale.

        With ``force=True`` the loader always runs and its result replaces
        the entry.
        """
        async with self._lock_for(key):
            entry = self._entries.get(key)
            if not force and self._fresh(entry):
                logger.debug("Feed cache hit: %s", key)
                return entry.value

            generation = self._generation
            value = await loader()
            if generation == self._generation:
                self._entries[key] = _Entry(value, self._clock())
            else:
                logger.info("Feed cache invalidated during refresh of %s; result not cached", key)
            return value

    def invalidate(self, key: str | None = None) -> None:
        """Discard one family, or every family when *key* is None."""
        self._generation += 1
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
        logger.info("Feed cache invalidated: %s", key or "all")

    def status(self) -> dict[str, dict[str, Any]]:
        """Per-family ``cached`` flag and entry age in seconds."""
        now = self._clock()
        result: dict[str, dict[str, Any]] = {}
        for key in (COMPETITORS, INDUSTRY):
            entry = self._entries.get(key)
            result[key] = {
                "cached": self._fresh(entry),
                "age_seconds": round(now - entry.stored_at, 1) if entry else None,
            }
        return result
