"""Time-to-live cache for operation results.

Only successful :class:`~pypetlibro.models.Result` values are stored.
Expired entries are never served; they are dropped lazily on the next
lookup of their key.  Keys are plain strings such as
``"realInfo:<device id>"`` so that :meth:`RequestCache.invalidate` can
remove related entries by substring.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pypetlibro.models.result import Result

_logger = logging.getLogger(__name__)

T = TypeVar("T")

Fetcher = Callable[[], Awaitable[Result[Any]]]


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """A cached value with its creation and expiry instants (clock seconds)."""

    value: T
    created_at: float
    expires_at: float

    def is_live(self, now: float) -> bool:
        return self.expires_at > now

    def age(self, now: float) -> float:
        return now - self.created_at


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Counters exposed for observability.

    ``size`` counts stored entries, including expired ones that have not
    been looked up since they expired.
    """

    hits: int = 0
    misses: int = 0
    invalidations: int = 0
    errors: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class RequestCache:
    """TTL cache with substring invalidation and background refresh.

    Parameters
    ----------
    clock : callable
        Monotonic time source, injectable for tests.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry[Result[Any]]] = {}
        self._refresh_tasks: dict[str, asyncio.Task[None]] = {}
        self._hits = 0
        self._misses = 0
        self._invalidations = 0
        self._errors = 0

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _live_entry(self, key: str) -> CacheEntry[Result[Any]] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_live(self._clock()):
            del self._entries[key]
            return None
        return entry

    async def get(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Result[T]]],
        ttl: float,
        *,
        force_refresh: bool = False,
    ) -> Result[T]:
        """Return the cached result for *key* or fetch and store a new one.

        A live entry is a hit and *fetcher* is not called.  Otherwise the
        fetcher runs (a miss); a successful result is stored for *ttl*
        seconds and a failed one is returned uncached.  A forced refresh
        leaves the existing entry in place until the fetch succeeds.

        Raises
        ------
        Exception
            Whatever *fetcher* raises, after counting it as an error.
        """
        if not force_refresh:
            entry = self._live_entry(key)
            if entry is not None:
                self._hits += 1
                _logger.debug("Cache hit %s", key)
                return entry.value

        self._misses += 1
        _logger.debug("Cache miss %s%s", key, " (forced)" if force_refresh else "")
        try:
            result = await fetcher()
        except Exception:
            self._errors += 1
            raise

        if result.success:
            self.put(key, result, ttl)
        else:
            self._errors += 1
            _logger.debug("Not caching failed result for %s: %s", key, result.message)
        return result

    def peek(self, key: str) -> Result[Any] | None:
        """Return the live value for *key* without touching statistics."""
        entry = self._live_entry(key)
        return entry.value if entry is not None else None

    def put(self, key: str, value: Result[Any], ttl: float) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)

    def entry_info(self, key: str) -> CacheEntry[Result[Any]] | None:
        """Return the stored entry for *key*, expired or not."""
        return self._entries.get(key)

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, pattern: str) -> int:
        """Remove every key containing *pattern*; returns the count removed."""
        keys = [key for key in self._entries if pattern in key]
        for key in keys:
            del self._entries[key]
        if keys:
            self._invalidations += len(keys)
            _logger.debug("Invalidated %d cache entries matching %r", len(keys), pattern)
        return len(keys)

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self._invalidations += count
        return count

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            invalidations=self._invalidations,
            errors=self._errors,
            size=len(self._entries),
        )

    # ------------------------------------------------------------------
    # Background refresh
    # ------------------------------------------------------------------

    def start_background_refresh(
        self,
        key: str,
        fetcher: Fetcher,
        *,
        ttl: float,
        interval: float,
    ) -> asyncio.Task[None]:
        """Force-refresh *key* every *interval* seconds until stopped.

        Replaces any refresh task already running for *key*.  Failures are
        logged and never remove the entry that is still cached.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.stop_background_refresh(key)
        task = asyncio.get_running_loop().create_task(
            self._refresh_loop(key, fetcher, ttl=ttl, interval=interval),
            name=f"pypetlibro-refresh-{key}",
        )
        self._refresh_tasks[key] = task
        _logger.debug("Background refresh started for %s every %.1fs", key, interval)
        return task

    def stop_background_refresh(self, key: str) -> bool:
        task = self._refresh_tasks.pop(key, None)
        if task is None:
            return False
        task.cancel()
        _logger.debug("Background refresh stopped for %s", key)
        return True

    def stop_all(self) -> list[asyncio.Task[None]]:
        """Cancel every background refresh task and return them."""
        tasks = list(self._refresh_tasks.values())
        self._refresh_tasks.clear()
        for task in tasks:
            task.cancel()
        return tasks

    def is_refreshing(self, key: str) -> bool:
        task = self._refresh_tasks.get(key)
        return task is not None and not task.done()

    async def _refresh_loop(self, key: str, fetcher: Fetcher, *, ttl: float, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                result = await self.get(key, fetcher, ttl, force_refresh=True)
            except asyncio.CancelledError:
                raise
            except Exception:
                _logger.warning("Background refresh of %s raised", key, exc_info=True)
                continue
            if not result.success:
                _logger.warning("Background refresh of %s failed: %s", key, result.message)

    async def close(self) -> None:
        """Cancel background refresh tasks, wait for them, and drop all entries."""
        tasks = self.stop_all()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._entries.clear()
