"""In-memory TTL cache with an explicit purge lifecycle."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Hashable
from typing import Any

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """Key/value store whose entries expire after a per-entry TTL.

    Expired entries are never returned and are dropped lazily on access;
    :meth:`start` runs a background task that purges them periodically.
    ``clock`` must be monotonic and return seconds.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        default_ttl: float | None = None,
    ) -> None:
        self._clock = clock
        self._default_ttl = default_ttl
        self._values: dict[Hashable, Any] = {}
        self._expires: dict[Hashable, float] = {}
        self._purge_task: asyncio.Task[None] | None = None

    def _expired(self, key: Hashable, now: float | None = None) -> bool:
        deadline = self._expires.get(key)
        if deadline is None:
            return False
        return (self._clock() if now is None else now) >= deadline

    def _evict(self, key: Hashable) -> None:
        self._values.pop(key, None)
        self._expires.pop(key, None)

    def get(self, key: Hashable, default: Any = None) -> Any:
        value = self._values.get(key, _MISSING)
        if value is _MISSING:
            return default
        if self._expired(key):
            self._evict(key)
            return default
        return value

    def set(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        """Store ``value``; ``ttl`` seconds overrides the default, ``None`` keeps it forever."""
        ttl = self._default_ttl if ttl is None else ttl
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be positive")
        self._values[key] = value
        if ttl is None:
            self._expires.pop(key, None)
        else:
            self._expires[key] = self._clock() + ttl

    def delete(self, key: Hashable) -> bool:
        present = key in self._values and not self._expired(key)
        self._evict(key)
        return present

    def delete_prefix(self, prefix: str) -> int:
        """Drop every string key starting with ``prefix``."""
        doomed = [
            key for key in self._values if isinstance(key, str) and key.startswith(prefix)
        ]
        for key in doomed:
            self._evict(key)
        return len(doomed)

    def has(self, key: Hashable) -> bool:
        if key not in self._values:
            return False
        if self._expired(key):
            self._evict(key)
            return False
        return True

    __contains__ = has

    def clear(self) -> None:
        self._values.clear()
        self._expires.clear()

    def keys(self) -> list[Hashable]:
        self.purge_expired()
        return list(self._values)

    def __len__(self) -> int:
        self.purge_expired()
        return len(self._values)

    def purge_expired(self) -> int:
        """Remove all expired entries and return how many were dropped."""
        now = self._clock()
        expired = [key for key in self._expires if self._expired(key, now)]
        for key in expired:
            self._evict(key)
        return len(expired)

    @property
    def running(self) -> bool:
        return self._purge_task is not None and not self._purge_task.done()

    def start(self, interval: float) -> None:
        """Begin purging expired entries every ``interval`` seconds.

        Must be called from a running event loop. Starting twice is a no-op.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        if self.running:
            return
        self._purge_task = asyncio.get_running_loop().create_task(
            self._purge_loop(interval)
        )

    async def stop(self) -> None:
        """Cancel the purge task and wait for it to finish."""
        task, self._purge_task = self._purge_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _purge_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            dropped = self.purge_expired()
            if dropped:
                logger.debug("Purged %d expired cache entries", dropped)
