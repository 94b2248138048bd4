"""
Keyed registry of timer-owning objects with idle eviction.

HTTP viewers of a live feed or calendar never say goodbye, so every entry
records when it was last touched. A reaper task owned by the registry
stops entries left idle for longer than idle_seconds, and the registry
never holds more than max_live entries: adding one more first stops the
least recently touched.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable
from typing import Generic, TypeVar

from slot_discovery.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class IdleEvictingRegistry(Generic[T]):
    kind = "entry"

    def __init__(
        self,
        idle_seconds: float,
        max_live: int,
        clock: Callable[[], float] | None = None,
        reap_interval: float | None = None,
    ):
        if max_live < 1:
            raise ValueError("max_live must be at least 1")
        self.idle_seconds = idle_seconds
        self.max_live = max_live
        self.clock = clock or time.monotonic
        self.reap_interval = reap_interval if reap_interval is not None else idle_seconds / 2
        self._entries: dict[str, T] = {}
        self._last_accessed: dict[str, float] = {}
        self._reaper_task: asyncio.Task | None = None

    async def _stop_entry(self, entry: T) -> None:
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def _touch(self, key: str) -> None:
        self._last_accessed[key] = self.clock()

    async def _add(self, key: str, entry: T) -> T:
        """
        Register entry under key, evicting the least recently touched first.

        Returns the registered entry, which is an existing one if another
        caller registered the same key while evictions were awaited.
        """
        while len(self._entries) >= self.max_live and key not in self._entries:
            oldest = min(self._last_accessed, key=self._last_accessed.__getitem__)
            logger.warning(f"Live {self.kind} limit reached, evicting oldest", key=oldest)
            await self._remove(oldest)

        entry = self._entries.setdefault(key, entry)
        self._touch(key)
        self._ensure_reaper()
        return entry

    async def _remove(self, key: str) -> T | None:
        entry = self._entries.pop(key, None)
        self._last_accessed.pop(key, None)
        if entry is not None:
            await self._stop_entry(entry)
        return entry

    async def reap_idle(self) -> list[str]:
        """Stop every entry untouched for idle_seconds or more; returns their keys."""
        cutoff = self.clock() - self.idle_seconds
        candidates = [key for key, seen in self._last_accessed.items() if seen <= cutoff]
        reaped = []
        for key in candidates:
            # touched while an earlier stop was awaited
            if self._last_accessed.get(key, cutoff + 1) > cutoff:
                continue
            await self._remove(key)
            reaped.append(key)
        if reaped:
            logger.info(f"Idle {self.kind}s reaped", count=len(reaped))
        return reaped

    def _ensure_reaper(self) -> None:
        if self._reaper_task is None:
            self._reaper_task = asyncio.create_task(self._reap_loop())

    async def _reap_loop(self) -> None:
        while True:
            await asyncio.sleep(self.reap_interval)
            try:
                await self.reap_idle()
            except Exception as e:
                logger.error(
                    f"Reaping idle {self.kind}s failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def _remove_all(self) -> int:
        task, self._reaper_task = self._reaper_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        entries, self._entries = list(self._entries.values()), {}
        self._last_accessed.clear()
        for entry in entries:
            await self._stop_entry(entry)
        return len(entries)
