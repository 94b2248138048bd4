"""
Simulated live activity for a slot.

The feed synthesizes a presence event on a fixed period, keeps only the
most recent few, and expires each event a few seconds after it was
inserted. It is a local simulation for display, not a transport. All
timers belong to the feed and are cancelled together by stop().
"""

from __future__ import annotations

import asyncio
import contextlib
import random
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from slot_discovery.config import settings
from slot_discovery.features.discovery.domain.models import ActivityAction, ActivityEvent
from slot_discovery.features.discovery.registry import IdleEvictingRegistry
from slot_discovery.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ActivityFeedClosedError(RuntimeError):
    """Raised when a stopped feed is asked to generate."""


class ActivityFeed:
    USER_NAMES = ("User A", "User B", "User C", "User D")
    ACTIONS = (ActivityAction.VIEWING, ActivityAction.BOOKING)

    def __init__(
        self,
        slot_id: str,
        rng: random.Random | None = None,
        clock: Clock | None = None,
        tick_seconds: float | None = None,
        ttl_seconds: float | None = None,
        capacity: int | None = None,
    ):
        config = settings.get_activity_feed_config()
        self.slot_id = slot_id
        self.rng = rng or random.Random(settings.ACTIVITY_FEED_SEED)
        self.clock = clock or _utc_now
        self.tick_seconds = tick_seconds if tick_seconds is not None else config["tick_seconds"]
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config["ttl_seconds"]
        self.capacity = capacity if capacity is not None else config["capacity"]

        self._events: list[ActivityEvent] = []  # newest first
        self._expiry_tasks: dict[str, asyncio.Task] = {}
        self._generator_task: asyncio.Task | None = None
        self._closed = False

    @property
    def events(self) -> tuple[ActivityEvent, ...]:
        return tuple(self._events)

    @property
    def active(self) -> bool:
        return self._generator_task is not None and not self._closed

    @property
    def pending_timers(self) -> int:
        """Live expiry timers plus the generator, if running."""
        return len(self._expiry_tasks) + (1 if self._generator_task is not None else 0)

    def snapshot(self, now: datetime | None = None) -> list[tuple[ActivityEvent, int]]:
        """Events newest first, each with its age in whole seconds."""
        now = now or self.clock()
        return [(event, event.age_seconds(now)) for event in self._events]

    def start(self) -> None:
        if self._closed:
            raise ActivityFeedClosedError(f"Activity feed for slot {self.slot_id} is closed")
        if self._generator_task is None:
            self._generator_task = asyncio.create_task(self._generate_loop())
            logger.debug("Activity feed started", slot_id=self.slot_id)

    async def _generate_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_seconds)
            self.tick()

    def tick(self) -> ActivityEvent:
        """Synthesize one event, enforce the cap and schedule its expiry."""
        if self._closed:
            raise ActivityFeedClosedError(f"Activity feed for slot {self.slot_id} is closed")

        inserted_at = self.clock()
        event = ActivityEvent(
            id=str(uuid.UUID(int=self.rng.getrandbits(128), version=4)),
            slot_id=self.slot_id,
            user_name=self.rng.choice(self.USER_NAMES),
            action=self.rng.choice(self.ACTIONS),
            inserted_at=inserted_at,
            expires_at=inserted_at + timedelta(seconds=self.ttl_seconds),
        )

        self._events.insert(0, event)
        dropped, self._events = self._events[self.capacity :], self._events[: self.capacity]
        for old in dropped:
            task = self._expiry_tasks.pop(old.id, None)
            if task is not None:
                task.cancel()

        self._expiry_tasks[event.id] = asyncio.create_task(self._expire_later(event.id))
        return event

    async def _expire_later(self, event_id: str) -> None:
        await asyncio.sleep(self.ttl_seconds)
        self._expiry_tasks.pop(event_id, None)
        self._events = [event for event in self._events if event.id != event_id]

    async def stop(self) -> None:
        """Cancel generation and every pending expiry; nothing fires afterwards."""
        self._closed = True
        tasks = list(self._expiry_tasks.values())
        self._expiry_tasks.clear()
        if self._generator_task is not None:
            tasks.append(self._generator_task)
            self._generator_task = None

        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.debug("Activity feed stopped", slot_id=self.slot_id, cancelled=len(tasks))


class ActivityFeedRegistry(IdleEvictingRegistry[ActivityFeed]):
    """One running feed per slot, started on first read and reaped when idle."""

    kind = "activity feed"

    def __init__(
        self,
        feed_factory: Callable[[str], ActivityFeed] | None = None,
        idle_seconds: float | None = None,
        max_live: int | None = None,
        clock: Callable[[], float] | None = None,
        reap_interval: float | None = None,
    ):
        super().__init__(
            idle_seconds=(
                idle_seconds if idle_seconds is not None else settings.ACTIVITY_FEED_IDLE_SECONDS
            ),
            max_live=max_live if max_live is not None else settings.ACTIVITY_FEED_MAX_LIVE,
            clock=clock,
            reap_interval=reap_interval,
        )
        self.feed_factory = feed_factory or ActivityFeed

    async def _stop_entry(self, feed: ActivityFeed) -> None:
        await feed.stop()

    async def get_or_start(self, slot_id: str) -> ActivityFeed:
        """Return the slot's running feed, starting one if needed; counts as a read."""
        feed = self._entries.get(slot_id)
        if feed is not None:
            self._touch(slot_id)
            return feed

        created = self.feed_factory(slot_id)
        feed = await self._add(slot_id, created)
        if feed is created:
            feed.start()
            logger.info("Activity feed opened", slot_id=slot_id)
        return feed

    async def stop(self, slot_id: str) -> bool:
        return await self._remove(slot_id) is not None

    async def stop_all(self) -> None:
        count = await self._remove_all()
        if count:
            logger.info("Activity feeds stopped", count=count)
