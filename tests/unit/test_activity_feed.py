import asyncio
import random
from datetime import timedelta

import pytest

from conftest import FIXED_NOW
from slot_discovery.features.discovery.activity import (
    ActivityFeed,
    ActivityFeedClosedError,
    ActivityFeedRegistry,
)
from slot_discovery.features.discovery.domain.models import ActivityAction


class FakeClock:
    def __init__(self, now=FIXED_NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _feed(slot_id: str = "slot-1", **kwargs) -> ActivityFeed:
    kwargs.setdefault("rng", random.Random(1234))
    kwargs.setdefault("tick_seconds", 60)
    kwargs.setdefault("ttl_seconds", 60)
    kwargs.setdefault("capacity", 5)
    return ActivityFeed(slot_id, **kwargs)


@pytest.mark.asyncio
async def test_one_tick_produces_one_event():
    feed = _feed(clock=FakeClock())

    event = feed.tick()

    assert feed.events == (event,)
    assert event.slot_id == "slot-1"
    assert event.user_name in ActivityFeed.USER_NAMES
    assert event.action in (ActivityAction.VIEWING, ActivityAction.BOOKING)
    assert event.inserted_at == FIXED_NOW
    assert event.expires_at == FIXED_NOW + timedelta(seconds=60)
    await feed.stop()


@pytest.mark.asyncio
async def test_seeded_feeds_are_reproducible():
    first = _feed(rng=random.Random(42), clock=FakeClock())
    second = _feed(rng=random.Random(42), clock=FakeClock())

    first_events = [first.tick() for _ in range(4)]
    second_events = [second.tick() for _ in range(4)]

    assert [(e.id, e.user_name, e.action) for e in first_events] == [
        (e.id, e.user_name, e.action) for e in second_events
    ]
    assert len({e.id for e in first_events}) == 4
    await first.stop()
    await second.stop()


@pytest.mark.asyncio
async def test_feed_never_exceeds_capacity_and_keeps_newest_first():
    feed = _feed(clock=FakeClock())

    events = [feed.tick() for _ in range(8)]

    assert len(feed.events) == 5
    assert list(feed.events) == list(reversed(events[-5:]))
    # timers of the three dropped events were cancelled
    assert feed.pending_timers == 5
    await feed.stop()


@pytest.mark.asyncio
async def test_event_expires_after_its_lifetime():
    feed = _feed(ttl_seconds=0.05)

    feed.tick()
    assert len(feed.events) == 1

    await asyncio.sleep(0.15)

    assert feed.events == ()
    assert feed.pending_timers == 0
    await feed.stop()


@pytest.mark.asyncio
async def test_each_event_expires_independently():
    feed = _feed(ttl_seconds=0.1)

    first = feed.tick()
    await asyncio.sleep(0.05)
    second = feed.tick()
    await asyncio.sleep(0.07)

    assert feed.events == (second,)
    assert first not in feed.events
    await feed.stop()


@pytest.mark.asyncio
async def test_age_is_computed_at_read_time():
    clock = FakeClock()
    feed = _feed(clock=clock)
    feed.tick()
    clock.advance(2.7)
    feed.tick()
    clock.advance(1.2)

    ages = [age for _, age in feed.snapshot()]

    assert ages == [1, 3]
    assert [age for _, age in feed.snapshot(now=clock.now + timedelta(seconds=10))] == [11, 13]
    await feed.stop()


@pytest.mark.asyncio
async def test_stop_cancels_all_timers():
    feed = _feed(tick_seconds=0.01, ttl_seconds=0.05)
    feed.start()
    await asyncio.sleep(0.035)

    await feed.stop()
    remaining = feed.events
    await asyncio.sleep(0.1)

    assert remaining
    assert feed.events == remaining
    assert feed.pending_timers == 0
    assert feed.active is False
    with pytest.raises(ActivityFeedClosedError):
        feed.tick()
    with pytest.raises(ActivityFeedClosedError):
        feed.start()


@pytest.mark.asyncio
async def test_generator_loop_respects_capacity():
    feed = _feed(tick_seconds=0.005, ttl_seconds=10)
    feed.start()
    assert feed.active is True

    await asyncio.sleep(0.1)

    assert len(feed.events) == 5
    await feed.stop()


@pytest.mark.asyncio
async def test_registry_reuses_running_feed_per_slot():
    registry = ActivityFeedRegistry(lambda slot_id: _feed(slot_id))

    feed = await registry.get_or_start("slot-1")

    assert await registry.get_or_start("slot-1") is feed
    assert "slot-1" in registry
    assert feed.active is True

    assert await registry.stop("slot-1") is True
    assert await registry.stop("slot-1") is False
    assert feed.active is False
    await registry.stop_all()


@pytest.mark.asyncio
async def test_registry_stop_all():
    registry = ActivityFeedRegistry(lambda slot_id: _feed(slot_id))
    feeds = [await registry.get_or_start(slot_id) for slot_id in ("a", "b", "c")]

    await registry.stop_all()

    assert not any(feed.active for feed in feeds)
    assert "a" not in registry


class FakeMonotonic:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_idle_feeds_are_stopped_and_removed():
    clock = FakeMonotonic()
    registry = ActivityFeedRegistry(
        lambda slot_id: _feed(slot_id), idle_seconds=30, clock=clock, reap_interval=60
    )
    idle = await registry.get_or_start("idle")
    watched = await registry.get_or_start("watched")

    clock.now += 20
    await registry.get_or_start("watched")
    clock.now += 15

    reaped = await registry.reap_idle()

    assert reaped == ["idle"]
    assert "idle" not in registry
    assert idle.active is False
    assert idle.pending_timers == 0
    assert "watched" in registry
    assert watched.active is True
    await registry.stop_all()


@pytest.mark.asyncio
async def test_reaper_task_evicts_abandoned_feeds():
    registry = ActivityFeedRegistry(
        lambda slot_id: _feed(slot_id), idle_seconds=0.05, reap_interval=0.02
    )
    feeds = [await registry.get_or_start(f"slot-{i}") for i in range(20)]

    await asyncio.sleep(0.2)

    assert len(registry) == 0
    assert not any(feed.active for feed in feeds)
    await registry.stop_all()


@pytest.mark.asyncio
async def test_live_feed_limit_evicts_least_recently_read():
    clock = FakeMonotonic()
    registry = ActivityFeedRegistry(
        lambda slot_id: _feed(slot_id), max_live=2, idle_seconds=600, clock=clock
    )
    first = await registry.get_or_start("a")
    clock.now += 1
    await registry.get_or_start("b")
    clock.now += 1
    await registry.get_or_start("a")
    clock.now += 1

    await registry.get_or_start("c")

    assert len(registry) == 2
    assert "b" not in registry
    assert "a" in registry and "c" in registry
    assert first.active is True
    await registry.stop_all()
