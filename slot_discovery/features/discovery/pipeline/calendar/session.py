"""
Live calendar sessions.

A session holds one viewer's calendar state (filter, view mode, anchor)
and keeps its grid fresh: explicit navigation and filter changes refetch
immediately, and a periodic task refetches with whatever state is current
at tick time. Every refetch takes a generation token; a response is only
applied while its token is still the newest one issued, so a slow tick
can never overwrite the result of a later navigation.
"""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from collections.abc import Callable
from datetime import date, datetime

from slot_discovery.config import settings
from slot_discovery.features.discovery.domain.models import (
    CalendarGrid,
    NavigationDirection,
    ViewMode,
)
from slot_discovery.features.discovery.registry import IdleEvictingRegistry
from slot_discovery.infrastructure.observability.logging import get_logger
from slot_discovery.services.scheduling.snapshot import ALL_DOCTORS, SchedulingReader

from .service import CalendarAggregator, shift_anchor

logger = get_logger(__name__)


class CalendarSessionNotFoundError(KeyError):
    """No live calendar session with the requested id."""


class CalendarSession:
    def __init__(
        self,
        client: SchedulingReader,
        aggregator: CalendarAggregator,
        view_mode: ViewMode = ViewMode.WEEK,
        anchor: date | None = None,
        doctor_filter: str = ALL_DOCTORS,
        refresh_seconds: float | None = None,
        session_id: str | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.client = client
        self.aggregator = aggregator
        self.view_mode = view_mode
        self.doctor_filter = doctor_filter
        self.refresh_seconds = (
            refresh_seconds if refresh_seconds is not None else settings.CALENDAR_REFRESH_SECONDS
        )
        today = today or (lambda: datetime.now(aggregator.tz).date())
        self.anchor = anchor or today()
        self.grid: CalendarGrid | None = None
        self._generation = 0
        self._refresh_task: asyncio.Task | None = None
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def closed(self) -> bool:
        return self._closed

    async def refresh(self) -> bool:
        """
        Refetch the grid for the current state.

        Returns:
            True if this response was applied, False if a newer request
            (or teardown) superseded it while it was in flight
        """
        if self._closed:
            return False

        self._generation += 1
        token = self._generation
        view_mode, anchor, doctor_filter = self.view_mode, self.anchor, self.doctor_filter

        grid = await self.aggregator.aggregate(self.client, view_mode, anchor, doctor_filter)

        if token != self._generation:
            logger.debug(
                "Discarding stale calendar response",
                session_id=self.id,
                token=token,
                latest=self._generation,
            )
            return False

        self.grid = grid
        return True

    async def navigate(self, direction: NavigationDirection) -> CalendarGrid | None:
        self.anchor = shift_anchor(self.anchor, self.view_mode, direction)
        await self.refresh()
        return self.grid

    async def update(
        self, doctor_filter: str | None = None, view_mode: ViewMode | None = None
    ) -> CalendarGrid | None:
        """Change the doctor filter and/or view mode, then refetch."""
        if doctor_filter is not None:
            self.doctor_filter = doctor_filter
        if view_mode is not None:
            self.view_mode = view_mode
        await self.refresh()
        return self.grid

    def start(self) -> None:
        """Begin periodic refreshing."""
        if self._closed:
            raise RuntimeError(f"Calendar session {self.id} is closed")
        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_seconds)
            try:
                await self.refresh()
            except Exception as e:
                logger.error(
                    "Calendar periodic refresh failed",
                    session_id=self.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def stop(self) -> None:
        """Cancel the periodic refresh; responses still in flight are dropped."""
        self._closed = True
        # invalidates any in-flight token
        self._generation += 1
        task, self._refresh_task = self._refresh_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.debug("Calendar session stopped", session_id=self.id)


class CalendarSessionRegistry(IdleEvictingRegistry[CalendarSession]):
    """Owns the live calendar sessions of the HTTP surface; idle sessions are reaped."""

    kind = "calendar session"

    def __init__(
        self,
        aggregator: CalendarAggregator,
        refresh_seconds: float | None = None,
        idle_seconds: float | None = None,
        max_live: int | None = None,
        clock: Callable[[], float] | None = None,
        reap_interval: float | None = None,
    ):
        super().__init__(
            idle_seconds=(
                idle_seconds if idle_seconds is not None else settings.CALENDAR_SESSION_IDLE_SECONDS
            ),
            max_live=max_live if max_live is not None else settings.CALENDAR_SESSION_MAX_LIVE,
            clock=clock,
            reap_interval=reap_interval,
        )
        self.aggregator = aggregator
        self.refresh_seconds = refresh_seconds

    async def _stop_entry(self, session: CalendarSession) -> None:
        await session.stop()

    async def open(
        self,
        client: SchedulingReader,
        view_mode: ViewMode = ViewMode.WEEK,
        anchor: date | None = None,
        doctor_filter: str = ALL_DOCTORS,
        aggregator: CalendarAggregator | None = None,
    ) -> CalendarSession:
        """Create a session, fetch its first grid and start periodic refreshing."""
        session = CalendarSession(
            client,
            aggregator or self.aggregator,
            view_mode=view_mode,
            anchor=anchor,
            doctor_filter=doctor_filter,
            refresh_seconds=self.refresh_seconds,
        )
        await session.refresh()
        await self._add(session.id, session)
        session.start()
        logger.info(
            "Calendar session opened",
            session_id=session.id,
            view_mode=view_mode.value,
            doctor_filter=doctor_filter,
        )
        return session

    def get(self, session_id: str) -> CalendarSession:
        """Look up a session; every lookup keeps it alive."""
        try:
            session = self._entries[session_id]
        except KeyError:
            raise CalendarSessionNotFoundError(session_id) from None
        self._touch(session_id)
        return session

    async def close(self, session_id: str) -> None:
        if await self._remove(session_id) is None:
            raise CalendarSessionNotFoundError(session_id)

    async def close_all(self) -> None:
        count = await self._remove_all()
        if count:
            logger.info("Calendar sessions closed", count=count)
