"""
Calendar aggregation service.

Buckets slots into a day x hour grid for a week or month window under a
doctor filter. Bucketing is a pure function of (window, filter, slots);
only aggregate() talks to the remote scheduling service.
"""

from __future__ import annotations

import calendar
from collections import Counter, defaultdict
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, tzinfo

from slot_discovery.config import settings
from slot_discovery.features.discovery.domain.models import (
    CalendarCell,
    CalendarDay,
    CalendarGrid,
    CalendarSlot,
    CalendarWindow,
    NavigationDirection,
    ViewMode,
)
from slot_discovery.infrastructure.observability.logging import get_logger
from slot_discovery.models.domain.scheduling_domain import Doctor, Slot
from slot_discovery.services.scheduling.snapshot import (
    ALL_DOCTORS,
    SchedulingReader,
    ScheduleUnavailableError,
    load_schedule_snapshot,
)

logger = get_logger(__name__)

# 08:00 through the 19:00 bucket
DISPLAY_HOURS: tuple[int, ...] = tuple(range(8, 20))


def day_key_for(day: date, view_mode: ViewMode) -> int:
    """Weekday index with Sunday=0 in week mode, day of month in month mode."""
    if view_mode == ViewMode.WEEK:
        return (day.weekday() + 1) % 7
    return day.day


def compute_window(view_mode: ViewMode, anchor: date, tz: tzinfo) -> CalendarWindow:
    """
    Compute the viewing window that contains the anchor date.

    Week windows start on the Sunday on/before the anchor and span 7 days.
    Month windows run from the 1st of the anchor's month to the 1st of the next.
    """
    if view_mode == ViewMode.WEEK:
        first = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
        last = first + timedelta(days=7)
    else:
        first = anchor.replace(day=1)
        last = _add_months(first, 1)

    return CalendarWindow(
        view_mode=view_mode,
        start=datetime.combine(first, time.min, tzinfo=tz),
        end=datetime.combine(last, time.min, tzinfo=tz),
    )


def shift_anchor(anchor: date, view_mode: ViewMode, direction: NavigationDirection) -> date:
    """Move the anchor one week or one calendar month."""
    step = 1 if direction == NavigationDirection.NEXT else -1
    if view_mode == ViewMode.WEEK:
        return anchor + timedelta(days=7 * step)
    return _add_months(anchor, step)


def _add_months(day: date, months: int) -> date:
    # clamps to the last day of the target month (31 Jan + 1 month -> 28/29 Feb)
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class CalendarAggregator:
    """Builds calendar grids from schedule snapshots."""

    UNKNOWN_DOCTOR = "Unknown"

    def __init__(self, tz: tzinfo | None = None, hours: tuple[int, ...] = DISPLAY_HOURS):
        self.tz = tz or settings.local_tz()
        self.hours = hours

    def window_for(self, view_mode: ViewMode, anchor: date) -> CalendarWindow:
        return compute_window(view_mode, anchor, self.tz)

    async def aggregate(
        self,
        client: SchedulingReader,
        view_mode: ViewMode,
        anchor: date,
        doctor_filter: str = ALL_DOCTORS,
    ) -> CalendarGrid:
        """
        Fetch slots for the filter and bucket them into the anchor's window.

        Returns an empty grid with data_available=False when the doctor
        list cannot be fetched.
        """
        window = self.window_for(view_mode, anchor)
        try:
            snapshot = await load_schedule_snapshot(client, doctor_filter)
        except ScheduleUnavailableError:
            logger.error(
                "Calendar data unavailable - doctor list fetch failed",
                doctor_filter=doctor_filter,
                view_mode=view_mode.value,
                anchor=anchor.isoformat(),
            )
            return self.empty_grid(window, doctor_filter, data_available=False)

        grid = self.build_grid(window, doctor_filter, snapshot.doctors, snapshot.slots)
        logger.info(
            "Calendar aggregated",
            doctor_filter=doctor_filter,
            view_mode=view_mode.value,
            window_start=window.start.isoformat(),
            placed=len(grid.placed_slot_ids()),
            failed_doctors=len(snapshot.failed_doctor_ids),
        )
        return grid

    def empty_grid(
        self, window: CalendarWindow, doctor_filter: str, data_available: bool = True
    ) -> CalendarGrid:
        return self.build_grid(window, doctor_filter, [], [], data_available=data_available)

    def build_grid(
        self,
        window: CalendarWindow,
        doctor_filter: str,
        doctors: Iterable[Doctor],
        slots: Iterable[Slot],
        data_available: bool = True,
    ) -> CalendarGrid:
        """Bucket slots into (day, hour) cells. Pure: same inputs, same grid."""
        doctors_by_id = {doctor.id: doctor for doctor in doctors}
        visible_hours = set(self.hours)
        day_counts: Counter[date] = Counter()
        buckets: defaultdict[tuple[int, int], list[CalendarSlot]] = defaultdict(list)
        seen: set[str] = set()

        for slot in slots:
            if slot.id in seen:
                continue
            if doctor_filter != ALL_DOCTORS and slot.doctor_id != doctor_filter:
                continue
            doctor = doctors_by_id.get(slot.doctor_id)
            if doctor is None:
                logger.debug("Skipping slot with unknown doctor", slot_id=slot.id)
                continue

            local_start = slot.local_start(self.tz)
            if not window.contains(local_start):
                continue
            seen.add(slot.id)

            day_key = day_key_for(local_start.date(), window.view_mode)
            hour_key = local_start.hour
            day_counts[local_start.date()] += 1

            # computed but not shown outside the display range
            if hour_key not in visible_hours:
                continue

            buckets[(day_key, hour_key)].append(
                CalendarSlot(
                    slot=slot,
                    doctor_name=doctor.name or self.UNKNOWN_DOCTOR,
                    day_key=day_key,
                    hour_key=hour_key,
                )
            )

        days = tuple(
            CalendarDay(
                key=day_key_for(day, window.view_mode),
                day=day,
                slot_count=day_counts.get(day, 0),
            )
            for day in window.days()
        )
        cells = tuple(
            CalendarCell(
                day_key=day.key,
                hour=hour,
                slots=tuple(
                    sorted(
                        buckets.get((day.key, hour), ()),
                        key=lambda placed: (placed.slot.start_time, placed.slot.id),
                    )
                ),
            )
            for day in days
            for hour in self.hours
        )

        return CalendarGrid(
            window=window,
            doctor_filter=doctor_filter,
            hours=tuple(self.hours),
            days=days,
            cells=cells,
            data_available=data_available,
        )


calendar_aggregator = CalendarAggregator()
