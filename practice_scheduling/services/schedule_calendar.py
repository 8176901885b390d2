"""Worker calendar: working hours, breaks and time off."""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from practice_scheduling.config import SchedulingSettings, get_settings
from practice_scheduling.exceptions import InvalidDurationError
from practice_scheduling.models.entities import StaffMember
from practice_scheduling.timezones import get_timezone, minutes_of_day, to_local, wall_clock

logger = logging.getLogger(__name__)

Interval = tuple[datetime, datetime]


def merge_intervals(intervals: list[Interval]) -> list[Interval]:
    """Union of possibly overlapping or adjacent intervals, sorted by start."""
    if not intervals:
        return []

    ordered = sorted(intervals, key=lambda x: x[0])
    merged = [ordered[0]]

    for start, end in ordered[1:]:
        last_start, last_end = merged[-1]
        if start <= last_end:
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))

    return merged


class ScheduleCalendar:
    """Answers whether a worker is theoretically open for a given window."""

    def __init__(self, settings: Optional[SchedulingSettings] = None):
        """Initialize with engine settings (read from the environment by default)."""
        self.settings = settings or get_settings()

    def timezone_for(self, worker: StaffMember):
        return get_timezone(worker.location_timezone or self.settings.default_timezone)

    def working_window(self, worker: StaffMember, day: date) -> Optional[Interval]:
        """
        Opening and closing instants for ``worker`` on ``day``.

        The configured hours are narrowed by the worker's earliest/latest
        appointment times when those are set.

        Returns:
            (open, close) as aware datetimes in the worker's timezone, or None
            when the day is closed or has no working-hours entry
        """
        hours = worker.hours_for(day)
        if hours is None or not hours.is_working:
            return None

        start_time = hours.start
        end_time = hours.end
        if worker.earliest_appointment_time and worker.earliest_appointment_time > start_time:
            start_time = worker.earliest_appointment_time
        if worker.latest_appointment_time and worker.latest_appointment_time < end_time:
            end_time = worker.latest_appointment_time

        if end_time <= start_time:
            return None

        tz = self.timezone_for(worker)
        return wall_clock(day, start_time, tz), wall_clock(day, end_time, tz)

    def break_windows(self, worker: StaffMember, day: date) -> list[Interval]:
        """Merged break windows active on ``day``."""
        tz = self.timezone_for(worker)
        windows = []
        for break_period in worker.breaks:
            if not break_period.is_active(day):
                continue
            start, end = break_period.window_on(day)
            windows.append((tz.localize(start), tz.localize(end)))
        return merge_intervals(windows)

    def time_off_windows(self, worker: StaffMember, start: datetime, end: datetime) -> list[Interval]:
        """Merged time-off spans intersecting ``[start, end)``."""
        tz = self.timezone_for(worker)
        windows = []
        for period in worker.time_off:
            off_start = to_local(period.start, tz)
            off_end = to_local(period.end, tz)
            if start < off_end and end > off_start:
                windows.append((off_start, off_end))
        return merge_intervals(windows)

    def is_open(self, worker: StaffMember, instant: datetime, duration_minutes: int) -> bool:
        """
        Check if ``worker`` could take an appointment at ``instant``.

        The whole window must fit inside working hours and must not touch a
        time-off period or a break. Existing bookings are not considered.
        """
        if duration_minutes <= 0:
            raise InvalidDurationError(duration_minutes)

        tz = self.timezone_for(worker)
        start = to_local(instant, tz)
        end = start + timedelta(minutes=duration_minutes)

        window = self.working_window(worker, start.date())
        if window is None:
            return False

        opening, closing = window
        if start < opening or end > closing:
            return False

        if self.time_off_windows(worker, start, end):
            return False

        for break_start, break_end in self.break_windows(worker, start.date()):
            if start < break_end and end > break_start:
                return False

        return True

    def longest_window_minutes(self, worker: StaffMember) -> int:
        """Length of the worker's longest working window across the week."""
        longest = 0
        for hours in worker.weekly_hours.values():
            if not hours.is_working:
                continue
            start_minutes = minutes_of_day(hours.start)
            end_minutes = minutes_of_day(hours.end)
            if worker.earliest_appointment_time:
                start_minutes = max(start_minutes, minutes_of_day(worker.earliest_appointment_time))
            if worker.latest_appointment_time:
                end_minutes = min(end_minutes, minutes_of_day(worker.latest_appointment_time))
            longest = max(longest, end_minutes - start_minutes)
        return longest

    def validate_duration(self, worker: StaffMember, duration_minutes: int) -> None:
        """
        Reject durations that can never be booked for ``worker``.

        Raises:
            InvalidDurationError: if the duration is not positive or is longer
                than every working window the worker has
        """
        if duration_minutes is None or duration_minutes <= 0:
            raise InvalidDurationError(duration_minutes)
        longest = self.longest_window_minutes(worker)
        if longest and duration_minutes > longest:
            raise InvalidDurationError(
                duration_minutes,
                f"exceeds the longest working window of {worker.id} ({longest} minutes)",
            )
