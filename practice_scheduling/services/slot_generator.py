"""Per-worker, per-day slot generation."""

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from practice_scheduling.exceptions import InvalidDurationError, InvalidGranularityError
from practice_scheduling.models.entities import Appointment, StaffMember, TimeSlot
from practice_scheduling.services.conflict_detector import ConflictDetector
from practice_scheduling.services.schedule_calendar import ScheduleCalendar

logger = logging.getLogger(__name__)


class SlotGenerator:
    """Walks a worker's day and keeps the candidate starts that are free."""

    def __init__(self, calendar: ScheduleCalendar, conflict_detector: ConflictDetector):
        """Initialize with the calendar and conflict detector to filter through."""
        self.calendar = calendar
        self.conflict_detector = conflict_detector

    def _scope_appointments(
        self,
        worker: StaffMember,
        appointments: Iterable[Appointment],
        window: tuple
    ) -> list[Appointment]:
        """Blocking appointments of ``worker`` whose buffered window reaches the day."""
        opening, closing = window
        tz = opening.tzinfo
        scoped = []
        for appointment in self.conflict_detector.blocking_appointments(worker, appointments):
            start, end = self.conflict_detector.occupied_window(appointment, worker.buffer_minutes, tz)
            if start < closing and end > opening:
                scoped.append(appointment)
        return scoped

    def generate(
        self,
        worker: StaffMember,
        day: date,
        duration_minutes: int,
        appointments: Iterable[Appointment] = (),
        granularity_minutes: Optional[int] = None
    ) -> list[TimeSlot]:
        """
        Generate open slots for one worker on one day.

        Args:
            worker: worker to generate for
            day: calendar date in the worker's timezone
            duration_minutes: requested service length
            appointments: existing bookings snapshot
            granularity_minutes: step between candidate starts (default from settings)

        Returns:
            Accepted slots in ascending start order; empty when nothing is open
        """
        if duration_minutes is None or duration_minutes <= 0:
            raise InvalidDurationError(duration_minutes)
        if granularity_minutes is None:
            granularity_minutes = self.calendar.settings.granularity_minutes
        if granularity_minutes <= 0:
            raise InvalidGranularityError(granularity_minutes)

        window = self.calendar.working_window(worker, day)
        if window is None:
            logger.debug(f"{worker.id} is not working on {day.isoformat()}")
            return []

        opening, closing = window
        tz = self.calendar.timezone_for(worker)
        day_appointments = self._scope_appointments(worker, appointments, window)

        # Candidates are stepped in wall-clock time so a DST change keeps the grid
        local_opening = opening.replace(tzinfo=None)
        step = timedelta(minutes=granularity_minutes)
        duration = timedelta(minutes=duration_minutes)

        slots = []
        index = 0
        while True:
            candidate = tz.localize(local_opening + index * step)
            if candidate + duration > closing:
                break
            index += 1

            if not self.calendar.is_open(worker, candidate, duration_minutes):
                continue
            if self.conflict_detector.conflicts_with(worker, candidate, duration_minutes, day_appointments):
                continue

            slots.append(TimeSlot(start=candidate, duration_minutes=duration_minutes, worker_id=worker.id))

        logger.debug(f"Generated {len(slots)} slot(s) for {worker.id} on {day.isoformat()}")
        return slots
