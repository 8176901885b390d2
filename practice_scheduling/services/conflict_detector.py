"""Conflict detection against existing bookings."""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from practice_scheduling.config import SchedulingSettings, get_settings
from practice_scheduling.models.entities import (
    Appointment,
    BufferPolicy,
    ScheduleConflict,
    StaffMember,
    TimeOffPeriod,
    TimeSlot,
)
from practice_scheduling.timezones import get_timezone, to_local

logger = logging.getLogger(__name__)


class ConflictDetector:
    """Tests candidate windows against a worker's existing appointments."""

    def __init__(self, settings: Optional[SchedulingSettings] = None, buffer_policy: Optional[BufferPolicy] = None):
        """
        Initialize detector.

        Args:
            settings: engine settings (read from the environment by default)
            buffer_policy: overrides the configured buffer policy
        """
        self.settings = settings or get_settings()
        self.buffer_policy = buffer_policy or self.settings.buffer_policy

    def _timezone(self, worker: StaffMember):
        return get_timezone(worker.location_timezone or self.settings.default_timezone)

    def occupied_window(self, appointment: Appointment, buffer_minutes: int, tz) -> tuple[datetime, datetime]:
        """Appointment window widened by the buffer according to the policy."""
        start = to_local(appointment.start, tz)
        end = start + timedelta(minutes=appointment.duration_minutes)
        buffer = timedelta(minutes=max(0, buffer_minutes))

        if self.buffer_policy in (BufferPolicy.BEFORE, BufferPolicy.BOTH):
            start -= buffer
        if self.buffer_policy in (BufferPolicy.AFTER, BufferPolicy.BOTH):
            end += buffer
        return start, end

    def blocking_appointments(
        self,
        worker: StaffMember,
        appointments: Iterable[Appointment],
        excluding_id: Optional[str] = None
    ) -> list[Appointment]:
        """Appointments of ``worker`` that still occupy time."""
        return [
            a for a in appointments
            if a.worker_id == worker.id
            and a.status.blocks_time
            and (excluding_id is None or a.id != excluding_id)
        ]

    def conflicts_with(
        self,
        worker: StaffMember,
        start: datetime,
        duration_minutes: int,
        appointments: Iterable[Appointment],
        excluding_id: Optional[str] = None
    ) -> Optional[ScheduleConflict]:
        """
        Find the first existing appointment overlapping a candidate window.

        Args:
            worker: worker whose bookings are checked
            start: candidate start
            duration_minutes: candidate length
            appointments: appointment snapshot (any workers, any statuses)
            excluding_id: appointment being rescheduled, ignored in the check

        Returns:
            ScheduleConflict for the first overlap in snapshot order, or None
        """
        tz = self._timezone(worker)
        candidate_start = to_local(start, tz)
        candidate_end = candidate_start + timedelta(minutes=duration_minutes)

        for appointment in self.blocking_appointments(worker, appointments, excluding_id):
            other_start, other_end = self.occupied_window(appointment, worker.buffer_minutes, tz)
            if candidate_start < other_end and candidate_end > other_start:
                logger.debug(
                    f"Candidate {candidate_start.isoformat()} for {worker.id} "
                    f"conflicts with appointment {appointment.id}"
                )
                return ScheduleConflict(
                    worker_id=worker.id,
                    requested=TimeSlot(start=candidate_start, duration_minutes=duration_minutes, worker_id=worker.id),
                    conflicting_appointment=appointment,
                )

        return None

    def time_off_conflicts(
        self,
        worker: StaffMember,
        time_off: TimeOffPeriod,
        appointments: Iterable[Appointment]
    ) -> list[Appointment]:
        """Booked appointments that a proposed time-off period would collide with."""
        tz = self._timezone(worker)
        off_start = to_local(time_off.start, tz)
        off_end = to_local(time_off.end, tz)

        conflicting = []
        for appointment in self.blocking_appointments(worker, appointments):
            appointment_start = to_local(appointment.start, tz)
            appointment_end = appointment_start + timedelta(minutes=appointment.duration_minutes)
            if appointment_start < off_end and appointment_end > off_start:
                conflicting.append(appointment)

        return sorted(conflicting, key=lambda a: to_local(a.start, tz))
