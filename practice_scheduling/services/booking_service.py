"""Booking with per-worker serialisation of check-then-insert."""

import logging
from contextlib import ExitStack
from datetime import datetime
from threading import Lock
from typing import Optional

from practice_scheduling.exceptions import SchedulingError
from practice_scheduling.models.entities import (
    Appointment,
    AppointmentStatus,
    BookingOutcome,
    BookingResult,
    RecurrencePattern,
    RecurringBookingResult,
    StaffMember,
    TimeSlot,
)
from practice_scheduling.services.appointment_store import AppointmentStore
from practice_scheduling.services.conflict_detector import ConflictDetector
from practice_scheduling.services.recurrence_expander import RecurrenceExpander
from practice_scheduling.services.schedule_calendar import ScheduleCalendar
from practice_scheduling.timezones import to_local

logger = logging.getLogger(__name__)


class BookingService:
    """
    Creates appointments without double-booking a worker.

    The conflict check and the insert for one worker run under that worker's
    lock, against a snapshot re-read from the store inside the lock. Slot
    listing (``AvailabilityAggregator``) never takes these locks, so a slot
    shown to a client may be gone by the time it is booked; that case comes
    back as a ``BookingOutcome.CONFLICT`` result.
    """

    def __init__(
        self,
        store: AppointmentStore,
        calendar: ScheduleCalendar,
        conflict_detector: ConflictDetector,
        recurrence_expander: Optional[RecurrenceExpander] = None
    ):
        """Initialize booking service."""
        self.store = store
        self.calendar = calendar
        self.conflict_detector = conflict_detector
        self.recurrence_expander = recurrence_expander or RecurrenceExpander(calendar.settings)
        self._locks: dict[str, Lock] = {}
        self._locks_guard = Lock()

    def _lock_for(self, worker_id: str) -> Lock:
        with self._locks_guard:
            lock = self._locks.get(worker_id)
            if lock is None:
                lock = Lock()
                self._locks[worker_id] = lock
            return lock

    def _check(
        self,
        worker: StaffMember,
        start: datetime,
        duration_minutes: int,
        appointments: list[Appointment],
        excluding_id: Optional[str] = None
    ) -> Optional[BookingResult]:
        """Rejection result for the requested window, or None when it is bookable."""
        requested = TimeSlot(start=start, duration_minutes=duration_minutes, worker_id=worker.id)

        if not self.calendar.is_open(worker, start, duration_minutes):
            return BookingResult(outcome=BookingOutcome.UNAVAILABLE, requested=requested)

        conflict = self.conflict_detector.conflicts_with(
            worker, start, duration_minutes, appointments, excluding_id=excluding_id
        )
        if conflict is not None:
            return BookingResult(outcome=BookingOutcome.CONFLICT, requested=requested, conflict=conflict)

        return None

    def _book_locked(
        self,
        worker: StaffMember,
        start: datetime,
        duration_minutes: int,
        excluding_id: Optional[str] = None,
        **fields
    ) -> BookingResult:
        """Check and insert; the caller must hold the worker's lock."""
        appointments = self.store.appointments_for(worker.id)
        rejection = self._check(worker, start, duration_minutes, appointments, excluding_id)
        if rejection is not None:
            logger.warning(
                f"Booking for {worker.id} at {start.isoformat()} rejected: {rejection.outcome.value}"
            )
            return rejection

        appointment = self.store.add(
            Appointment(worker_id=worker.id, start=start, duration_minutes=duration_minutes, **fields)
        )
        logger.info(f"Booked appointment {appointment.id} for {worker.id} at {start.isoformat()}")
        return BookingResult(
            outcome=BookingOutcome.BOOKED,
            requested=TimeSlot(start=start, duration_minutes=duration_minutes, worker_id=worker.id),
            appointment=appointment,
        )

    def book(
        self,
        worker: StaffMember,
        start: datetime,
        duration_minutes: int,
        client_id: Optional[str] = None,
        service_name: Optional[str] = None
    ) -> BookingResult:
        """
        Book a single appointment.

        Returns:
            BookingResult with the new appointment, or the reason it was refused

        Raises:
            InvalidDurationError: if the duration can never fit this worker
        """
        self.calendar.validate_duration(worker, duration_minutes)
        start = to_local(start, self.calendar.timezone_for(worker))

        with self._lock_for(worker.id):
            return self._book_locked(
                worker, start, duration_minutes, client_id=client_id, service_name=service_name
            )

    def reschedule(self, worker: StaffMember, appointment: Appointment, new_start: datetime) -> BookingResult:
        """
        Move ``appointment`` to ``new_start`` with ``worker``.

        The original record is ignored by the conflict check. On success a new
        scheduled appointment referencing it is created and the original is
        marked rescheduled. The status check runs against the stored record,
        so a stale copy of an appointment that was already moved is refused.

        Raises:
            SchedulingError: if the appointment is unknown to the store or
                already in a terminal status
        """
        self.calendar.validate_duration(worker, appointment.duration_minutes)
        new_start = to_local(new_start, self.calendar.timezone_for(worker))

        with ExitStack() as stack:
            # Sorted so two reschedules between the same pair of workers cannot deadlock
            for worker_id in sorted({worker.id, appointment.worker_id}):
                stack.enter_context(self._lock_for(worker_id))

            stored = self.store.get(appointment.id)
            if stored is None:
                raise SchedulingError(f"Appointment {appointment.id} not found")
            if not stored.status.can_transition_to(AppointmentStatus.RESCHEDULED):
                raise SchedulingError(
                    f"Appointment {stored.id} cannot be rescheduled from status {stored.status.value}"
                )

            result = self._book_locked(
                worker,
                new_start,
                appointment.duration_minutes,
                excluding_id=appointment.id,
                client_id=appointment.client_id,
                service_name=appointment.service_name,
                rescheduled_from=appointment.id,
                recurrence_parent_id=appointment.recurrence_parent_id,
            )
            if result.is_booked:
                self.store.update_status(appointment.id, AppointmentStatus.RESCHEDULED)

        return result

    def book_recurring(
        self,
        worker: StaffMember,
        pattern: RecurrencePattern,
        start: datetime,
        duration_minutes: int,
        all_or_nothing: bool = False,
        max_count: Optional[int] = None,
        client_id: Optional[str] = None,
        service_name: Optional[str] = None
    ) -> RecurringBookingResult:
        """
        Book every occurrence of a recurring series.

        Each occurrence is checked on its own: by default a conflict on one
        occurrence only drops that occurrence. With ``all_or_nothing`` the
        whole series is validated first and nothing is booked unless every
        occurrence is free; free occurrences are then reported as skipped.
        """
        self.calendar.validate_duration(worker, duration_minutes)
        start = to_local(start, self.calendar.timezone_for(worker))
        occurrences = self.recurrence_expander.expand(pattern, start, max_count=max_count)

        if all_or_nothing:
            return self._book_series_atomically(
                worker, occurrences, duration_minutes, client_id=client_id, service_name=service_name
            )

        result = RecurringBookingResult()
        parent_id = None
        for occurrence in occurrences:
            with self._lock_for(worker.id):
                booking = self._book_locked(
                    worker,
                    occurrence,
                    duration_minutes,
                    client_id=client_id,
                    service_name=service_name,
                    recurrence_parent_id=parent_id,
                )
            if booking.is_booked and parent_id is None:
                parent_id = booking.appointment.id
            result.results.append(booking)

        logger.info(
            f"Recurring booking for {worker.id}: {len(result.booked)} of {len(occurrences)} occurrence(s) booked"
        )
        return result

    def _book_series_atomically(
        self,
        worker: StaffMember,
        occurrences: list[datetime],
        duration_minutes: int,
        **fields
    ) -> RecurringBookingResult:
        with self._lock_for(worker.id):
            snapshot = self.store.appointments_for(worker.id)
            planned = []
            checks = []
            for occurrence in occurrences:
                rejection = self._check(worker, occurrence, duration_minutes, snapshot + planned)
                checks.append(rejection)
                if rejection is None:
                    # Later occurrences must not collide with earlier ones of the same series
                    planned.append(
                        Appointment(worker_id=worker.id, start=occurrence, duration_minutes=duration_minutes)
                    )

            if any(check is not None for check in checks):
                logger.warning(
                    f"Recurring booking for {worker.id} rejected: "
                    f"{sum(c is not None for c in checks)} of {len(occurrences)} occurrence(s) unavailable"
                )
                return RecurringBookingResult(results=[
                    check or BookingResult(
                        outcome=BookingOutcome.SKIPPED,
                        requested=TimeSlot(start=occurrence, duration_minutes=duration_minutes, worker_id=worker.id),
                    )
                    for occurrence, check in zip(occurrences, checks)
                ])

            result = RecurringBookingResult()
            parent_id = None
            for occurrence in occurrences:
                appointment = self.store.add(
                    Appointment(
                        worker_id=worker.id,
                        start=occurrence,
                        duration_minutes=duration_minutes,
                        recurrence_parent_id=parent_id,
                        **fields,
                    )
                )
                if parent_id is None:
                    parent_id = appointment.id
                result.results.append(BookingResult(
                    outcome=BookingOutcome.BOOKED,
                    requested=TimeSlot(start=occurrence, duration_minutes=duration_minutes, worker_id=worker.id),
                    appointment=appointment,
                ))

        logger.info(f"Recurring booking for {worker.id}: all {len(occurrences)} occurrence(s) booked")
        return result
