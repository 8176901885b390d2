"""Roster-wide availability search."""

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from practice_scheduling.exceptions import InvalidDurationError, UnknownWorkerError
from practice_scheduling.models.entities import Appointment, Service, StaffMember, TimeSlot
from practice_scheduling.services.slot_generator import SlotGenerator

logger = logging.getLogger(__name__)


class AvailabilityAggregator:
    """Fans a slot request out across a roster and merges the results."""

    def __init__(self, slot_generator: SlotGenerator):
        """Initialize aggregator."""
        self.slot_generator = slot_generator

    @property
    def calendar(self):
        return self.slot_generator.calendar

    def _find_worker(self, roster: Iterable[StaffMember], worker_id: str) -> StaffMember:
        for worker in roster:
            if worker.id == worker_id:
                return worker
        raise UnknownWorkerError(worker_id)

    def eligible_workers(self, service: Optional[Service], roster: Iterable[StaffMember]) -> list[StaffMember]:
        """Active roster members capable of performing ``service``, in roster order."""
        return [w for w in roster if w.is_active and w.can_perform(service)]

    def _validate_duration(self, duration_minutes: int, workers: list[StaffMember]) -> None:
        if duration_minutes is None or duration_minutes <= 0:
            raise InvalidDurationError(duration_minutes)

        longest = max((self.calendar.longest_window_minutes(w) for w in workers), default=0)
        if longest and duration_minutes > longest:
            raise InvalidDurationError(
                duration_minutes,
                f"exceeds every working window in the roster (longest is {longest} minutes)",
            )

    def find_slots(
        self,
        service: Service,
        day: date,
        roster: Iterable[StaffMember],
        appointments: Iterable[Appointment] = (),
        requested_worker_id: Optional[str] = None,
        collapse_by_start: bool = True,
        granularity_minutes: Optional[int] = None
    ) -> list[TimeSlot]:
        """
        Find open slots for ``service`` on ``day``.

        Args:
            service: service being booked (its duration sizes the slots)
            day: date to search
            roster: workers to consider
            appointments: existing bookings snapshot
            requested_worker_id: restrict the search to one worker
            collapse_by_start: keep one slot per start time ("any available
                provider"); the first worker in roster order keeps it. Pass
                False to keep every worker's slot
            granularity_minutes: step between candidate starts

        Returns:
            Slots sorted by start time (then worker id), each tagged with the
            worker holding it; start times are unique unless
            ``collapse_by_start`` is False

        Raises:
            UnknownWorkerError: if ``requested_worker_id`` is not in the roster
            InvalidDurationError: if the service duration can never fit
        """
        roster = list(roster)
        appointments = list(appointments)

        if requested_worker_id is not None:
            workers = [self._find_worker(roster, requested_worker_id)]
        else:
            workers = self.eligible_workers(service, roster)

        self._validate_duration(service.duration_minutes, workers)

        slots: list[TimeSlot] = []
        for worker in workers:
            slots.extend(
                self.slot_generator.generate(
                    worker,
                    day,
                    service.duration_minutes,
                    appointments,
                    granularity_minutes=granularity_minutes,
                )
            )

        if collapse_by_start:
            by_start: dict = {}
            for slot in slots:
                by_start.setdefault(slot.start, slot)
            slots = list(by_start.values())

        slots.sort(key=lambda s: (s.start, s.worker_id or ""))

        logger.debug(
            f"Found {len(slots)} slot(s) for '{service.name}' on {day.isoformat()} "
            f"across {len(workers)} worker(s)"
        )
        return slots

    def find_slots_in_range(
        self,
        service: Service,
        start_date: date,
        end_date: date,
        roster: Iterable[StaffMember],
        appointments: Iterable[Appointment] = (),
        requested_worker_id: Optional[str] = None,
        collapse_by_start: bool = True,
        granularity_minutes: Optional[int] = None
    ) -> dict[date, list[TimeSlot]]:
        """
        Run ``find_slots`` for every date in ``[start_date, end_date]``.

        Returns:
            {date: [slots]} with days that have no availability omitted
        """
        roster = list(roster)
        appointments = list(appointments)

        result = {}
        current_date = start_date
        while current_date <= end_date:
            slots = self.find_slots(
                service,
                current_date,
                roster,
                appointments,
                requested_worker_id=requested_worker_id,
                collapse_by_start=collapse_by_start,
                granularity_minutes=granularity_minutes,
            )
            if slots:
                result[current_date] = slots
            current_date += timedelta(days=1)

        return result

    def first_available(
        self,
        service: Service,
        start_date: date,
        roster: Iterable[StaffMember],
        appointments: Iterable[Appointment] = (),
        requested_worker_id: Optional[str] = None,
        days_ahead: int = 30,
        granularity_minutes: Optional[int] = None
    ) -> Optional[TimeSlot]:
        """Earliest open slot within ``days_ahead`` days of ``start_date``."""
        roster = list(roster)
        appointments = list(appointments)

        for offset in range(days_ahead + 1):
            slots = self.find_slots(
                service,
                start_date + timedelta(days=offset),
                roster,
                appointments,
                requested_worker_id=requested_worker_id,
                granularity_minutes=granularity_minutes,
            )
            if slots:
                return slots[0]
        return None
