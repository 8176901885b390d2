"""Domain models for the scheduling engine."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum, IntEnum
from typing import Callable, Optional, Union

from practice_scheduling.exceptions import InvalidRecurrenceError


class DayOfWeek(IntEnum):
    """Days of the week, numbered like ``date.weekday()``."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, value: Union[date, datetime]) -> "DayOfWeek":
        return cls(value.weekday())

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    @property
    def short_name(self) -> str:
        return self.display_name[:3]


WEEKDAYS = frozenset({
    DayOfWeek.MONDAY,
    DayOfWeek.TUESDAY,
    DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY,
    DayOfWeek.FRIDAY,
})


@dataclass
class WorkingHours:
    """Working hours for a single day of the week."""
    is_working: bool = True
    start: time = time(9, 0)
    end: time = time(17, 0)

    @classmethod
    def closed(cls) -> "WorkingHours":
        return cls(is_working=False, start=time.min, end=time.min)

    @property
    def total_minutes(self) -> int:
        """Minutes between opening and closing; 0 on a closed day."""
        if not self.is_working:
            return 0
        start_minutes = self.start.hour * 60 + self.start.minute
        end_minutes = self.end.hour * 60 + self.end.minute
        return max(0, end_minutes - start_minutes)


@dataclass
class BreakPeriod:
    """A recurring daily break (e.g. lunch) on a set of weekdays."""
    days_of_week: frozenset
    start: time
    duration_minutes: int
    description: Optional[str] = None

    def __post_init__(self):
        self.days_of_week = frozenset(DayOfWeek(d) for d in self.days_of_week)

    def is_active(self, day: Union[date, datetime]) -> bool:
        """Check if this break applies on the weekday of ``day``."""
        return DayOfWeek.of(day) in self.days_of_week

    def window_on(self, day: date) -> tuple[datetime, datetime]:
        """Naive wall-clock window of this break on ``day``."""
        start = datetime.combine(day, self.start)
        return start, start + timedelta(minutes=self.duration_minutes)


class TimeOffType(Enum):
    """Category of a time-off period."""
    VACATION = "vacation"
    SICK = "sick"
    CONFERENCE = "conference"
    HOLIDAY = "holiday"
    PERSONAL = "personal"
    OTHER = "other"


@dataclass
class TimeOffPeriod:
    """An absolute span during which the worker takes no appointments."""
    start: datetime
    end: datetime
    time_off_type: TimeOffType = TimeOffType.VACATION
    reason: Optional[str] = None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start

    @property
    def duration_in_days(self) -> int:
        return (self.end.date() - self.start.date()).days + 1


class BufferPolicy(Enum):
    """Which side(s) of an existing appointment the worker buffer applies to."""
    BEFORE = "before"
    AFTER = "after"
    BOTH = "both"
    NONE = "none"


@dataclass
class Service:
    """A bookable service."""
    name: str
    duration_minutes: int


@dataclass
class StaffMember:
    """Represents a worker whose calendar can be booked."""
    id: str
    name: str
    weekly_hours: dict[DayOfWeek, WorkingHours] = field(default_factory=dict)
    breaks: list[BreakPeriod] = field(default_factory=list)
    time_off: list[TimeOffPeriod] = field(default_factory=list)
    buffer_minutes: int = 0
    is_active: bool = True
    can_provide_services: bool = True
    services: frozenset = frozenset()  # empty means every service
    location_timezone: Optional[str] = None
    earliest_appointment_time: Optional[time] = None
    latest_appointment_time: Optional[time] = None

    @classmethod
    def with_default_schedule(cls, id: str, name: str, **kwargs) -> "StaffMember":
        """Create a worker open Monday to Friday, 09:00-17:00."""
        weekly_hours = {
            day: WorkingHours() if day in WEEKDAYS else WorkingHours.closed()
            for day in DayOfWeek
        }
        return cls(id=id, name=name, weekly_hours=weekly_hours, **kwargs)

    def hours_for(self, day: Union[date, datetime]) -> Optional[WorkingHours]:
        """Working hours for the weekday of ``day``, or None when not configured."""
        return self.weekly_hours.get(DayOfWeek.of(day))

    def can_perform(self, service: Optional[Service]) -> bool:
        """Check if this worker is allowed to deliver ``service``."""
        if not self.can_provide_services:
            return False
        if service is None or not self.services:
            return True
        return service.name in self.services

    @property
    def is_bookable(self) -> bool:
        return self.is_active and self.can_provide_services


class AppointmentStatus(Enum):
    """Lifecycle status of an appointment."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"

    @property
    def blocks_time(self) -> bool:
        """Cancelled and no-show appointments free their slot."""
        return self not in (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW)

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    def can_transition_to(self, other: "AppointmentStatus") -> bool:
        return other in _TRANSITIONS.get(self, frozenset())


_TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
    AppointmentStatus.RESCHEDULED,
})

_SIDE_BRANCHES = frozenset({
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
    AppointmentStatus.RESCHEDULED,
})

_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: frozenset({AppointmentStatus.CONFIRMED}) | _SIDE_BRANCHES,
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.CHECKED_IN}) | _SIDE_BRANCHES,
    AppointmentStatus.CHECKED_IN: frozenset({AppointmentStatus.IN_PROGRESS}) | _SIDE_BRANCHES,
    AppointmentStatus.IN_PROGRESS: frozenset({AppointmentStatus.COMPLETED}) | _SIDE_BRANCHES,
}


@dataclass
class Appointment:
    """An existing booking as supplied by the persistence layer."""
    worker_id: str
    start: datetime
    duration_minutes: int
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    client_id: Optional[str] = None
    service_name: Optional[str] = None
    rescheduled_from: Optional[str] = None
    recurrence_parent_id: Optional[str] = None

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    @property
    def can_be_cancelled(self) -> bool:
        return not self.status.is_terminal


@dataclass(frozen=True)
class TimeSlot:
    """A candidate or booked window; ``end`` is always derived."""
    start: datetime
    duration_minutes: int
    worker_id: Optional[str] = None

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start


@dataclass
class ScheduleConflict:
    """A requested window and the existing appointment it collides with."""
    worker_id: str
    requested: TimeSlot
    conflicting_appointment: Appointment


class RecurrenceFrequency(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi_weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class RecurrenceEndType(Enum):
    NEVER = "never"
    ON_DATE = "on_date"
    AFTER_OCCURRENCES = "after_occurrences"


@dataclass
class RecurrencePattern:
    """
    Rule describing a recurring appointment series.

    ``custom_rule`` is only consulted for ``RecurrenceFrequency.CUSTOM``; it
    receives the previous occurrence and returns the next one (or None).
    """
    frequency: RecurrenceFrequency
    interval: int = 1
    days_of_week: Optional[frozenset] = None
    end_type: RecurrenceEndType = RecurrenceEndType.NEVER
    end_date: Optional[Union[date, datetime]] = None
    occurrence_count: Optional[int] = None
    custom_rule: Optional[Callable[[datetime], Optional[datetime]]] = None

    def __post_init__(self):
        if self.interval < 1:
            raise InvalidRecurrenceError(f"Recurrence interval must be at least 1, got {self.interval}")
        if self.end_type == RecurrenceEndType.ON_DATE and self.end_date is None:
            raise InvalidRecurrenceError("Recurrence ending on a date needs an end_date")
        if self.end_type == RecurrenceEndType.AFTER_OCCURRENCES and (
            self.occurrence_count is None or self.occurrence_count < 1
        ):
            raise InvalidRecurrenceError("Recurrence ending after occurrences needs a positive occurrence_count")
        if self.days_of_week is not None:
            self.days_of_week = frozenset(DayOfWeek(d) for d in self.days_of_week)


class BookingOutcome(Enum):
    BOOKED = "booked"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"
    # Free, but not booked because the rest of an all-or-nothing series was rejected
    SKIPPED = "skipped"


@dataclass
class BookingResult:
    """Outcome of a single booking attempt."""
    outcome: BookingOutcome
    requested: TimeSlot
    appointment: Optional[Appointment] = None
    conflict: Optional[ScheduleConflict] = None

    @property
    def is_booked(self) -> bool:
        return self.outcome == BookingOutcome.BOOKED


@dataclass
class RecurringBookingResult:
    """Per-occurrence outcomes of a recurring series booking."""
    results: list[BookingResult] = field(default_factory=list)

    @property
    def booked(self) -> list[Appointment]:
        return [r.appointment for r in self.results if r.is_booked]

    @property
    def rejected(self) -> list[BookingResult]:
        return [r for r in self.results if not r.is_booked]

    @property
    def conflicts(self) -> list[ScheduleConflict]:
        return [r.conflict for r in self.results if r.conflict is not None]
