"""Staff availability and appointment scheduling engine."""

from practice_scheduling.config import SchedulingSettings, configure_logging, get_settings
from practice_scheduling.models.entities import (
    Appointment,
    AppointmentStatus,
    BookingOutcome,
    BookingResult,
    BreakPeriod,
    BufferPolicy,
    DayOfWeek,
    RecurrenceEndType,
    RecurrenceFrequency,
    RecurrencePattern,
    RecurringBookingResult,
    ScheduleConflict,
    Service,
    StaffMember,
    TimeOffPeriod,
    TimeOffType,
    TimeSlot,
    WorkingHours,
)
from practice_scheduling.services.appointment_store import AppointmentStore, InMemoryAppointmentStore
from practice_scheduling.services.availability_aggregator import AvailabilityAggregator
from practice_scheduling.services.booking_service import BookingService
from practice_scheduling.services.conflict_detector import ConflictDetector
from practice_scheduling.services.recurrence_expander import RecurrenceExpander
from practice_scheduling.services.schedule_calendar import ScheduleCalendar
from practice_scheduling.services.slot_generator import SlotGenerator

__version__ = "0.1.0"
