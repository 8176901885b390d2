"""
Tests for models/entities.py

Tests working hours, staff capability, appointment status lifecycle and
recurrence pattern validation.
"""

import unittest
from datetime import date, time

from factories import MONDAY, at, utc

from practice_scheduling.exceptions import InvalidRecurrenceError
from practice_scheduling.models.entities import (
    Appointment,
    AppointmentStatus,
    BookingOutcome,
    BookingResult,
    BreakPeriod,
    DayOfWeek,
    RecurrenceEndType,
    RecurrenceFrequency,
    RecurrencePattern,
    RecurringBookingResult,
    ScheduleConflict,
    Service,
    StaffMember,
    TimeOffPeriod,
    TimeSlot,
    WorkingHours,
)


class TestWorkingHours(unittest.TestCase):

    def test_total_minutes(self):
        self.assertEqual(WorkingHours(start=time(9, 0), end=time(17, 30)).total_minutes, 510)

    def test_closed_day_has_no_minutes(self):
        hours = WorkingHours.closed()
        self.assertFalse(hours.is_working)
        self.assertEqual(hours.total_minutes, 0)


class TestDayOfWeek(unittest.TestCase):

    def test_of_matches_weekday(self):
        self.assertEqual(DayOfWeek.of(MONDAY), DayOfWeek.MONDAY)
        self.assertEqual(DayOfWeek.of(date(2026, 1, 25)), DayOfWeek.SUNDAY)

    def test_display_names(self):
        self.assertEqual(DayOfWeek.WEDNESDAY.display_name, "Wednesday")
        self.assertEqual(DayOfWeek.WEDNESDAY.short_name, "Wed")


class TestStaffMember(unittest.TestCase):

    def test_default_schedule_is_weekdays_nine_to_five(self):
        worker = StaffMember.with_default_schedule("w1", "Dana")
        self.assertEqual(len(worker.weekly_hours), 7)
        self.assertTrue(worker.hours_for(MONDAY).is_working)
        self.assertEqual(worker.hours_for(MONDAY).start, time(9, 0))
        self.assertEqual(worker.hours_for(MONDAY).end, time(17, 0))
        self.assertFalse(worker.hours_for(date(2026, 1, 24)).is_working)

    def test_missing_weekday_has_no_hours(self):
        worker = StaffMember(id="w1", name="Dana", weekly_hours={DayOfWeek.MONDAY: WorkingHours()})
        self.assertIsNone(worker.hours_for(date(2026, 1, 20)))

    def test_can_perform_without_restrictions(self):
        worker = StaffMember(id="w1", name="Dana")
        self.assertTrue(worker.can_perform(Service("Swedish", 60)))

    def test_can_perform_only_listed_services(self):
        worker = StaffMember(id="w1", name="Dana", services=frozenset({"Hot Stone"}))
        self.assertTrue(worker.can_perform(Service("Hot Stone", 90)))
        self.assertFalse(worker.can_perform(Service("Swedish", 60)))

    def test_non_provider_cannot_perform(self):
        worker = StaffMember(id="r1", name="Front Desk", can_provide_services=False)
        self.assertFalse(worker.can_perform(Service("Swedish", 60)))
        self.assertFalse(worker.is_bookable)


class TestBreakAndTimeOff(unittest.TestCase):

    def test_break_active_days(self):
        lunch = BreakPeriod(days_of_week={DayOfWeek.MONDAY}, start=time(12, 0), duration_minutes=60)
        self.assertTrue(lunch.is_active(MONDAY))
        self.assertFalse(lunch.is_active(date(2026, 1, 20)))
        self.assertEqual(lunch.window_on(MONDAY), (at(12), at(13)))

    def test_time_off_overlap_is_half_open(self):
        period = TimeOffPeriod(start=at(12), end=at(14))
        self.assertTrue(period.overlaps(at(13), at(15)))
        self.assertFalse(period.overlaps(at(14), at(15)))
        self.assertFalse(period.overlaps(at(11), at(12)))

    def test_time_off_duration_in_days(self):
        period = TimeOffPeriod(start=at(0), end=at(23, day=date(2026, 1, 21)))
        self.assertEqual(period.duration_in_days, 3)


class TestAppointmentStatus(unittest.TestCase):

    def test_cancelled_and_no_show_free_time(self):
        self.assertFalse(AppointmentStatus.CANCELLED.blocks_time)
        self.assertFalse(AppointmentStatus.NO_SHOW.blocks_time)
        for status in (
            AppointmentStatus.SCHEDULED,
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.CHECKED_IN,
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.COMPLETED,
            AppointmentStatus.RESCHEDULED,
        ):
            self.assertTrue(status.blocks_time, status)

    def test_forward_path(self):
        path = [
            AppointmentStatus.SCHEDULED,
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.CHECKED_IN,
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.COMPLETED,
        ]
        for current, following in zip(path, path[1:]):
            self.assertTrue(current.can_transition_to(following))
        self.assertFalse(AppointmentStatus.SCHEDULED.can_transition_to(AppointmentStatus.COMPLETED))

    def test_side_branches_from_pre_completion_states(self):
        for status in (AppointmentStatus.SCHEDULED, AppointmentStatus.IN_PROGRESS):
            self.assertTrue(status.can_transition_to(AppointmentStatus.CANCELLED))
            self.assertTrue(status.can_transition_to(AppointmentStatus.NO_SHOW))
            self.assertTrue(status.can_transition_to(AppointmentStatus.RESCHEDULED))

    def test_terminal_states_have_no_transitions(self):
        for status in (
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.RESCHEDULED,
        ):
            self.assertTrue(status.is_terminal)
            self.assertFalse(status.can_transition_to(AppointmentStatus.SCHEDULED))

    def test_appointment_end_and_cancellation(self):
        appointment = Appointment(worker_id="w1", start=at(10), duration_minutes=90)
        self.assertEqual(appointment.end, at(11, 30))
        self.assertTrue(appointment.can_be_cancelled)
        appointment.status = AppointmentStatus.COMPLETED
        self.assertFalse(appointment.can_be_cancelled)

    def test_appointments_get_unique_ids(self):
        first = Appointment(worker_id="w1", start=at(10), duration_minutes=60)
        second = Appointment(worker_id="w1", start=at(10), duration_minutes=60)
        self.assertNotEqual(first.id, second.id)


class TestTimeSlot(unittest.TestCase):

    def test_end_is_derived(self):
        slot = TimeSlot(start=utc(9), duration_minutes=45, worker_id="w1")
        self.assertEqual(slot.end, utc(9, 45))

    def test_overlaps(self):
        slot = TimeSlot(start=utc(9), duration_minutes=60)
        self.assertTrue(slot.overlaps(utc(9, 30), utc(10, 30)))
        self.assertFalse(slot.overlaps(utc(10), utc(11)))


class TestRecurrencePattern(unittest.TestCase):

    def test_interval_must_be_positive(self):
        with self.assertRaises(InvalidRecurrenceError):
            RecurrencePattern(frequency=RecurrenceFrequency.WEEKLY, interval=0)

    def test_on_date_requires_end_date(self):
        with self.assertRaises(InvalidRecurrenceError):
            RecurrencePattern(frequency=RecurrenceFrequency.DAILY, end_type=RecurrenceEndType.ON_DATE)

    def test_after_occurrences_requires_count(self):
        with self.assertRaises(InvalidRecurrenceError):
            RecurrencePattern(
                frequency=RecurrenceFrequency.DAILY,
                end_type=RecurrenceEndType.AFTER_OCCURRENCES,
                occurrence_count=0,
            )

    def test_days_of_week_normalised(self):
        pattern = RecurrencePattern(frequency=RecurrenceFrequency.WEEKLY, days_of_week=[0, 2])
        self.assertEqual(pattern.days_of_week, frozenset({DayOfWeek.MONDAY, DayOfWeek.WEDNESDAY}))


class TestRecurringBookingResult(unittest.TestCase):

    def test_views(self):
        booked = Appointment(worker_id="w1", start=at(10), duration_minutes=60)
        blocking = Appointment(worker_id="w1", start=at(10, day=date(2026, 1, 26)), duration_minutes=60)
        conflict = ScheduleConflict(
            worker_id="w1",
            requested=TimeSlot(start=blocking.start, duration_minutes=60, worker_id="w1"),
            conflicting_appointment=blocking,
        )
        result = RecurringBookingResult(results=[
            BookingResult(BookingOutcome.BOOKED, TimeSlot(at(10), 60, "w1"), appointment=booked),
            BookingResult(BookingOutcome.CONFLICT, conflict.requested, conflict=conflict),
        ])
        self.assertEqual(result.booked, [booked])
        self.assertEqual(result.conflicts, [conflict])
        self.assertEqual(len(result.rejected), 1)


if __name__ == "__main__":
    unittest.main()
