"""
Tests for services/conflict_detector.py

Tests overlap detection, status filtering, exclusions and buffer policies.
"""

import unittest
from datetime import date

from factories import at, make_settings, make_worker

from practice_scheduling.models.entities import (
    Appointment,
    AppointmentStatus,
    BufferPolicy,
    TimeOffPeriod,
)
from practice_scheduling.services.conflict_detector import ConflictDetector


def appointment(hour, minute=0, duration=60, worker_id="w1", status=AppointmentStatus.SCHEDULED, day=None):
    kwargs = {"day": day} if day else {}
    return Appointment(worker_id=worker_id, start=at(hour, minute, **kwargs), duration_minutes=duration, status=status)


class TestConflictsWith(unittest.TestCase):

    def setUp(self):
        self.detector = ConflictDetector(make_settings())
        self.worker = make_worker()
        self.existing = appointment(10)

    def test_overlap_rejected(self):
        conflict = self.detector.conflicts_with(self.worker, at(9, 30), 60, [self.existing])
        self.assertIsNotNone(conflict)
        self.assertEqual(conflict.worker_id, "w1")
        self.assertIs(conflict.conflicting_appointment, self.existing)
        self.assertEqual(conflict.requested.duration_minutes, 60)
        self.assertEqual(conflict.requested.end.hour, 10)
        self.assertEqual(conflict.requested.end.minute, 30)

    def test_adjacent_windows_do_not_conflict(self):
        self.assertIsNone(self.detector.conflicts_with(self.worker, at(11), 60, [self.existing]))
        self.assertIsNone(self.detector.conflicts_with(self.worker, at(9), 60, [self.existing]))

    def test_contained_window_conflicts(self):
        self.assertIsNotNone(self.detector.conflicts_with(self.worker, at(10, 15), 15, [self.existing]))

    def test_cancelled_and_no_show_ignored(self):
        appointments = [
            appointment(10, status=AppointmentStatus.CANCELLED),
            appointment(10, status=AppointmentStatus.NO_SHOW),
        ]
        self.assertIsNone(self.detector.conflicts_with(self.worker, at(10), 60, appointments))

    def test_completed_still_blocks(self):
        appointments = [appointment(10, status=AppointmentStatus.COMPLETED)]
        self.assertIsNotNone(self.detector.conflicts_with(self.worker, at(10), 60, appointments))

    def test_other_workers_ignored(self):
        appointments = [appointment(10, worker_id="w2")]
        self.assertIsNone(self.detector.conflicts_with(self.worker, at(10), 60, appointments))

    def test_excluding_appointment_being_rescheduled(self):
        self.assertIsNone(
            self.detector.conflicts_with(self.worker, at(10, 30), 60, [self.existing], excluding_id=self.existing.id)
        )

    def test_returns_first_conflict_in_snapshot_order(self):
        later = appointment(11)
        conflict = self.detector.conflicts_with(self.worker, at(10), 120, [later, self.existing])
        self.assertIs(conflict.conflicting_appointment, later)

    def test_different_day_does_not_conflict(self):
        other_day = appointment(10, day=date(2026, 1, 20))
        self.assertIsNone(self.detector.conflicts_with(self.worker, at(10), 60, [other_day]))


class TestBufferPolicies(unittest.TestCase):

    def setUp(self):
        self.worker = make_worker(buffer_minutes=15)
        self.existing = [appointment(10)]

    def _conflicts(self, policy, hour, minute, duration):
        detector = ConflictDetector(make_settings(), buffer_policy=policy)
        return detector.conflicts_with(self.worker, at(hour, minute), duration, self.existing) is not None

    def test_default_policy_is_symmetric(self):
        detector = ConflictDetector(make_settings())
        self.assertEqual(detector.buffer_policy, BufferPolicy.BOTH)

    def test_policy_from_settings(self):
        detector = ConflictDetector(make_settings(buffer_policy=BufferPolicy.AFTER))
        self.assertEqual(detector.buffer_policy, BufferPolicy.AFTER)

    def test_both_sides(self):
        self.assertTrue(self._conflicts(BufferPolicy.BOTH, 9, 15, 45))
        self.assertFalse(self._conflicts(BufferPolicy.BOTH, 9, 0, 45))
        self.assertTrue(self._conflicts(BufferPolicy.BOTH, 11, 0, 30))
        self.assertFalse(self._conflicts(BufferPolicy.BOTH, 11, 15, 30))

    def test_before_only(self):
        self.assertTrue(self._conflicts(BufferPolicy.BEFORE, 9, 15, 45))
        self.assertFalse(self._conflicts(BufferPolicy.BEFORE, 11, 0, 30))

    def test_after_only(self):
        self.assertFalse(self._conflicts(BufferPolicy.AFTER, 9, 15, 45))
        self.assertTrue(self._conflicts(BufferPolicy.AFTER, 11, 0, 30))

    def test_no_buffer(self):
        self.assertFalse(self._conflicts(BufferPolicy.NONE, 9, 15, 45))
        self.assertFalse(self._conflicts(BufferPolicy.NONE, 11, 0, 30))


class TestTimeOffConflicts(unittest.TestCase):

    def test_appointments_inside_requested_time_off(self):
        detector = ConflictDetector(make_settings())
        worker = make_worker()
        inside = appointment(14)
        straddling = appointment(11, 30)
        outside = appointment(9)
        cancelled = appointment(15, status=AppointmentStatus.CANCELLED)
        time_off = TimeOffPeriod(start=at(12), end=at(17))

        result = detector.time_off_conflicts(worker, time_off, [inside, outside, cancelled, straddling])

        self.assertEqual(result, [straddling, inside])


if __name__ == "__main__":
    unittest.main()
