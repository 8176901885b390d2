"""Errors raised at the scheduling engine boundary.

Ordinary outcomes such as "nothing open" or "slot already taken" are returned
as values (empty lists, ``ScheduleConflict``, ``BookingResult``). Only input
that can never produce a meaningful answer is rejected with an exception.
"""


class SchedulingError(ValueError):
    """Base class for invalid scheduling input."""


class InvalidDurationError(SchedulingError):
    """Requested duration is not positive or cannot fit any working window."""

    def __init__(self, duration_minutes, reason: str = "must be greater than zero"):
        self.duration_minutes = duration_minutes
        super().__init__(f"Invalid duration {duration_minutes!r} minutes: {reason}")


class InvalidGranularityError(SchedulingError):
    """Slot granularity is not a positive number of minutes."""

    def __init__(self, granularity_minutes):
        self.granularity_minutes = granularity_minutes
        super().__init__(f"Invalid granularity {granularity_minutes!r}: must be greater than zero")


class UnknownWorkerError(SchedulingError):
    """A worker id was requested that is not part of the supplied roster."""

    def __init__(self, worker_id: str):
        self.worker_id = worker_id
        super().__init__(f"Unknown worker id: {worker_id}")


class InvalidRecurrenceError(SchedulingError):
    """Recurrence pattern is internally inconsistent."""


class ConfigurationError(SchedulingError):
    """An environment setting could not be parsed."""
