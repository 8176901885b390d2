"""Appointment persistence port and an in-memory implementation."""

from abc import ABC, abstractmethod
from dataclasses import replace
from threading import Lock
from typing import Iterable, Optional

from practice_scheduling.models.entities import Appointment, AppointmentStatus


class AppointmentStore(ABC):
    """Interface the booking service uses to read and write appointments."""

    @abstractmethod
    def appointments_for(self, worker_id: str) -> list[Appointment]:
        """Every appointment of ``worker_id``, in any status."""

    @abstractmethod
    def get(self, appointment_id: str) -> Optional[Appointment]:
        """Stored record for ``appointment_id``, or None for unknown ids."""

    @abstractmethod
    def add(self, appointment: Appointment) -> Appointment:
        """Persist a new appointment and return the stored record."""

    @abstractmethod
    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Optional[Appointment]:
        """Change an appointment's status; returns None for unknown ids."""


class InMemoryAppointmentStore(AppointmentStore):
    """List-backed store for tests and embedding without a database."""

    def __init__(self, appointments: Iterable[Appointment] = ()):
        """Initialize with an optional seed snapshot."""
        self._appointments: list[Appointment] = list(appointments)
        self._lock = Lock()

    def appointments_for(self, worker_id: str) -> list[Appointment]:
        with self._lock:
            return [a for a in self._appointments if a.worker_id == worker_id]

    def all(self) -> list[Appointment]:
        with self._lock:
            return list(self._appointments)

    def get(self, appointment_id: str) -> Optional[Appointment]:
        with self._lock:
            for appointment in self._appointments:
                if appointment.id == appointment_id:
                    return appointment
        return None

    def add(self, appointment: Appointment) -> Appointment:
        with self._lock:
            self._appointments.append(appointment)
        return appointment

    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Optional[Appointment]:
        with self._lock:
            for i, appointment in enumerate(self._appointments):
                if appointment.id == appointment_id:
                    updated = replace(appointment, status=status)
                    self._appointments[i] = updated
                    return updated
        return None
