import json
import logging
import time
from typing import List, Sequence

from pydantic import ValidationError

from ..core.config import settings
from ..core.storage import StorageReadError, StorageWriteError
from ..models.appointment import Appointment
from ..schemas.appointment import format_datetime, parse_datetime

logger = logging.getLogger(__name__)

# Model field -> key in the persisted records
STORED_KEYS = {
    "appointment_id": "citaId",
    "scheduled_at": "fechaCita",
    "notes": "observaciones",
    "first_name": "nombre",
    "last_name": "apellidos",
    "national_id": "dni",
    "phone": "telefono",
    "date_of_birth": "fechaNacimiento",
}


class AppointmentNotFound(Exception):
    def __init__(self, appointment_id: str):
        super().__init__(f"Appointment {appointment_id} not found")
        self.appointment_id = appointment_id


def to_record(appointment: Appointment) -> dict:
    record = {}
    for field, key in STORED_KEYS.items():
        value = getattr(appointment, field)
        if field == "scheduled_at":
            value = format_datetime(value)
        record[key] = value
    return record


def from_record(record: dict) -> Appointment:
    if not isinstance(record, dict):
        raise TypeError(f"Expected an object, got {type(record).__name__}")
    values = {field: record[key] for field, key in STORED_KEYS.items() if record.get(key) is not None}
    if isinstance(values.get("scheduled_at"), str):
        scheduled_at = parse_datetime(values["scheduled_at"])
        if scheduled_at is None:
            raise ValueError(f"Invalid date-time {values['scheduled_at']!r}")
        values["scheduled_at"] = scheduled_at
    return Appointment(**values)


class AppointmentRepository:
    """The appointment collection, stored as one JSON array under a single key."""

    def __init__(self, storage, key: str = settings.STORAGE_KEY):
        self.storage = storage
        self.key = key

    def load_all(self) -> List[Appointment]:
        """Return the stored appointments, or an empty list if there are none or they can't be read."""
        try:
            raw = self.storage.get(self.key)
        except StorageReadError as e:
            logger.error(f"Error reading appointments from storage: {str(e)}")
            return []

        if not raw:
            return []

        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise TypeError(f"Expected a list, got {type(records).__name__}")
            return [from_record(record) for record in records]
        except (ValueError, TypeError, ValidationError) as e:
            logger.error(f"Stored appointments are corrupt, starting empty: {str(e)}")
            return []

    def save_all(self, appointments: Sequence[Appointment]) -> None:
        """Replace the stored collection. Raises StorageWriteError if the write is rejected."""
        payload = json.dumps([to_record(a) for a in appointments], ensure_ascii=False)
        try:
            self.storage.set(self.key, payload)
        except StorageWriteError as e:
            logger.error(f"Error saving appointments to storage: {str(e)}")
            raise

    def get(self, appointment_id: str) -> Appointment:
        for appointment in self.load_all():
            if appointment.appointment_id == appointment_id:
                return appointment
        raise AppointmentNotFound(appointment_id)

    def upsert(self, appointment: Appointment) -> List[Appointment]:
        """Insert a new appointment (no id) or replace the one with the same id."""
        appointments = self.load_all()

        if appointment.appointment_id:
            for index, existing in enumerate(appointments):
                if existing.appointment_id == appointment.appointment_id:
                    appointments[index] = appointment.model_copy(
                        update={"appointment_id": existing.appointment_id}
                    )
                    break
            else:
                raise AppointmentNotFound(appointment.appointment_id)
        else:
            new_id = self._new_id({a.appointment_id for a in appointments})
            appointments.append(appointment.model_copy(update={"appointment_id": new_id}))
            logger.info(f"Created appointment {new_id}")

        self.save_all(appointments)
        return appointments

    def remove(self, appointment_id: str) -> List[Appointment]:
        """Delete by id. Deleting an id that isn't there is not an error."""
        appointments = self.load_all()
        remaining = [a for a in appointments if a.appointment_id != appointment_id]
        if len(remaining) == len(appointments):
            logger.info(f"Appointment {appointment_id} not found, nothing to delete")
        else:
            logger.info(f"Deleted appointment {appointment_id}")

        self.save_all(remaining)
        return remaining

    @staticmethod
    def _new_id(taken) -> str:
        # Millisecond timestamp, bumped until it is unused
        candidate = int(time.time() * 1000)
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)
