import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from ..models.appointment import Appointment
from ..schemas.appointment import AppointmentForm
from .listing import sort_chronologically
from .repository import AppointmentNotFound, AppointmentRepository
from .validation import AppointmentValidator, ValidationResult

logger = logging.getLogger(__name__)


class SaveResult(BaseModel):
    validation: ValidationResult
    appointments: List[Appointment] = []

    @property
    def saved(self) -> bool:
        return self.validation.is_valid


class AppointmentService:
    def __init__(
        self,
        repository: AppointmentRepository,
        validator: Optional[AppointmentValidator] = None,
    ):
        self.repository = repository
        self.validator = validator or AppointmentValidator()

    def list_appointments(self) -> List[Appointment]:
        """Return all appointments, earliest first."""
        return sort_chronologically(self.repository.load_all())

    def get_appointment(self, appointment_id: str) -> Appointment:
        """Return one appointment, to load it into the edit form."""
        return self.repository.get(appointment_id)

    def save(self, form: AppointmentForm, now: Optional[datetime] = None) -> SaveResult:
        """Create (form without id) or update an appointment.

        Invalid forms are returned with their errors and nothing is written.
        Raises AppointmentNotFound when editing an id that doesn't exist and
        StorageWriteError when the collection can't be persisted.
        """
        appointments = self.repository.load_all()
        editing_id = (form.appointment_id or "").strip() or None

        if editing_id and not any(a.appointment_id == editing_id for a in appointments):
            raise AppointmentNotFound(editing_id)

        result = self.validator.validate(form, appointments, ignore_id=editing_id, now=now)
        if not result.is_valid:
            logger.info(f"Appointment rejected: {', '.join(sorted(result.errors))}")
            return SaveResult(validation=result, appointments=sort_chronologically(appointments))

        updated = self.repository.upsert(form.to_appointment())
        return SaveResult(validation=result, appointments=sort_chronologically(updated))

    def delete(self, appointment_id: str) -> List[Appointment]:
        """Delete an appointment; unknown ids leave the collection as it was."""
        return sort_chronologically(self.repository.remove(appointment_id))
