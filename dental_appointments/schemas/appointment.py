from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..models.appointment import Appointment


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 date-time into a naive local datetime, or None."""
    if not value or not value.strip():
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is not None:
        try:
            dt = dt.astimezone().replace(tzinfo=None)
        except (OverflowError, ValueError):
            # Shifting to local time would leave the datetime range
            return None
    return dt


def format_datetime(dt: datetime) -> str:
    """Format like a datetime-local input: YYYY-MM-DDTHH:MM, seconds only when set."""
    if dt.second or dt.microsecond:
        return dt.isoformat()
    return dt.isoformat(timespec="minutes")


class AppointmentForm(BaseModel):
    """Raw values collected from the appointment form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    appointment_id: Optional[str] = None
    scheduled_at: Optional[str] = None
    notes: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    national_id: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentForm":
        """Fill the form with a stored appointment, for editing."""
        return cls(
            appointment_id=appointment.appointment_id,
            scheduled_at=format_datetime(appointment.scheduled_at),
            notes=appointment.notes,
            first_name=appointment.first_name,
            last_name=appointment.last_name,
            national_id=appointment.national_id,
            phone=appointment.phone,
            date_of_birth=appointment.date_of_birth,
        )

    def to_appointment(self) -> Appointment:
        """Build the record to store. Only call on a form that passed validation."""
        scheduled_at = parse_datetime(self.scheduled_at)
        if scheduled_at is None:
            raise ValueError("scheduled_at is not a valid date-time")
        return Appointment(
            appointment_id=(self.appointment_id or "").strip(),
            scheduled_at=scheduled_at,
            notes=self.notes or "",
            first_name=(self.first_name or "").strip(),
            last_name=(self.last_name or "").strip(),
            national_id=(self.national_id or "").strip(),
            phone=(self.phone or "").strip(),
            date_of_birth=(self.date_of_birth or "").strip(),
        )


class AppointmentRow(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    number: int
    appointment_id: str
    scheduled_at: str
    patient_name: str
    national_id: str
    phone: str
    notes: str


class AppointmentTable(BaseModel):
    """What the view shows: sorted rows, or the empty-state text."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    rows: List[AppointmentRow] = []
    is_empty: bool = True
    empty_message: Optional[str] = None
