from datetime import datetime
from pydantic import BaseModel


class Appointment(BaseModel):
    """A scheduled patient visit."""

    appointment_id: str = ""
    scheduled_at: datetime
    notes: str = ""

    # Patient
    first_name: str
    last_name: str
    national_id: str
    phone: str
    date_of_birth: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Appointment(id={self.appointment_id}, scheduled_at='{self.scheduled_at}', patient='{self.full_name}')>"
