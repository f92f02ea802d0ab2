from datetime import datetime
from typing import List, Optional, Sequence

from ..core.config import settings
from ..models.appointment import Appointment
from ..schemas.appointment import AppointmentRow, AppointmentTable


def sort_chronologically(appointments: Sequence[Appointment]) -> List[Appointment]:
    """Earliest first; appointments at the same time keep their stored order."""
    return sorted(appointments, key=lambda a: a.scheduled_at)


def truncate_notes(notes: Optional[str], length: int = settings.NOTES_PREVIEW_LENGTH) -> str:
    if not notes:
        return ""
    if len(notes) > length:
        return notes[:length] + "..."
    return notes


def format_scheduled_at(dt: datetime) -> str:
    return dt.strftime("%d/%m/%Y %H:%M")


def build_table(
    appointments: Sequence[Appointment],
    notes_length: int = settings.NOTES_PREVIEW_LENGTH,
    empty_message: str = settings.EMPTY_STATE_TEXT,
) -> AppointmentTable:
    """Turn the collection into display rows, sorted by date."""
    if not appointments:
        return AppointmentTable(rows=[], is_empty=True, empty_message=empty_message)

    rows = [
        AppointmentRow(
            number=position,
            appointment_id=appointment.appointment_id,
            scheduled_at=format_scheduled_at(appointment.scheduled_at),
            patient_name=appointment.full_name,
            national_id=appointment.national_id,
            phone=appointment.phone,
            notes=truncate_notes(appointment.notes, notes_length),
        )
        for position, appointment in enumerate(sort_chronologically(appointments), start=1)
    ]
    return AppointmentTable(rows=rows, is_empty=False)
