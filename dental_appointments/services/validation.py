"""
Appointment validation.

Checks a candidate from the form against the clinic's scheduling rules and
against the appointments already booked. Every rule runs; nothing stops at
the first failure. ``ValidationResult.errors`` keeps one message per field,
the one from the last rule that failed for it, and ``violations`` keeps them
all.
"""
import re
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from ..core.config import settings
from ..models.appointment import Appointment
from ..schemas.appointment import AppointmentForm, parse_datetime

PHONE_RE = re.compile(r"^[0-9]{9}$")
NATIONAL_ID_RE = re.compile(r"^[0-9]{8}[A-Za-z]$")

MESSAGES = {
    "scheduledAt.required": "Date and time are required.",
    "scheduledAt.future": "The appointment must be in the future.",
    "scheduledAt.weekday": "Appointments can only be booked Monday to Friday.",
    "scheduledAt.business_hours": "Opening hours are {open:02d}:00 to {close:02d}:{last:02d}.",
    "scheduledAt.last_slot": "The last appointment of the day is at {close:02d}:{last:02d}.",
    "scheduledAt.slot": "Appointments can only start every {slot} minutes (e.g. 10:00 or 10:30).",
    "scheduledAt.conflict": "There is already an appointment at that date and time.",
    "firstName.required": "First name is required.",
    "lastName.required": "Last name is required.",
    "phone.format": "Phone must contain 9 digits.",
    "nationalId.format": "National ID must be 8 digits followed by 1 letter.",
    "dateOfBirth.required": "Date of birth is required.",
}


class RuleViolation(BaseModel):
    field: str
    rule: str
    message: str


class ValidationResult(BaseModel):
    violations: List[RuleViolation] = []

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def errors(self) -> Dict[str, str]:
        """Field name to message; a later violation overwrites an earlier one."""
        errors = {}
        for violation in self.violations:
            errors[violation.field] = violation.message
        return errors

    def failed_rules(self, field: str) -> List[str]:
        return [v.rule for v in self.violations if v.field == field]


class AppointmentValidator:
    """Stateless rule engine for appointment candidates."""

    def __init__(
        self,
        open_hour: int = settings.CLINIC_OPEN_HOUR,
        close_hour: int = settings.CLINIC_CLOSE_HOUR,
        last_slot_minute: int = settings.LAST_SLOT_MINUTE,
        slot_minutes: int = settings.SLOT_MINUTES,
    ):
        self.open_hour = open_hour
        self.close_hour = close_hour
        self.last_slot_minute = last_slot_minute
        self.slot_minutes = slot_minutes

    def validate(
        self,
        candidate: AppointmentForm,
        existing_appointments: Sequence[Appointment],
        ignore_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """Validate a candidate; ``ignore_id`` excludes the record being edited from conflicts."""
        violations: List[RuleViolation] = []
        now = now or datetime.now()

        def fail(field: str, rule: str, message_key: Optional[str] = None):
            template = MESSAGES[message_key or f"{field}.{rule}"]
            violations.append(RuleViolation(
                field=field,
                rule=rule,
                message=template.format(
                    open=self.open_hour,
                    close=self.close_hour,
                    last=self.last_slot_minute,
                    slot=self.slot_minutes,
                ),
            ))

        # Date and time
        scheduled_at = parse_datetime(candidate.scheduled_at)
        if scheduled_at is None:
            fail("scheduledAt", "required")
        else:
            if scheduled_at <= now:
                fail("scheduledAt", "future")

            # Monday=0 .. Sunday=6
            if scheduled_at.weekday() >= 5:
                fail("scheduledAt", "weekday")

            if scheduled_at.hour < self.open_hour or scheduled_at.hour > self.close_hour:
                fail("scheduledAt", "business_hours")
            elif scheduled_at.hour == self.close_hour and scheduled_at.minute > self.last_slot_minute:
                fail("scheduledAt", "business_hours", "scheduledAt.last_slot")

            if scheduled_at.minute % self.slot_minutes != 0:
                fail("scheduledAt", "slot")

            if self._conflicts(scheduled_at, existing_appointments, ignore_id):
                fail("scheduledAt", "conflict")

        # Patient
        if not (candidate.first_name or "").strip():
            fail("firstName", "required")
        if not (candidate.last_name or "").strip():
            fail("lastName", "required")

        if not candidate.phone or not PHONE_RE.fullmatch(candidate.phone):
            fail("phone", "format")

        if not candidate.national_id or not NATIONAL_ID_RE.fullmatch(candidate.national_id):
            fail("nationalId", "format")

        if not (candidate.date_of_birth or "").strip():
            fail("dateOfBirth", "required")

        return ValidationResult(violations=violations)

    @staticmethod
    def _conflicts(
        scheduled_at: datetime,
        existing_appointments: Sequence[Appointment],
        ignore_id: Optional[str],
    ) -> bool:
        for appointment in existing_appointments:
            if ignore_id and appointment.appointment_id == ignore_id:
                continue
            if appointment.scheduled_at == scheduled_at:
                return True
        return False


def validate(
    candidate: AppointmentForm,
    existing_appointments: Sequence[Appointment],
    ignore_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ValidationResult:
    """Validate with the configured opening hours."""
    return AppointmentValidator().validate(candidate, existing_appointments, ignore_id, now)
