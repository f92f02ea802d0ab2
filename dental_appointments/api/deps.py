from fastapi import Depends

from ..core.config import settings
from ..core.storage import get_storage
from ..services.appointment_service import AppointmentService
from ..services.repository import AppointmentRepository

def get_repository(storage = Depends(get_storage)) -> AppointmentRepository:
    """Get the appointment repository bound to the configured storage key."""
    return AppointmentRepository(storage, key=settings.STORAGE_KEY)

def get_appointment_service(
    repository: AppointmentRepository = Depends(get_repository)
) -> AppointmentService:
    """Get the appointment service."""
    return AppointmentService(repository)
