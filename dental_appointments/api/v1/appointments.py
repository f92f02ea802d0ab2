from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from ...api.deps import get_appointment_service
from ...schemas.appointment import AppointmentForm, AppointmentTable
from ...services.appointment_service import AppointmentService, SaveResult
from ...services.listing import build_table

router = APIRouter(prefix="/appointments", tags=["Appointments"])

def _validation_failed(result: SaveResult) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation failed",
            "errors": result.validation.errors,
        }
    )

@router.get("/", response_model=AppointmentTable, response_model_by_alias=True)
async def list_appointments(
    service: AppointmentService = Depends(get_appointment_service)
):
    """List all appointments, earliest first."""
    return build_table(service.list_appointments())

@router.get("/{appointment_id}", response_model=AppointmentForm, response_model_by_alias=True)
async def get_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service)
):
    """Return an appointment in form shape, to edit it."""
    return AppointmentForm.from_appointment(service.get_appointment(appointment_id))

@router.post(
    "/",
    response_model=AppointmentTable,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_appointment(
    form: AppointmentForm,
    service: AppointmentService = Depends(get_appointment_service)
):
    """Book a new appointment. Any id in the body is ignored."""
    result = service.save(form.model_copy(update={"appointment_id": None}))
    if not result.saved:
        return _validation_failed(result)
    return build_table(result.appointments)

@router.put("/{appointment_id}", response_model=AppointmentTable, response_model_by_alias=True)
async def update_appointment(
    appointment_id: str,
    form: AppointmentForm,
    service: AppointmentService = Depends(get_appointment_service)
):
    """Replace every field of an appointment except its id."""
    result = service.save(form.model_copy(update={"appointment_id": appointment_id}))
    if not result.saved:
        return _validation_failed(result)
    return build_table(result.appointments)

@router.delete("/{appointment_id}", response_model=AppointmentTable, response_model_by_alias=True)
async def delete_appointment(
    appointment_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Delete an appointment. Unknown ids are ignored."""
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Deletion must be confirmed with confirm=true"
        )
    return build_table(service.delete(appointment_id))
