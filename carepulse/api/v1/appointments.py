from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_admin_token
from ...services.appointment_service import AppointmentService
from ...schemas.appointment import (
    AppointmentListResponse, AppointmentResponse,
    CancelAppointment, ScheduleAppointment
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.get("", response_model=AppointmentListResponse, dependencies=[Depends(get_admin_token)])
async def list_recent_appointments(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db)
):
    """List recent appointments with status counts (admin only)."""
    return AppointmentService(db).get_recent_appointment_list(limit=limit)

@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    db: Session = Depends(get_db)
):
    """Get an appointment by id."""
    return AppointmentResponse.model_validate(AppointmentService(db).get_appointment(appointment_id))

@router.post("/{appointment_id}/schedule", response_model=AppointmentResponse,
             dependencies=[Depends(get_admin_token)])
async def schedule_appointment(
    appointment_id: str,
    data: ScheduleAppointment,
    db: Session = Depends(get_db)
):
    """Confirm an appointment and notify the patient (admin only)."""
    appointment = await AppointmentService(db).schedule_appointment(appointment_id, data)
    return AppointmentResponse.model_validate(appointment)

@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse,
             dependencies=[Depends(get_admin_token)])
async def cancel_appointment(
    appointment_id: str,
    data: CancelAppointment,
    db: Session = Depends(get_db)
):
    """Cancel an appointment and notify the patient (admin only)."""
    appointment = await AppointmentService(db).cancel_appointment(appointment_id, data)
    return AppointmentResponse.model_validate(appointment)
