from sqlalchemy.orm import Session, joinedload
from fastapi import HTTPException, status
from typing import Optional
import logging

from ..models.appointment import Appointment
from ..models.patient import Patient
from ..schemas.appointment import (
    AppointmentListResponse, AppointmentRecord, AppointmentResponse,
    AppointmentStatus, CancelAppointment, ScheduleAppointment
)
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

def format_schedule(value) -> str:
    """Render an appointment time the way notifications and pages show it."""
    return value.strftime("%b %d, %Y, %I:%M %p")

class AppointmentService:
    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier or NotificationService()

    def create_appointment(self, record: AppointmentRecord) -> Appointment:
        patient = self.db.query(Patient).filter(Patient.id == record.patient_id).first()
        if not patient or patient.user_id != record.user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient not found"
            )

        appointment = Appointment(**record.model_dump())
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Created appointment {appointment.id} for patient {record.patient_id}")
        return appointment

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Appointment not found"
            )
        return appointment

    def get_recent_appointment_list(self, limit: int = 100) -> AppointmentListResponse:
        """Most recent appointments first, with counts per status."""
        appointments = (
            self.db.query(Appointment)
            .options(joinedload(Appointment.patient))
            .order_by(Appointment.created_at.desc(), Appointment.schedule.desc())
            .limit(limit)
            .all()
        )

        counts = {appointment_status: 0 for appointment_status in AppointmentStatus}
        for appointment in appointments:
            counts[appointment.status] += 1

        return AppointmentListResponse(
            total_count=len(appointments),
            scheduled_count=counts[AppointmentStatus.SCHEDULED],
            pending_count=counts[AppointmentStatus.PENDING],
            cancelled_count=counts[AppointmentStatus.CANCELLED],
            documents=[AppointmentResponse.model_validate(a) for a in appointments],
        )

    async def schedule_appointment(self, appointment_id: str, data: ScheduleAppointment) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if appointment.status == AppointmentStatus.CANCELLED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cancelled appointments cannot be scheduled"
            )

        appointment.primary_physician = data.primary_physician
        appointment.schedule = data.schedule
        if data.reason:
            appointment.reason = data.reason
        if data.note is not None:
            appointment.note = data.note
        appointment.status = AppointmentStatus.SCHEDULED
        self.db.commit()
        self.db.refresh(appointment)

        await self._notify(
            appointment,
            f"Greetings from CarePulse. Your appointment is confirmed for "
            f"{format_schedule(appointment.schedule)} with Dr. {appointment.primary_physician}",
        )
        return appointment

    async def cancel_appointment(self, appointment_id: str, data: CancelAppointment) -> Appointment:
        appointment = self.get_appointment(appointment_id)

        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancellation_reason = data.cancellation_reason
        self.db.commit()
        self.db.refresh(appointment)

        await self._notify(
            appointment,
            f"We regret to inform that your appointment for "
            f"{format_schedule(appointment.schedule)} is cancelled. "
            f"Reason: {appointment.cancellation_reason}",
        )
        return appointment

    async def _notify(self, appointment: Appointment, content: str) -> None:
        phone = appointment.patient.phone if appointment.patient else None
        if not phone:
            logger.warning(f"No phone number for appointment {appointment.id}, skipping SMS")
            return
        await self.notifier.send_sms(appointment.user_id, phone, content)
