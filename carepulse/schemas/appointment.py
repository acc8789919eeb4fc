from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .patient import CamelModel


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


class AppointmentForm(CamelModel):
    """Patient-facing request for a new appointment."""
    primary_physician: str
    schedule: datetime
    reason: str = Field(..., min_length=2, max_length=500)
    note: Optional[str] = None

    @field_validator("primary_physician", mode="before")
    @classmethod
    def physician_selected(cls, value):
        if not value or len(str(value)) < 2:
            raise ValueError("Select at least one doctor")
        return value


class ScheduleAppointment(CamelModel):
    """Admin confirmation; physician and time may be changed when scheduling."""
    primary_physician: str = Field(..., min_length=2)
    schedule: datetime
    reason: Optional[str] = None
    note: Optional[str] = None


class CancelAppointment(CamelModel):
    cancellation_reason: str = Field(..., min_length=2, max_length=500)


class AppointmentRecord(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    user_id: str
    patient_id: str
    primary_physician: str
    schedule: datetime
    reason: str
    note: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.PENDING


class AppointmentResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    patient_id: str
    patient_name: Optional[str] = None
    primary_physician: str
    schedule: datetime
    reason: Optional[str] = None
    note: Optional[str] = None
    status: AppointmentStatus
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class AppointmentListResponse(CamelModel):
    total_count: int
    scheduled_count: int
    pending_count: int
    cancelled_count: int
    documents: List[AppointmentResponse]
