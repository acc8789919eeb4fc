from sqlalchemy import Column, String, ForeignKey, DateTime, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..schemas.appointment import AppointmentStatus
from .user import new_id

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(32), primary_key=True, default=new_id)

    # Relationships
    patient_id = Column(String(32), ForeignKey("patients.id"), nullable=False)
    user_id = Column(String(32), nullable=False, index=True)

    # Appointment details
    primary_physician = Column(String(100), nullable=False)
    schedule = Column(DateTime, nullable=False, index=True)
    status = Column(SQLEnum(AppointmentStatus), default=AppointmentStatus.PENDING, nullable=False)
    reason = Column(Text, nullable=True)
    note = Column(Text, nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    # Tracking
    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="appointments")

    @property
    def patient_name(self):
        return self.patient.name if self.patient else None

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, physician='{self.primary_physician}', schedule='{self.schedule}')>"
