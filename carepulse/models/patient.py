from sqlalchemy import Column, String, ForeignKey, DateTime, Boolean, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base
from .user import new_id

class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id"), unique=True, nullable=False, index=True)

    # Personal information
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    birth_date = Column(DateTime, nullable=True)
    gender = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    occupation = Column(String(500), nullable=True)

    # Emergency contact
    emergency_contact_name = Column(String(100), nullable=True)
    emergency_contact_number = Column(String(20), nullable=True)

    # Medical information
    primary_physician = Column(String(100), nullable=True)
    insurance_provider = Column(String(100), nullable=True)
    insurance_policy_number = Column(String(100), nullable=True)
    allergies = Column(Text, nullable=True)
    current_medication = Column(Text, nullable=True)
    family_medical_history = Column(Text, nullable=True)
    past_medical_history = Column(Text, nullable=True)

    # Identification
    identification_type = Column(String(100), nullable=True)
    identification_number = Column(String(100), nullable=True)
    identification_document_id = Column(String(64), nullable=True)
    identification_document_path = Column(String(500), nullable=True)

    # Consent
    treatment_consent = Column(Boolean, default=False)
    disclosure_consent = Column(Boolean, default=False)
    privacy_consent = Column(Boolean, default=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="patient")
    appointments = relationship("Appointment", back_populates="patient")

    def __repr__(self):
        return f"<Patient(id={self.id}, name='{self.name}')>"
