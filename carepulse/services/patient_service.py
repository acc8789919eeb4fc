from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import Optional
import logging

from ..models.user import User
from ..models.patient import Patient
from ..schemas.patient import UserForm, PatientRecord
from .storage import FileStorage

logger = logging.getLogger(__name__)

class PatientService:
    def __init__(self, db: Session, storage: Optional[FileStorage] = None):
        self.db = db
        self.storage = storage or FileStorage()

    def create_user(self, user_data: UserForm) -> User:
        """Create a user, or return the existing one registered with this email."""
        existing_user = self.db.query(User).filter(
            User.email == user_data.email
        ).first()

        if existing_user:
            logger.info(f"User {existing_user.id} already exists, reusing it")
            return existing_user

        new_user = User(
            name=user_data.name,
            email=user_data.email,
            phone=user_data.phone,
        )

        self.db.add(new_user)
        self.db.commit()
        self.db.refresh(new_user)

        return new_user

    def get_user(self, user_id: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        return user

    def register_patient(self, record: PatientRecord) -> Patient:
        """Persist a patient record, storing the identification document first."""
        self.get_user(record.user_id)

        existing = self.db.query(Patient).filter(Patient.user_id == record.user_id).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Patient already registered for this user"
            )

        document_id = None
        document_path = None
        if record.identification_document is not None:
            document_id, path = self.storage.save_document(record.identification_document)
            document_path = str(path)

        data = record.model_dump(exclude={"identification_document"})
        try:
            patient = Patient(
                **data,
                identification_document_id=document_id,
                identification_document_path=document_path,
            )
            self.db.add(patient)
            self.db.commit()
        except Exception:
            self.db.rollback()
            if document_path is not None:
                self.storage.delete_document(document_path)
            logger.error(f"Failed to register patient for user {record.user_id}, rolled back")
            raise
        self.db.refresh(patient)

        logger.info(f"Registered patient {patient.id} for user {record.user_id}")
        return patient

    def get_patient(self, user_id: str) -> Patient:
        patient = self.db.query(Patient).filter(Patient.user_id == user_id).first()
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient not found"
            )
        return patient
