from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import rate_limit_check
from ...services.patient_service import PatientService
from ...schemas.patient import UserForm, UserResponse, PatientResponse

router = APIRouter(tags=["Patients"])

@router.post("/users", response_model=UserResponse)
async def create_user(
    user_data: UserForm,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Create a user, or return the existing user with the same email."""
    patient_service = PatientService(db)
    user = patient_service.create_user(user_data)
    return UserResponse.model_validate(user)

@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    db: Session = Depends(get_db)
):
    """Get a user by id."""
    return UserResponse.model_validate(PatientService(db).get_user(user_id))

@router.get("/patients/{user_id}", response_model=PatientResponse)
async def get_patient(
    user_id: str,
    db: Session = Depends(get_db)
):
    """Get the patient registered for a user."""
    return PatientResponse.model_validate(PatientService(db).get_patient(user_id))
