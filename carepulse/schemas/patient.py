import re
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

E164_PATTERN = re.compile(r"^\+\d{10,15}$")


class CamelModel(BaseModel):
    """Field names are snake_case in Python and camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value is None or not E164_PATTERN.match(str(value)):
        raise ValueError("Invalid phone number")
    return value


class UserForm(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str

    @field_validator("phone", mode="before")
    @classmethod
    def phone_is_e164(cls, value):
        return _check_phone(value)


class PatientForm(CamelModel):
    """Validation rules for the full registration form."""
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str
    birth_date: datetime
    gender: Literal["Male", "Female", "Other"]
    address: str = Field(..., min_length=5, max_length=500)
    occupation: str = Field(..., min_length=2, max_length=500)
    emergency_contact_name: str = Field(..., min_length=2, max_length=50)
    emergency_contact_number: str
    primary_physician: str = Field(..., min_length=2)
    insurance_provider: str = Field(..., min_length=2, max_length=50)
    insurance_policy_number: str = Field(..., min_length=2, max_length=50)
    allergies: Optional[str] = None
    current_medication: Optional[str] = None
    family_medical_history: Optional[str] = None
    past_medical_history: Optional[str] = None
    identification_type: Optional[str] = None
    identification_number: Optional[str] = None
    # Uploaded file objects; the submission handler reads them
    identification_document: Optional[List[Any]] = None
    treatment_consent: bool = False
    disclosure_consent: bool = False
    privacy_consent: bool = False

    @field_validator("phone", "emergency_contact_number", mode="before")
    @classmethod
    def phones_are_e164(cls, value):
        return _check_phone(value)

    @field_validator("primary_physician", mode="before")
    @classmethod
    def physician_selected(cls, value):
        if not value or len(str(value)) < 2:
            raise ValueError("Select at least one doctor")
        return value

    @field_validator("treatment_consent")
    @classmethod
    def treatment_consent_given(cls, value: bool) -> bool:
        if not value:
            raise ValueError("You must consent to treatment in order to proceed")
        return value

    @field_validator("disclosure_consent")
    @classmethod
    def disclosure_consent_given(cls, value: bool) -> bool:
        if not value:
            raise ValueError("You must consent to disclosure in order to proceed")
        return value

    @field_validator("privacy_consent")
    @classmethod
    def privacy_consent_given(cls, value: bool) -> bool:
        if not value:
            raise ValueError("You must consent to privacy in order to proceed")
        return value


class IdentificationDocument(CamelModel):
    """Multipart payload for an uploaded identification document."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    blob_file: bytes
    file_name: str
    content_type: str = "application/octet-stream"


class PatientRecord(CamelModel):
    """Patient data assembled once at submission time."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    user_id: str
    name: str
    email: str
    phone: str
    birth_date: datetime
    gender: str
    address: str
    occupation: str
    emergency_contact_name: str
    emergency_contact_number: str
    primary_physician: str
    insurance_provider: str
    insurance_policy_number: str
    allergies: Optional[str] = None
    current_medication: Optional[str] = None
    family_medical_history: Optional[str] = None
    past_medical_history: Optional[str] = None
    identification_type: Optional[str] = None
    identification_number: Optional[str] = None
    identification_document: Optional[IdentificationDocument] = None
    treatment_consent: bool
    disclosure_consent: bool
    privacy_consent: bool


class UserResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    name: str
    email: str
    phone: str
    created_at: Optional[datetime] = None


class PatientResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    name: str
    email: str
    phone: str
    birth_date: Optional[datetime] = None
    gender: Optional[str] = None
    primary_physician: Optional[str] = None
    identification_type: Optional[str] = None
    identification_document_id: Optional[str] = None
    privacy_consent: bool = False
