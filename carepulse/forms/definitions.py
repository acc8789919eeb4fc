"""Field layouts for the patient, registration and appointment forms."""

from typing import Any, List

from markupsafe import Markup

from ..constants import DOCTORS, GENDER_OPTIONS, IDENTIFICATION_TYPES
from .fields import (
    CheckboxField,
    CustomField,
    DateField,
    FieldState,
    PhoneField,
    SelectField,
    SelectOption,
    TextAreaField,
    TextField,
)
from .renderer import html_attrs

PHYSICIAN_OPTIONS = [SelectOption(value=doctor["name"], content=doctor["name"]) for doctor in DOCTORS]


def render_gender_options(state: FieldState) -> Markup:
    items = Markup("").join(
        Markup('<div class="radio-group"><input{}><label{}>{}</label></div>').format(
            html_attrs(
                type="radio",
                id=f"gender-{option}",
                name="gender",
                value=option,
                checked=state.value == option,
                class_="shad-radio",
            ),
            html_attrs(for_=f"gender-{option}", class_="cursor-pointer"),
            option,
        )
        for option in GENDER_OPTIONS
    )
    return Markup('<div class="flex h-11 gap-6 xl:justify-between">{}</div>').format(items)


def render_file_uploader(state: FieldState) -> Markup:
    files = state.value or []
    names = Markup("").join(
        Markup('<li class="file-upload_name">{}</li>').format(getattr(upload, "filename", upload))
        for upload in files
    )
    return Markup('<div class="file-upload"><input{}><ul>{}</ul></div>').format(
        html_attrs(
            type="file",
            id="identificationDocument",
            name="identificationDocument",
            accept="image/*,.pdf",
            class_="file-upload_input",
        ),
        names,
    )


def uploaded_files(raw: Any) -> List[Any]:
    """Keep only real uploads; browsers send an empty part when nothing is chosen."""
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raw = [raw]
    return [upload for upload in raw if getattr(upload, "filename", None)]


USER_FORM_FIELDS = [
    TextField(
        name="name",
        label="Full name",
        placeholder="ex: John Doe",
        icon_src="/static/icons/user.svg",
        icon_alt="user",
    ),
    TextField(
        name="email",
        label="Email",
        placeholder="ex: johndoe@gmail.com",
        icon_src="/static/icons/email.svg",
        icon_alt="email",
    ),
    PhoneField(name="phone", label="Phone number", placeholder="ex: (555) 123-4567"),
]

REGISTER_FORM_SECTIONS = [
    ("Personal Information", [
        "name", "email", "phone", "birthDate", "gender", "address", "occupation",
        "emergencyContactName", "emergencyContactNumber",
    ]),
    ("Medical Information", [
        "primaryPhysician", "insuranceProvider", "insurancePolicyNumber", "allergies",
        "currentMedication", "familyMedicalHistory", "pastMedicalHistory",
    ]),
    ("Identification and Verification", [
        "identificationType", "identificationNumber", "identificationDocument",
    ]),
    ("Consent and Privacy", ["treatmentConsent", "disclosureConsent", "privacyConsent"]),
]

REGISTER_FORM_FIELDS = USER_FORM_FIELDS + [
    DateField(name="birthDate", label="Date of Birth", placeholder="Select your birth date"),
    CustomField(name="gender", label="Gender", render=render_gender_options),
    TextField(name="address", label="Address", placeholder="ex: 14th Street, New York"),
    TextField(name="occupation", label="Occupation", placeholder="ex: Software Engineer"),
    TextField(name="emergencyContactName", label="Emergency contact name", placeholder="Guardian's name"),
    PhoneField(
        name="emergencyContactNumber",
        label="Emergency contact number",
        placeholder="ex: +1 (868) 579-9831",
    ),
    SelectField(
        name="primaryPhysician",
        label="Primary care physician",
        placeholder="Select a physician",
        options=PHYSICIAN_OPTIONS,
    ),
    TextField(name="insuranceProvider", label="Insurance provider", placeholder="ex: BlueCross"),
    TextField(name="insurancePolicyNumber", label="Insurance policy number", placeholder="ex: ABC1234567"),
    TextAreaField(name="allergies", label="Allergies (if any)", placeholder="ex: Peanuts, Penicillin, Pollen"),
    TextAreaField(
        name="currentMedication",
        label="Current medications",
        placeholder="ex: Ibuprofen 200mg, Levothyroxine 50mcg",
    ),
    TextAreaField(
        name="familyMedicalHistory",
        label="Family medical history (if relevant)",
        placeholder="ex: Mother had breast cancer",
    ),
    TextAreaField(
        name="pastMedicalHistory",
        label="Past medical history",
        placeholder="ex: Asthma diagnosis in childhood",
    ),
    SelectField(
        name="identificationType",
        label="Identification Type",
        placeholder="Select an identification type",
        options=[SelectOption(value=kind, content=kind) for kind in IDENTIFICATION_TYPES],
    ),
    TextField(name="identificationNumber", label="Identification Number", placeholder="ex: 1234567"),
    CustomField(
        name="identificationDocument",
        label="Scanned Copy of Identification Document",
        render=render_file_uploader,
        parse=uploaded_files,
        multiple=True,
    ),
    CheckboxField(
        name="treatmentConsent",
        label="I consent to receive treatment for my health condition.",
    ),
    CheckboxField(
        name="disclosureConsent",
        label="I consent to the use and disclosure of my health information for treatment purposes.",
    ),
    CheckboxField(
        name="privacyConsent",
        label="I acknowledge that I have reviewed and agree to the privacy policy",
    ),
]

APPOINTMENT_FORM_FIELDS = [
    SelectField(
        name="primaryPhysician",
        label="Doctor",
        placeholder="Select a doctor",
        options=PHYSICIAN_OPTIONS,
    ),
    DateField(
        name="schedule",
        label="Expected appointment date",
        date_format="MM/dd/yyyy - h:mm aa",
        include_time=True,
    ),
    TextAreaField(name="reason", label="Reason for appointment", placeholder="ex: Annual monthly check-up"),
    TextAreaField(name="note", label="Notes", placeholder="ex: Prefer afternoon appointments, if possible"),
]

CANCEL_FORM_FIELDS = [
    TextAreaField(
        name="cancellationReason",
        label="Reason for cancellation",
        placeholder="Urgent meeting came up",
    ),
]
