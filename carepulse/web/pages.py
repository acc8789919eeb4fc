"""
Server-rendered pages for the patient flow and the admin dashboard.

Every form page follows the same cycle: build a FormController for the
form, feed the posted data through it, let a submission handler call the
backend, then either redirect or re-render with the errors shown.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from markupsafe import Markup
from sqlalchemy.orm import Session

from ..api.deps import get_inflight_guard, is_admin, rate_limit_check
from ..api.v1.admin import set_admin_cookie
from ..constants import PATIENT_FORM_DEFAULTS
from ..core.database import get_db
from ..core.security import create_admin_token, verify_passkey
from ..core.telemetry import emit_view_event
from ..forms.controller import FormController
from ..forms.definitions import (
    APPOINTMENT_FORM_FIELDS,
    CANCEL_FORM_FIELDS,
    REGISTER_FORM_FIELDS,
    REGISTER_FORM_SECTIONS,
    USER_FORM_FIELDS,
)
from ..schemas.appointment import AppointmentForm, CancelAppointment, ScheduleAppointment
from ..schemas.patient import PatientForm, UserForm
from ..services.appointment_service import AppointmentService, format_schedule
from ..services.inflight import InFlightGuard
from ..services.patient_service import PatientService
from ..services.submission import (
    AppointmentSubmission,
    AppointmentUpdateSubmission,
    RegistrationSubmission,
    SubmissionStatus,
)

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))
templates.env.filters["schedule"] = format_schedule

router = APIRouter(include_in_schema=False)


def render_form_page(
    request: Request,
    controller: FormController,
    *,
    title: str,
    subtitle: str,
    action: str,
    submit_label: str,
    sections: Optional[Sequence[Tuple[Optional[str], Sequence[str]]]] = None,
    error: Optional[str] = None,
    multipart: bool = False,
    status_code: int = status.HTTP_200_OK,
) -> HTMLResponse:
    rendered: List[Tuple[Optional[str], Markup]] = [
        (heading, controller.render(names))
        for heading, names in (sections or [(None, list(controller.fields))])
    ]
    return templates.TemplateResponse(
        request,
        "form.html",
        {
            "title": title,
            "subtitle": subtitle,
            "action": action,
            "submit_label": submit_label,
            "sections": rendered,
            "error": error,
            "multipart": multipart,
            "is_loading": controller.is_submitting,
        },
        status_code=status_code,
    )


def failure_status(result_status: SubmissionStatus) -> int:
    if result_status == SubmissionStatus.IN_FLIGHT:
        return status.HTTP_409_CONFLICT
    return status.HTTP_502_BAD_GATEWAY


# Step 1: basic contact details

def user_form_page(request: Request, controller: FormController, **kwargs: Any) -> HTMLResponse:
    return render_form_page(
        request,
        controller,
        title="Hi there 👋",
        subtitle="Schedule your first appointment.",
        action="/",
        submit_label="Get Started",
        **kwargs,
    )


@router.get("/", response_class=HTMLResponse)
async def patient_form(request: Request):
    controller = FormController(UserForm, USER_FORM_FIELDS, {"name": "", "email": "", "phone": ""})
    return user_form_page(request, controller)


@router.post("/", response_class=HTMLResponse)
async def submit_patient_form(
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check),
):
    controller = FormController(UserForm, USER_FORM_FIELDS)
    controller.ingest(await request.form())

    async def create_user(values: UserForm):
        return PatientService(db).create_user(values)

    user = await controller.handle_submit(create_user)
    if user is None:
        return user_form_page(request, controller, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
    return RedirectResponse(f"/patients/{user.id}/register", status_code=status.HTTP_303_SEE_OTHER)


# Step 2: full registration

def register_page(request: Request, controller: FormController, user_id: str, **kwargs: Any) -> HTMLResponse:
    return render_form_page(
        request,
        controller,
        title="Welcome 👋",
        subtitle="Let us know more about yourself.",
        action=f"/patients/{user_id}/register",
        submit_label="Submit and continue",
        sections=REGISTER_FORM_SECTIONS,
        multipart=True,
        **kwargs,
    )


@router.get("/patients/{user_id}/register", response_class=HTMLResponse)
async def register_form(user_id: str, request: Request, db: Session = Depends(get_db)):
    user = PatientService(db).get_user(user_id)
    defaults = dict(PATIENT_FORM_DEFAULTS, name=user.name, email=user.email, phone=user.phone)
    controller = FormController(PatientForm, REGISTER_FORM_FIELDS, defaults)
    return register_page(request, controller, user_id)


@router.post("/patients/{user_id}/register", response_class=HTMLResponse)
async def submit_registration(
    user_id: str,
    request: Request,
    db: Session = Depends(get_db),
    guard: InFlightGuard = Depends(get_inflight_guard),
    _: None = Depends(rate_limit_check),
):
    patient_service = PatientService(db)
    patient_service.get_user(user_id)

    controller = FormController(PatientForm, REGISTER_FORM_FIELDS)
    controller.ingest(await request.form())

    async def register_patient(record):
        return patient_service.register_patient(record)

    handler = RegistrationSubmission(user_id, register_patient, guard)
    result = await controller.handle_submit(handler.submit)
    if result is None:
        return register_page(request, controller, user_id, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
    if result.ok:
        return RedirectResponse(result.redirect_url, status_code=status.HTTP_303_SEE_OTHER)
    return register_page(request, controller, user_id, error=result.error,
                         status_code=failure_status(result.status))


# Step 3: appointment request

def appointment_page(request: Request, controller: FormController, user_id: str, **kwargs: Any) -> HTMLResponse:
    return render_form_page(
        request,
        controller,
        title="New Appointment",
        subtitle="Request a new appointment in 10 seconds.",
        action=f"/patients/{user_id}/new-appointment",
        submit_label="Submit Appointment",
        **kwargs,
    )


@router.get("/patients/{user_id}/new-appointment", response_class=HTMLResponse)
async def new_appointment(user_id: str, request: Request, db: Session = Depends(get_db)):
    patient = PatientService(db).get_patient(user_id)
    emit_view_event("new-appointment", patient.name)

    controller = FormController(AppointmentForm, APPOINTMENT_FORM_FIELDS,
                                {"primaryPhysician": patient.primary_physician or ""})
    return appointment_page(request, controller, user_id)


@router.post("/patients/{user_id}/new-appointment", response_class=HTMLResponse)
async def submit_appointment(
    user_id: str,
    request: Request,
    db: Session = Depends(get_db),
    guard: InFlightGuard = Depends(get_inflight_guard),
    _: None = Depends(rate_limit_check),
):
    patient = PatientService(db).get_patient(user_id)

    controller = FormController(AppointmentForm, APPOINTMENT_FORM_FIELDS)
    controller.ingest(await request.form())

    async def create_appointment(record):
        return AppointmentService(db).create_appointment(record)

    handler = AppointmentSubmission(user_id, patient.id, create_appointment, guard)
    result = await controller.handle_submit(handler.submit)
    if result is None:
        return appointment_page(request, controller, user_id, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
    if result.ok:
        return RedirectResponse(result.redirect_url, status_code=status.HTTP_303_SEE_OTHER)
    return appointment_page(request, controller, user_id, error=result.error,
                            status_code=failure_status(result.status))


@router.get("/patients/{user_id}/new-appointment/success", response_class=HTMLResponse)
async def appointment_success(
    user_id: str,
    request: Request,
    appointmentId: str,
    db: Session = Depends(get_db),
):
    appointment = AppointmentService(db).get_appointment(appointmentId)
    if appointment.user_id != user_id:
        return RedirectResponse(f"/patients/{user_id}/new-appointment", status_code=status.HTTP_303_SEE_OTHER)
    return templates.TemplateResponse(
        request,
        "success.html",
        {"appointment": appointment, "user_id": user_id},
    )


# Admin dashboard

@router.get("/admin", response_class=HTMLResponse)
async def admin_dashboard(
    request: Request,
    db: Session = Depends(get_db),
    admin: bool = Depends(is_admin),
):
    if not admin:
        return templates.TemplateResponse(request, "passkey.html", {"error": None})
    appointments = AppointmentService(db).get_recent_appointment_list()
    return templates.TemplateResponse(request, "admin.html", {"appointments": appointments})


@router.post("/admin", response_class=HTMLResponse)
async def admin_passkey(
    request: Request,
    passkey: str = Form(""),
    _: None = Depends(rate_limit_check),
):
    if not verify_passkey(passkey):
        logger.warning("Rejected admin passkey")
        return templates.TemplateResponse(
            request,
            "passkey.html",
            {"error": "Invalid passkey. Please try again."},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    response = RedirectResponse("/admin", status_code=status.HTTP_303_SEE_OTHER)
    set_admin_cookie(response, create_admin_token())
    return response


def admin_action_page(request: Request, controller: FormController, appointment_id: str, action: str,
                      **kwargs: Any) -> HTMLResponse:
    scheduling = action == "schedule"
    return render_form_page(
        request,
        controller,
        title="Schedule Appointment" if scheduling else "Cancel Appointment",
        subtitle=("Please confirm the following details to schedule." if scheduling
                  else "Are you sure you want to cancel your appointment?"),
        action=f"/admin/appointments/{appointment_id}/{action}",
        submit_label="Schedule Appointment" if scheduling else "Cancel Appointment",
        **kwargs,
    )


def admin_action_controller(action: str, appointment=None) -> FormController:
    if action == "schedule":
        defaults = None
        if appointment is not None:
            defaults = {
                "primaryPhysician": appointment.primary_physician,
                "schedule": appointment.schedule,
                "reason": appointment.reason or "",
                "note": appointment.note or "",
            }
        return FormController(ScheduleAppointment, APPOINTMENT_FORM_FIELDS, defaults)
    return FormController(CancelAppointment, CANCEL_FORM_FIELDS, {"cancellationReason": ""})


@router.get("/admin/appointments/{appointment_id}/{action}", response_class=HTMLResponse)
async def admin_action_form(
    appointment_id: str,
    action: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: bool = Depends(is_admin),
):
    if not admin:
        return RedirectResponse("/admin", status_code=status.HTTP_303_SEE_OTHER)
    if action not in ("schedule", "cancel"):
        return RedirectResponse("/admin", status_code=status.HTTP_303_SEE_OTHER)
    appointment = AppointmentService(db).get_appointment(appointment_id)
    return admin_action_page(request, admin_action_controller(action, appointment), appointment_id, action)


@router.post("/admin/appointments/{appointment_id}/{action}", response_class=HTMLResponse)
async def admin_action_submit(
    appointment_id: str,
    action: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: bool = Depends(is_admin),
    guard: InFlightGuard = Depends(get_inflight_guard),
):
    if not admin:
        return RedirectResponse("/admin", status_code=status.HTTP_303_SEE_OTHER)
    if action not in ("schedule", "cancel"):
        return RedirectResponse("/admin", status_code=status.HTTP_303_SEE_OTHER)

    appointment_service = AppointmentService(db)
    controller = admin_action_controller(action)
    controller.ingest(await request.form())

    async def apply(values):
        if action == "schedule":
            return await appointment_service.schedule_appointment(appointment_id, values)
        return await appointment_service.cancel_appointment(appointment_id, values)

    handler = AppointmentUpdateSubmission(appointment_id, apply, guard)
    result = await controller.handle_submit(handler.submit)
    if result is None:
        return admin_action_page(request, controller, appointment_id, action,
                                 status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
    if result.ok:
        return RedirectResponse(result.redirect_url, status_code=status.HTTP_303_SEE_OTHER)
    return admin_action_page(request, controller, appointment_id, action, error=result.error,
                             status_code=failure_status(result.status))
