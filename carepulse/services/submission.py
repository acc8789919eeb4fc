"""
Form submission handlers.

A handler takes the validated values of one form, assembles the record the
backend expects and calls the backend action once. Success yields a redirect
URL; failure is logged and reported back as a user-facing message. A submit
for a key that is already in flight is rejected without calling the action.
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar

from fastapi import HTTPException

from ..schemas.appointment import AppointmentForm, AppointmentRecord
from ..schemas.patient import IdentificationDocument, PatientForm, PatientRecord
from .inflight import InFlightGuard
from .storage import StorageError

logger = logging.getLogger(__name__)

ValuesT = TypeVar("ValuesT")
RecordT = TypeVar("RecordT")

GENERIC_FAILURE_MESSAGE = "Something went wrong while saving your details. Please try again."


class SubmissionError(Exception):
    """A backend action failed while handling a submission."""


class SubmissionStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    IN_FLIGHT = "in_flight"


@dataclass
class SubmissionResult:
    status: SubmissionStatus
    redirect_url: Optional[str] = None
    error: Optional[str] = None
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.status == SubmissionStatus.SUCCESS


async def build_identification_document(files: Optional[Sequence[Any]]) -> Optional[IdentificationDocument]:
    """Build the multipart payload from the first uploaded file, if any."""
    if not files:
        return None

    upload = files[0]
    content = upload.read()
    if inspect.isawaitable(content):
        content = await content

    return IdentificationDocument(
        blob_file=content,
        file_name=upload.filename or "document",
        content_type=getattr(upload, "content_type", None) or "application/octet-stream",
    )


def failure_message(exc: Exception) -> str:
    if isinstance(exc, HTTPException) and exc.status_code < 500:
        return str(exc.detail)
    if isinstance(exc, StorageError):
        return str(exc)
    return GENERIC_FAILURE_MESSAGE


class SubmissionHandler(Generic[ValuesT, RecordT]):
    def __init__(
        self,
        key: str,
        action: Callable[[RecordT], Awaitable[Any]],
        guard: Optional[InFlightGuard] = None,
    ):
        self.key = key
        self.action = action
        self.guard = guard or InFlightGuard()
        self.is_loading = False
        self.error: Optional[str] = None

    async def build_record(self, values: ValuesT) -> RecordT:
        raise NotImplementedError

    def redirect_for(self, result: Any) -> str:
        raise NotImplementedError

    async def submit(self, values: ValuesT) -> SubmissionResult:
        if self.is_loading or not self.guard.acquire(self.key):
            logger.warning(f"Submission for {self.key} already in flight, ignoring repeat submit")
            return SubmissionResult(
                SubmissionStatus.IN_FLIGHT,
                error="Your previous submission is still being processed.",
            )

        self.is_loading = True
        self.error = None
        try:
            record = await self.build_record(values)
            result = await self.action(record)
            if not result:
                raise SubmissionError(f"{type(self).__name__} action returned no result")
        except Exception as e:
            logger.exception(f"{type(self).__name__} failed for {self.key}: {e}")
            self.error = failure_message(e)
            return SubmissionResult(SubmissionStatus.FAILED, error=self.error)
        finally:
            self.is_loading = False
            self.guard.release(self.key)

        return SubmissionResult(SubmissionStatus.SUCCESS, redirect_url=self.redirect_for(result), result=result)


class RegistrationSubmission(SubmissionHandler[PatientForm, PatientRecord]):
    def __init__(self, user_id: str, action: Callable[[PatientRecord], Awaitable[Any]],
                 guard: Optional[InFlightGuard] = None):
        super().__init__(f"register:{user_id}", action, guard)
        self.user_id = user_id

    async def build_record(self, values: PatientForm) -> PatientRecord:
        document = await build_identification_document(values.identification_document)
        return PatientRecord(
            user_id=self.user_id,
            identification_document=document,
            **values.model_dump(exclude={"identification_document"}),
        )

    def redirect_for(self, result: Any) -> str:
        return f"/patients/{self.user_id}/new-appointment"


class AppointmentSubmission(SubmissionHandler[AppointmentForm, AppointmentRecord]):
    def __init__(self, user_id: str, patient_id: str, action: Callable[[AppointmentRecord], Awaitable[Any]],
                 guard: Optional[InFlightGuard] = None):
        super().__init__(f"appointment:{user_id}", action, guard)
        self.user_id = user_id
        self.patient_id = patient_id

    async def build_record(self, values: AppointmentForm) -> AppointmentRecord:
        return AppointmentRecord(
            user_id=self.user_id,
            patient_id=self.patient_id,
            **values.model_dump(),
        )

    def redirect_for(self, result: Any) -> str:
        return f"/patients/{self.user_id}/new-appointment/success?appointmentId={result.id}"


class AppointmentUpdateSubmission(SubmissionHandler[Any, Any]):
    """Admin schedule or cancel; one update per appointment at a time."""

    def __init__(self, appointment_id: str, action: Callable[[Any], Awaitable[Any]],
                 guard: Optional[InFlightGuard] = None):
        super().__init__(f"appointment-update:{appointment_id}", action, guard)
        self.appointment_id = appointment_id

    async def build_record(self, values: Any) -> Any:
        return values

    def redirect_for(self, result: Any) -> str:
        return "/admin"
