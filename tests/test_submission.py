import asyncio
import io
from datetime import datetime
from unittest.mock import MagicMock

import pytest
import redis
from starlette.datastructures import Headers, UploadFile

from carepulse.schemas.appointment import AppointmentForm
from carepulse.schemas.patient import PatientForm
from carepulse.services.inflight import RELEASE_SCRIPT, InFlightGuard
from carepulse.services.submission import (
    GENERIC_FAILURE_MESSAGE,
    AppointmentSubmission,
    RegistrationSubmission,
    SubmissionStatus,
)


def patient_values(**overrides):
    values = {
        "name": "John Doe",
        "email": "johndoe@example.com",
        "phone": "+79161234567",
        "birthDate": datetime(1990, 1, 15),
        "gender": "Male",
        "address": "14th Street, New York",
        "occupation": "Software Engineer",
        "emergencyContactName": "Jane Doe",
        "emergencyContactNumber": "+79161234568",
        "primaryPhysician": "John Green",
        "insuranceProvider": "BlueCross",
        "insurancePolicyNumber": "ABC1234567",
        "identificationType": "Passport",
        "identificationNumber": "1234567",
        "identificationDocument": [],
        "treatmentConsent": True,
        "disclosureConsent": True,
        "privacyConsent": True,
    }
    values.update(overrides)
    return PatientForm.model_validate(values)


class RecordingAction:
    def __init__(self, result="patient-1", error=None):
        self.records = []
        self.result = result
        self.error = error

    async def __call__(self, record):
        self.records.append(record)
        if self.error:
            raise self.error
        return self.result


class TestRegistrationPayload:

    @pytest.mark.asyncio
    async def test_no_document_no_file_part(self):
        """An empty identification document list attaches nothing."""
        action = RecordingAction()
        handler = RegistrationSubmission("user-no-doc", action, InFlightGuard())

        result = await handler.submit(patient_values())

        assert result.status == SubmissionStatus.SUCCESS
        assert result.redirect_url == "/patients/user-no-doc/new-appointment"
        assert len(action.records) == 1
        record = action.records[0]
        assert record.identification_document is None
        assert record.user_id == "user-no-doc"
        assert record.privacy_consent is True

    @pytest.mark.asyncio
    async def test_single_document_becomes_multipart_payload(self):
        upload = UploadFile(
            file=io.BytesIO(b"scanned-id"),
            filename="passport.png",
            headers=Headers({"content-type": "image/png"}),
        )
        action = RecordingAction()
        handler = RegistrationSubmission("user-with-doc", action, InFlightGuard())

        await handler.submit(patient_values(identificationDocument=[upload]))

        document = action.records[0].identification_document
        payload = document.model_dump(by_alias=True)
        assert payload["blobFile"] == b"scanned-id"
        assert payload["fileName"] == "passport.png"
        assert payload["contentType"] == "image/png"

    @pytest.mark.asyncio
    async def test_record_is_immutable(self):
        action = RecordingAction()
        await RegistrationSubmission("user-frozen", action, InFlightGuard()).submit(patient_values())
        with pytest.raises(Exception):
            action.records[0].name = "Someone Else"


class TestSubmissionFailures:

    @pytest.mark.asyncio
    async def test_remote_failure_resets_loading_and_reports(self):
        action = RecordingAction(error=RuntimeError("backend unavailable"))
        handler = RegistrationSubmission("user-fails", action, InFlightGuard())

        result = await handler.submit(patient_values())

        assert result.status == SubmissionStatus.FAILED
        assert result.redirect_url is None
        assert result.error == GENERIC_FAILURE_MESSAGE
        assert handler.error == GENERIC_FAILURE_MESSAGE
        assert handler.is_loading is False
        assert len(action.records) == 1

    @pytest.mark.asyncio
    async def test_empty_result_is_a_failure(self):
        handler = RegistrationSubmission("user-empty", RecordingAction(result=None), InFlightGuard())
        result = await handler.submit(patient_values())
        assert result.status == SubmissionStatus.FAILED

    @pytest.mark.asyncio
    async def test_failure_releases_lock_for_retry(self):
        action = RecordingAction(error=RuntimeError("boom"))
        guard = InFlightGuard()
        handler = RegistrationSubmission("user-retry", action, guard)

        await handler.submit(patient_values())
        action.error = None
        result = await handler.submit(patient_values())

        assert result.ok
        assert len(action.records) == 2


class TestDoubleSubmission:

    @pytest.mark.asyncio
    async def test_second_submit_while_pending_is_rejected(self):
        """Two submits before the first resolves reach the backend once."""
        release = asyncio.Event()
        calls = []

        async def slow_action(record):
            calls.append(record)
            await release.wait()
            return "patient-1"

        handler = RegistrationSubmission("user-double", slow_action, InFlightGuard())
        first = asyncio.create_task(handler.submit(patient_values()))
        await asyncio.sleep(0)

        second = await handler.submit(patient_values())
        assert second.status == SubmissionStatus.IN_FLIGHT

        release.set()
        assert (await first).ok
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_guard_shared_between_handlers(self):
        """A second request for the same user is rejected while the first is pending."""
        release = asyncio.Event()
        calls = []

        async def slow_action(record):
            calls.append(record)
            await release.wait()
            return "patient-1"

        first_handler = RegistrationSubmission("user-shared", slow_action, InFlightGuard())
        second_handler = RegistrationSubmission("user-shared", slow_action, InFlightGuard())
        first = asyncio.create_task(first_handler.submit(patient_values()))
        await asyncio.sleep(0)

        assert (await second_handler.submit(patient_values())).status == SubmissionStatus.IN_FLIGHT

        release.set()
        await first
        assert len(calls) == 1
        assert (await second_handler.submit(patient_values())).ok


class TestAppointmentSubmission:

    @pytest.mark.asyncio
    async def test_redirects_to_success_page(self):
        action = RecordingAction(result=MagicMock(id="appt-1"))
        handler = AppointmentSubmission("user-appt", "patient-1", action, InFlightGuard())
        values = AppointmentForm.model_validate({
            "primaryPhysician": "John Green",
            "schedule": datetime(2030, 12, 25, 10, 30),
            "reason": "Annual check-up",
        })

        result = await handler.submit(values)

        assert result.redirect_url == "/patients/user-appt/new-appointment/success?appointmentId=appt-1"
        record = action.records[0]
        assert record.patient_id == "patient-1"
        assert record.status.value == "pending"


class FakeRedis:
    """Dict-backed stand-in for the few Redis commands the guard uses."""

    def __init__(self):
        self.store = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0

    def expire_now(self, key):
        self.store.pop(key, None)


class TestInFlightGuard:

    def test_redis_lock_uses_set_nx(self):
        redis_client = MagicMock()
        redis_client.set.return_value = True
        guard = InFlightGuard(redis_client, ttl=15)

        assert guard.acquire("register:user-1") is True
        key, token = redis_client.set.call_args.args
        assert key == "submission:register:user-1"
        assert redis_client.set.call_args.kwargs == {"nx": True, "ex": 15}

        guard.release("register:user-1")
        redis_client.eval.assert_called_once_with(RELEASE_SCRIPT, 1, "submission:register:user-1", token)

    def test_redis_lock_held_elsewhere(self):
        redis_client = MagicMock()
        redis_client.set.return_value = None
        guard = InFlightGuard(redis_client, ttl=15)

        assert guard.acquire("register:user-1") is False
        guard.release("register:user-1")
        redis_client.eval.assert_not_called()

    def test_expired_lock_not_released_by_previous_owner(self):
        """A request whose lock expired must not free the lock a later request took."""
        redis_client = FakeRedis()
        first = InFlightGuard(redis_client, ttl=15)
        second = InFlightGuard(redis_client, ttl=15)
        third = InFlightGuard(redis_client, ttl=15)

        assert first.acquire("register:user-1") is True
        redis_client.expire_now("submission:register:user-1")
        assert second.acquire("register:user-1") is True

        first.release("register:user-1")
        assert third.acquire("register:user-1") is False

        second.release("register:user-1")
        assert third.acquire("register:user-1") is True

    def test_redis_error_falls_back_to_local_lock(self):
        redis_client = MagicMock()
        redis_client.set.side_effect = redis.RedisError("connection refused")
        guard = InFlightGuard(redis_client, ttl=15)

        assert guard.acquire("register:user-fallback") is True
        assert InFlightGuard().acquire("register:user-fallback") is False
        guard.release("register:user-fallback")
        local = InFlightGuard()
        assert local.acquire("register:user-fallback") is True
        local.release("register:user-fallback")

    def test_local_lock(self):
        guard = InFlightGuard()
        assert guard.acquire("local-key") is True
        assert guard.acquire("local-key") is False
        guard.release("local-key")
        assert guard.acquire("local-key") is True
        guard.release("local-key")

    def test_local_release_by_non_owner_is_ignored(self):
        owner = InFlightGuard()
        other = InFlightGuard()

        assert owner.acquire("local-owned") is True
        other.release("local-owned")
        assert other.acquire("local-owned") is False
        owner.release("local-owned")
