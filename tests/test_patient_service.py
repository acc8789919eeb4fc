from datetime import datetime

import pytest
from fastapi import HTTPException

from carepulse.core.database import SessionLocal
from carepulse.schemas.patient import IdentificationDocument, PatientRecord, UserForm
from carepulse.services.patient_service import PatientService
from carepulse.services.storage import FileStorage, StorageError


@pytest.fixture
def db(test_db):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return FileStorage(base_upload_dir=str(tmp_path), max_file_size=1024)


def patient_record(user_id, document=None):
    return PatientRecord(
        user_id=user_id,
        name="John Doe",
        email="johndoe@example.com",
        phone="+79161234567",
        birth_date=datetime(1990, 1, 15),
        gender="Male",
        address="14th Street, New York",
        occupation="Software Engineer",
        emergency_contact_name="Jane Doe",
        emergency_contact_number="+79161234568",
        primary_physician="John Green",
        insurance_provider="BlueCross",
        insurance_policy_number="ABC1234567",
        identification_document=document,
        treatment_consent=True,
        disclosure_consent=True,
        privacy_consent=True,
    )


def scanned_id():
    return IdentificationDocument(blob_file=b"scanned-id", file_name="passport.png", content_type="image/png")


class TestRegisterPatient:

    def test_document_stored_with_patient(self, db, storage, tmp_path):
        service = PatientService(db, storage)
        user = service.create_user(UserForm(name="John Doe", email="johndoe@example.com", phone="+79161234567"))

        patient = service.register_patient(patient_record(user.id, scanned_id()))

        stored = list(tmp_path.iterdir())
        assert len(stored) == 1
        assert stored[0].read_bytes() == b"scanned-id"
        assert patient.identification_document_path == str(stored[0])

    def test_failed_commit_removes_stored_document(self, db, storage, tmp_path, monkeypatch):
        """A registration that cannot be saved leaves no upload behind."""
        service = PatientService(db, storage)
        user = service.create_user(UserForm(name="John Doe", email="johndoe@example.com", phone="+79161234567"))

        def broken_commit():
            raise RuntimeError("db down")

        monkeypatch.setattr(db, "commit", broken_commit)

        with pytest.raises(RuntimeError):
            service.register_patient(patient_record(user.id, scanned_id()))

        assert list(tmp_path.iterdir()) == []

    def test_oversized_document_rejected(self, db, storage, tmp_path):
        service = PatientService(db, storage)
        user = service.create_user(UserForm(name="John Doe", email="johndoe@example.com", phone="+79161234567"))
        document = IdentificationDocument(blob_file=b"x" * 2048, file_name="huge.pdf")

        with pytest.raises(StorageError):
            service.register_patient(patient_record(user.id, document))
        assert list(tmp_path.iterdir()) == []

    def test_unknown_user(self, db, storage):
        with pytest.raises(HTTPException) as exc_info:
            PatientService(db, storage).register_patient(patient_record("missing"))
        assert exc_info.value.status_code == 404


class TestFileStorage:

    def test_delete_missing_document_is_ignored(self, storage, tmp_path):
        storage.delete_document(tmp_path / "gone.png")
        assert list(tmp_path.iterdir()) == []
