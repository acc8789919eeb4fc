import os
import sys
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set testing environment before the app reads its settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="carepulse-uploads-")
for name in ("REDIS_URL", "SENTRY_DSN", "SMS_WEBHOOK_URL"):
    os.environ.pop(name, None)

from carepulse.main import app  # noqa: E402
from carepulse.core.database import Base, engine  # noqa: E402


@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture
def user_form_data():
    return {
        "name": "John Doe",
        "email": "johndoe@example.com",
        "phone": "+79161234567",
    }


@pytest.fixture
def registration_data():
    return {
        "name": "John Doe",
        "email": "johndoe@example.com",
        "phone": "+79161234567",
        "birthDate": "01/15/1990",
        "gender": "Male",
        "address": "14th Street, New York",
        "occupation": "Software Engineer",
        "emergencyContactName": "Jane Doe",
        "emergencyContactNumber": "+79161234568",
        "primaryPhysician": "John Green",
        "insuranceProvider": "BlueCross",
        "insurancePolicyNumber": "ABC1234567",
        "allergies": "Peanuts",
        "currentMedication": "",
        "familyMedicalHistory": "",
        "pastMedicalHistory": "Asthma diagnosis in childhood",
        "identificationType": "Passport",
        "identificationNumber": "1234567",
        "treatmentConsent": "on",
        "disclosureConsent": "on",
        "privacyConsent": "on",
    }
