import pytest
from django.contrib.auth.models import Group, User

from frontdesk.exceptions import PatientApiError
from frontdesk.services import api_client
from frontdesk.services.records import roster_from_payload, record_from_payload


def make_patient(**overrides):
    data = {
        "_id": "64f1c0ffee00000000abc123",
        "patient_name": "Jane Doe",
        "age": 42,
        "gender": "Female",
        "patient_contact": "5551234567",
        "patient_email": "jane@example.com",
        "emergency_name": "John Doe",
        "emergency_email": "john@example.com",
        "emergency_contact": "5557654321",
        "medical_condition": "Hypertension",
        "assigned_doctor": "Dr. Sarah Johnson",
        "doctor_notes": "Monitor blood pressure",
        "admission_date": "2025-03-01",
        "discharge_date": "2025-03-05",
    }
    data.update(overrides)
    return data


class FakePatientApi:
    """Stands in for PatientApiClient; records what the views send."""

    def __init__(self, patients=None, error=None):
        self.patients = list(patients or [])
        self.error = error
        self.created = []

    def list_patients(self):
        if self.error:
            raise self.error
        return roster_from_payload(self.patients)

    def get_patient(self, patient_id):
        if self.error:
            raise self.error
        for p in self.patients:
            if p.get("_id") == patient_id:
                return record_from_payload(p)
        raise PatientApiError("API Error: 404 Not Found", status_code=404)

    def create_patient(self, payload, files=None):
        if self.error:
            raise self.error
        self.created.append((payload, [(field, part[0]) for field, part in files or []]))
        return {"_id": "new-id", **payload}


@pytest.fixture
def patient_factory():
    return make_patient


@pytest.fixture
def fake_api(monkeypatch):
    api = FakePatientApi()
    monkeypatch.setattr(api_client, "get_patient_api", lambda: api)
    return api


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = str(tmp_path / "media")
    return settings.MEDIA_ROOT


@pytest.fixture
def operator(db, settings):
    user = User.objects.create_user(username="nurse1", email="nurse1@example.com", password="P@ssw0rd1")
    group, _ = Group.objects.get_or_create(name=settings.OPERATOR_GROUP)
    user.groups.add(group)
    return user


@pytest.fixture
def operator_client(client, operator):
    client.force_login(operator)
    return client
