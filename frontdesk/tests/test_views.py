from datetime import timedelta

import pytest
from django.contrib.auth.models import User
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from frontdesk.exceptions import PatientApiUnavailable
from frontdesk.services.intake import IntakeWizard, WizardStep
from frontdesk.tests.conftest import make_patient

pytestmark = pytest.mark.django_db

STEP_ONE = {
    "name": "Jane Doe",
    "age": "42",
    "gender": "Female",
    "phone": "555-123-4567",
    "email": "jane@example.com",
    "emergencyName": "",
    "emergencyEmail": "",
    "emergencyContact": "",
    "admissionDate": "2025-03-01",
    "dischargeDate": "2025-03-05",
}


def wizard_of(client):
    return IntakeWizard.from_session(client.session.get(IntakeWizard.SESSION_KEY))


# -- access --------------------------------------------------------------------
@pytest.mark.parametrize("name", ["dashboard", "patients", "calendar", "intake"])
def test_pages_require_login(client, name):
    r = client.get(reverse(name))
    assert r.status_code == 302
    assert r.url.startswith(reverse("login"))


def test_non_operator_is_forbidden(client, fake_api):
    user = User.objects.create_user(username="visitor", password="P@ssw0rd1")
    client.force_login(user)
    assert client.get(reverse("dashboard")).status_code == 403


def test_login_page_signs_in_operator(client, operator):
    r = client.post(reverse("login"), {"username": "nurse1", "password": "P@ssw0rd1"})
    assert r.status_code == 302
    assert r.url == reverse("dashboard")


def test_login_page_rejects_bad_password(client, operator):
    r = client.post(reverse("login"), {"username": "nurse1", "password": "nope"})
    assert r.status_code == 400
    assert b"Invalid username or password" in r.content


def test_login_page_refuses_non_operator(client):
    User.objects.create_user(username="visitor", password="P@ssw0rd1")
    r = client.post(reverse("login"), {"username": "visitor", "password": "P@ssw0rd1"})
    assert r.status_code == 400
    assert b"This account is not allowed to use the console" in r.content


def test_login_ignores_offsite_next(client, operator):
    r = client.post(reverse("login") + "?next=https://evil.example/", {"username": "nurse1", "password": "P@ssw0rd1"})
    assert r.url == reverse("dashboard")


def test_logout_requires_post(operator_client):
    assert operator_client.get(reverse("logout")).status_code == 405
    r = operator_client.post(reverse("logout"))
    assert r.url == reverse("login")
    assert operator_client.get(reverse("dashboard")).status_code == 302


def test_theme_toggle(operator_client):
    operator_client.post(reverse("toggle_theme"), {"next": reverse("patients")})
    assert operator_client.session["theme"] == "dark"
    operator_client.post(reverse("toggle_theme"))
    assert operator_client.session["theme"] == "light"


# -- pages ---------------------------------------------------------------------
def test_dashboard_counts_statuses(operator_client, fake_api):
    today = timezone.localdate()
    fake_api.patients = [
        make_patient(_id="1", patient_name="In Ward", admission_date=str(today - timedelta(days=1)),
                     discharge_date=str(today + timedelta(days=1))),
        make_patient(_id="2", patient_name="Coming", admission_date=str(today + timedelta(days=3)),
                     discharge_date=str(today + timedelta(days=5))),
        make_patient(_id="3", patient_name="Gone", admission_date="2020-01-01", discharge_date="2020-01-02"),
        make_patient(_id="4", patient_name="Odd", admission_date="soon"),
    ]
    r = operator_client.get(reverse("dashboard"))
    assert r.status_code == 200
    stats = r.context["stats"]
    assert (stats["total"], stats["admitted"], stats["scheduled"], stats["discharged"], stats["flagged"]) == (4, 1, 1, 1, 1)
    r = operator_client.get(reverse("dashboard"), {"status": "admitted"})
    assert [row["record"].name for row in r.context["rows"]] == ["In Ward"]


def test_patient_list_search(operator_client, fake_api):
    fake_api.patients = [
        make_patient(_id="1", patient_name="Alice", medical_condition="Asthma"),
        make_patient(_id="2", patient_name="Bob", medical_condition="Fracture", assigned_doctor="Dr. David Kim"),
    ]
    r = operator_client.get(reverse("patients"), {"q": "kim"})
    assert [p.name for p in r.context["patients"]] == ["Bob"]
    assert r.context["total"] == 2
    r = operator_client.get(reverse("patients"), {"q": "zzz"})
    assert b"Try adjusting your search" in r.content


def test_patient_list_empty_state(operator_client, fake_api):
    r = operator_client.get(reverse("patients"))
    assert b"No patients have been added yet" in r.content


def test_patient_list_shows_banner_when_service_down(operator_client, fake_api):
    fake_api.error = PatientApiUnavailable("Could not reach the patient service at http://x/patients")
    r = operator_client.get(reverse("patients"))
    assert r.status_code == 200
    assert r.context["error"] == "Failed to load patients. Please try again."
    assert b"Failed to load patients. Please try again." in r.content


def test_patient_list_reports_rejected_entries(operator_client, fake_api):
    fake_api.patients = [make_patient(_id="1"), make_patient(_id="2", age={"years": 3})]
    r = operator_client.get(reverse("patients"))
    assert len(r.context["patients"]) == 1
    assert r.context["rejected"] == ["Entry 2 could not be read"]


def test_patient_detail_tabs_and_viewer(operator_client, fake_api):
    fake_api.patients = [make_patient(
        _id="abc",
        bill_details=[{"url": "https://files/b1.pdf"}, {"url": "https://files/b2.pdf"}],
        reports=["https://files/r.pdf"],
    )]
    r = operator_client.get(reverse("patient_detail", args=["abc"]), {"tab": "reports", "doc": "0"})
    assert r.status_code == 200
    assert r.context["active_tab"] == "reports"
    assert r.context["viewing"].url == "https://files/r.pdf"
    assert b"https://files/r.pdf#view=FitH" in r.content
    r = operator_client.get(reverse("patient_detail", args=["abc"]), {"tab": "missing"})
    assert r.context["active_tab"] == "bills"
    assert len(r.context["documents"]) == 2
    assert r.context["viewing"] is None


def test_patient_detail_not_found(operator_client, fake_api):
    assert operator_client.get(reverse("patient_detail", args=["nope"])).status_code == 404


def test_calendar_page_lists_month(operator_client, fake_api):
    fake_api.patients = [
        make_patient(_id="1", patient_name="Cross", admission_date="2025-02-25", discharge_date="2025-03-03"),
        make_patient(_id="2", patient_name="Later", admission_date="2025-04-02", discharge_date="2025-04-03"),
        make_patient(_id="3", patient_name="Broken", discharge_date="not a date"),
    ]
    r = operator_client.get(reverse("calendar"), {"month": "2025-03"})
    timeline = r.context["timeline"]
    assert timeline.title == "March 2025"
    assert [row.record.name for row in timeline.rows] == ["Cross"]
    assert [p.name for p in timeline.flagged] == ["Broken"]
    assert b"?month=2025-02" in r.content and b"?month=2025-04" in r.content


# -- wizard --------------------------------------------------------------------
def test_wizard_blocks_invalid_step(operator_client):
    r = operator_client.post(reverse("intake"), {**STEP_ONE, "dischargeDate": "", "action": "next"})
    assert r.status_code == 302
    wizard = wizard_of(operator_client)
    assert wizard.step == WizardStep.PERSONAL
    assert list(wizard.errors) == ["dischargeDate"]
    page = operator_client.get(reverse("intake"))
    assert b"Discharge date is required" in page.content


def test_wizard_full_flow_submits_to_service(operator_client, fake_api, settings):
    settings.ALLOWED_UPLOAD_TYPES = ["application/pdf"]
    url = reverse("intake")
    operator_client.post(url, {"action": "start"})
    operator_client.post(url, {**STEP_ONE, "action": "next"})
    assert wizard_of(operator_client).step == WizardStep.MEDICAL

    medical = {"condition": "Asthma", "doctor": "Dr. Michael Chen", "doctorNotes": ""}
    upload = SimpleUploadedFile("bill.pdf", b"%PDF-1.4", content_type="application/pdf")
    operator_client.post(url, {**medical, "docType": "Bills", "action": "upload", "document": upload})
    docx = SimpleUploadedFile("notes.docx", b"PK", content_type="application/msword")
    operator_client.post(url, {**medical, "docType": "Reports", "action": "upload", "document": docx})
    wizard = wizard_of(operator_client)
    assert [d.name for d in wizard.documents] == ["bill.pdf"]
    assert wizard.errors == {"fileUpload": "Please upload only PDF files"}

    page = operator_client.get(url)
    assert b"Total Files: 1 | Showing: Reports (0)" in page.content

    r = operator_client.post(url, {**medical, "action": "submit"})
    assert r.status_code == 302
    assert r.url == reverse("patients")
    payload, files = fake_api.created[0]
    assert payload["patient_name"] == "Jane Doe"
    assert payload["patient_contact"] == "5551234567"
    assert payload["doctor_notes"] == "Patient admitted for Asthma"
    assert files == [("bill_details", "bill.pdf")]
    assert IntakeWizard.SESSION_KEY not in operator_client.session


def test_wizard_keeps_draft_when_service_fails(operator_client, fake_api):
    url = reverse("intake")
    operator_client.post(url, {**STEP_ONE, "action": "next"})
    fake_api.error = PatientApiUnavailable("Server returned HTML instead of JSON. Check if backend is running at x")
    operator_client.post(url, {"condition": "Asthma", "doctor": "Dr. Michael Chen", "action": "submit"})
    wizard = wizard_of(operator_client)
    assert wizard.step == WizardStep.MEDICAL
    assert wizard.draft.name == "Jane Doe"
    page = operator_client.get(url)
    assert b"Server returned HTML instead of JSON" in page.content


def test_wizard_previous_and_cancel(operator_client):
    url = reverse("intake")
    operator_client.post(url, {**STEP_ONE, "action": "next"})
    operator_client.post(url, {"condition": "", "action": "previous"})
    wizard = wizard_of(operator_client)
    assert wizard.step == WizardStep.PERSONAL
    assert wizard.draft.email == "jane@example.com"
    r = operator_client.post(url, {"action": "cancel"})
    assert r.url == reverse("patients")
    assert IntakeWizard.SESSION_KEY not in operator_client.session


# -- JSON API ------------------------------------------------------------------
@pytest.fixture
def api(operator):
    c = APIClient()
    c.force_authenticate(operator)
    return c


def test_api_login_returns_profile(operator):
    c = APIClient()
    r = c.post(reverse("login_view"), {"username": "nurse1", "password": "P@ssw0rd1"}, format="json")
    assert r.status_code == 200
    assert r.data["ok"] is True
    assert r.data["user"]["username"] == "nurse1"
    r = c.post(reverse("login_view"), {"username": "", "password": "x"}, format="json")
    assert r.status_code == 400
    assert r.data["errors"]["username"] == "Username is required"


def test_api_requires_operator():
    r = APIClient().get(reverse("dashboard_stats_view"))
    assert r.status_code in (401, 403)
    assert r.data["ok"] is False


def test_api_dashboard(api, fake_api):
    fake_api.patients = [make_patient(_id="1")]
    r = api.get(reverse("dashboard_stats_view"))
    assert r.status_code == 200
    assert r.data["data"]["total"] == 1


def test_api_calendar(api, fake_api):
    fake_api.patients = [make_patient(_id="1", admission_date="2025-02-25", discharge_date="2025-03-03")]
    r = api.get(reverse("calendar_view"), {"month": "2025-03"})
    assert r.status_code == 200
    assert r.data["data"]["patients"][0]["days"] == [1, 2, 3]
    assert r.data["data"]["previous"] == "2025-02"


def test_api_calendar_rejects_bad_month(api, fake_api):
    r = api.get(reverse("calendar_view"), {"month": "2025-13"})
    assert r.status_code == 400


def test_api_upstream_failure_is_502(api, fake_api):
    fake_api.error = PatientApiUnavailable("Could not reach the patient service at http://x/patients")
    r = api.get(reverse("dashboard_stats_view"))
    assert r.status_code == 502
    assert r.data["error"]["code"] == "upstream_error"


def test_api_intake_validate(api):
    r = api.post(reverse("intake_validate_view"), {"step": 1, "values": {**STEP_ONE, "phone": "12345"}}, format="json")
    assert r.status_code == 200
    assert r.data == {"ok": False, "errors": {"phone": "Phone must be exactly 10 digits"}}
    r = api.post(reverse("intake_validate_view"), {"step": 2, "values": {"condition": "Flu", "doctor": "Dr. David Kim"}}, format="json")
    assert r.data == {"ok": True, "errors": {}}


def test_healthz(client):
    r = client.get(reverse("healthz"))
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_healthz_deep_reports_patient_service(client, fake_api):
    fake_api.error = PatientApiUnavailable("Could not reach the patient service at http://x/patients")
    r = client.get(reverse("healthz"), {"deep": "1"})
    assert r.status_code == 503
    assert r.json()["patientApi"] is False
    fake_api.error = None
    assert client.get(reverse("healthz"), {"deep": "1"}).json()["patientApi"] is True


def test_patient_list_survives_odd_medication_field(operator_client, fake_api):
    fake_api.patients = [make_patient(_id="1"), make_patient(_id="2", medication_details={"medications": 5})]
    for name in ("patients", "dashboard", "calendar"):
        assert operator_client.get(reverse(name)).status_code == 200
    assert len(operator_client.get(reverse("patients")).context["patients"]) == 2


def test_patient_detail_never_embeds_script_urls(operator_client, fake_api):
    fake_api.patients = [make_patient(
        _id="abc", bill_details=["javascript:alert(document.domain)", "https://files/b.pdf"],
    )]
    r = operator_client.get(reverse("patient_detail", args=["abc"]), {"tab": "bills", "doc": "0"})
    assert r.status_code == 200
    assert b"javascript:" not in r.content
    assert r.context["viewing"].url == "https://files/b.pdf"


@pytest.mark.parametrize("doc", ["²", "-1", "1e3", "99"])
def test_patient_detail_ignores_unusable_doc_index(operator_client, fake_api, doc):
    fake_api.patients = [make_patient(_id="abc", bill_details=["https://files/b.pdf"])]
    r = operator_client.get(reverse("patient_detail", args=["abc"]), {"tab": "bills", "doc": doc})
    assert r.status_code == 200
    assert r.context["viewing"] is None


def test_wizard_ignores_unusable_remove_index(operator_client, fake_api):
    url = reverse("intake")
    operator_client.post(url, {**STEP_ONE, "action": "next"})
    upload = SimpleUploadedFile("bill.pdf", b"%PDF-1.4", content_type="application/pdf")
    operator_client.post(url, {"docType": "Bills", "action": "upload", "document": upload})
    r = operator_client.post(url, {"action": "remove:²"})
    assert r.status_code == 302
    assert [d.name for d in wizard_of(operator_client).documents] == ["bill.pdf"]


def test_wizard_start_is_post_only(operator_client):
    url = reverse("intake")
    operator_client.post(url, {**STEP_ONE, "action": "next"})
    operator_client.get(url, {"start": "1"})
    assert wizard_of(operator_client).draft.name == "Jane Doe"

    upload = SimpleUploadedFile("bill.pdf", b"%PDF-1.4", content_type="application/pdf")
    operator_client.post(url, {"docType": "Bills", "action": "upload", "document": upload})
    stored = wizard_of(operator_client).documents[0].path
    r = operator_client.post(url, {"action": "start"})
    assert r.status_code == 302
    assert r.url == url
    assert IntakeWizard.SESSION_KEY not in operator_client.session
    assert not default_storage.exists(stored)
