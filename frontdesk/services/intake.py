"""
Add-patient wizard.

The wizard has two named steps.  Moving forward is gated by validating
the current step's fields; moving back is always allowed and clears the
error map.  Validation never raises: it returns ``{field: message}`` and
an empty mapping means the step is valid.

State lives in the operator's session between requests, so everything
here round-trips through plain dicts (:meth:`IntakeWizard.to_session`).
"""
from __future__ import annotations

import re
import uuid
from dataclasses import asdict, dataclass, field, fields
from enum import Enum, IntEnum
from typing import Mapping, Optional

import bleach
from django.conf import settings

from frontdesk.logger import get_logger
from frontdesk.services.calendar import parse_calendar_date

logger = get_logger(__name__)

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
AGE_RE = re.compile(r'^\d+$')
PHONE_DIGITS = 10

GENDER_CHOICES = ['Male', 'Female', 'Other']

DOCTOR_CHOICES = [
    'Dr. Sarah Johnson',
    'Dr. Michael Chen',
    'Dr. James Lee',
    'Dr. Emily Rodriguez',
    'Dr. David Kim',
    'Dr. Lisa Anderson',
]


class WizardStep(IntEnum):
    PERSONAL = 1
    MEDICAL = 2

    @property
    def title(self) -> str:
        return STEP_TITLES[self]


STEP_TITLES = {
    WizardStep.PERSONAL: 'Personal & Dates',
    WizardStep.MEDICAL: 'Medical & Documents',
}

STEP_FIELDS = {
    WizardStep.PERSONAL: (
        'name', 'age', 'gender', 'phone', 'email',
        'emergencyName', 'emergencyEmail', 'emergencyContact',
        'admissionDate', 'dischargeDate',
    ),
    WizardStep.MEDICAL: ('condition', 'doctor', 'doctorNotes'),
}


class DocumentType(str, Enum):
    BILLS = 'Bills'
    REPORTS = 'Reports'
    DOCTOR_CERTIFICATE = 'Doctor Certificate'
    DISCHARGE_NOTE = 'Discharge Note'

    @property
    def field_name(self) -> str:
        """Multipart field the patient service expects for this type."""
        return UPLOAD_FIELD_NAMES[self]

    @property
    def label(self) -> str:
        return {
            DocumentType.BILLS: 'Bills and Receipts',
            DocumentType.REPORTS: 'Medical Reports',
        }.get(self, self.value)


UPLOAD_FIELD_NAMES = {
    DocumentType.BILLS: 'bill_details',
    DocumentType.REPORTS: 'reports',
    DocumentType.DOCTOR_CERTIFICATE: 'doctor_medical_certificate',
    DocumentType.DISCHARGE_NOTE: 'discharge_summary_pdf',
}


@dataclass
class IntakeDraft:
    name: str = ''
    age: str = ''
    gender: str = 'Male'
    phone: str = ''
    email: str = ''
    emergencyName: str = ''
    emergencyEmail: str = ''
    emergencyContact: str = ''
    condition: str = ''
    doctor: str = ''
    doctorNotes: str = ''
    admissionDate: str = ''
    dischargeDate: str = ''

    @classmethod
    def from_dict(cls, data: Mapping) -> 'IntakeDraft':
        known = {f.name for f in fields(cls)}
        return cls(**{k: str(v) for k, v in data.items() if k in known and v is not None})


@dataclass
class PendingDocument:
    name: str
    doc_type: DocumentType
    path: str
    size: int = 0

    def to_dict(self) -> dict:
        return {'name': self.name, 'doc_type': self.doc_type.value, 'path': self.path, 'size': self.size}

    @classmethod
    def from_dict(cls, data: Mapping) -> 'PendingDocument':
        return cls(name=data['name'], doc_type=DocumentType(data['doc_type']), path=data['path'], size=int(data.get('size') or 0))


# -----------------------------------------------------------------------------
# Field rules
# -----------------------------------------------------------------------------
def normalize_phone(value: Optional[str]) -> str:
    """Keep digits only: ``"(123) 456-7890"`` -> ``"1234567890"``."""
    return re.sub(r'\D', '', value or '')


def email_error(value: str) -> Optional[str]:
    if not EMAIL_RE.match(value):
        return 'Please enter a valid email'
    if '..' in value:
        return 'Email cannot have two periods in a row'
    return None


def _blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def validate_personal(draft: IntakeDraft) -> dict[str, str]:
    errors: dict[str, str] = {}

    if _blank(draft.name):
        errors['name'] = 'Name is required'

    age = (draft.age or '').strip()
    if not AGE_RE.match(age) or int(age) <= 0:
        errors['age'] = 'Valid age is required'

    if _blank(draft.phone):
        errors['phone'] = 'Phone number is required'
    elif len(normalize_phone(draft.phone)) != PHONE_DIGITS:
        errors['phone'] = 'Phone must be exactly 10 digits'

    if _blank(draft.email):
        errors['email'] = 'Email is required'
    else:
        message = email_error(draft.email.strip())
        if message:
            errors['email'] = message

    if not _blank(draft.emergencyContact) and len(normalize_phone(draft.emergencyContact)) != PHONE_DIGITS:
        errors['emergencyContact'] = 'Emergency contact must be exactly 10 digits'

    if not _blank(draft.emergencyEmail):
        message = email_error(draft.emergencyEmail.strip())
        if message:
            errors['emergencyEmail'] = message

    admission = None
    if _blank(draft.admissionDate):
        errors['admissionDate'] = 'Admission date is required'
    else:
        admission = parse_calendar_date(draft.admissionDate)
        if admission is None:
            errors['admissionDate'] = 'Admission date is invalid'

    if _blank(draft.dischargeDate):
        errors['dischargeDate'] = 'Discharge date is required'
    else:
        discharge = parse_calendar_date(draft.dischargeDate)
        if discharge is None:
            errors['dischargeDate'] = 'Discharge date is invalid'
        elif admission is not None and discharge < admission:
            errors['dischargeDate'] = 'Discharge date must be after admission date'

    return errors


def validate_medical(draft: IntakeDraft) -> dict[str, str]:
    errors: dict[str, str] = {}
    if _blank(draft.condition):
        errors['condition'] = 'Medical condition is required'
    if _blank(draft.doctor):
        errors['doctor'] = 'Doctor name is required'
    return errors


VALIDATORS = {
    WizardStep.PERSONAL: validate_personal,
    WizardStep.MEDICAL: validate_medical,
}


def validate_step(draft: IntakeDraft, step: WizardStep) -> dict[str, str]:
    return VALIDATORS[WizardStep(step)](draft)


def clean_text(value: Optional[str]) -> str:
    return bleach.clean((value or '').strip(), tags=[], strip=True)


# -----------------------------------------------------------------------------
# State machine
# -----------------------------------------------------------------------------
class IntakeWizard:
    SESSION_KEY = 'intake'

    def __init__(self, draft: Optional[IntakeDraft] = None, step: WizardStep = WizardStep.PERSONAL,
                 errors: Optional[dict] = None, documents: Optional[list] = None,
                 selected_doc_type: DocumentType = DocumentType.BILLS, token: Optional[str] = None):
        self.draft = draft or IntakeDraft()
        self.step = WizardStep(step)
        self.errors: dict[str, str] = dict(errors or {})
        self.documents: list[PendingDocument] = list(documents or [])
        self.selected_doc_type = DocumentType(selected_doc_type)
        self.token = token or uuid.uuid4().hex

    # -- navigation ----------------------------------------------------------
    @property
    def total_steps(self) -> int:
        return len(WizardStep)

    @property
    def progress(self) -> int:
        return round(self.step / self.total_steps * 100)

    @property
    def is_last_step(self) -> bool:
        return self.step == WizardStep.MEDICAL

    def advance(self) -> bool:
        """Validate the current step and move forward when it is clean."""
        self.errors = validate_step(self.draft, self.step)
        if self.errors:
            logger.info('intake_step_blocked', step=int(self.step), fields=sorted(self.errors))
            return False
        if not self.is_last_step:
            self.step = WizardStep(self.step + 1)
        return True

    def retreat(self) -> None:
        if self.step > WizardStep.PERSONAL:
            self.step = WizardStep(self.step - 1)
        self.errors = {}

    def ready_to_submit(self) -> bool:
        """Final gate: both steps must be clean and we must be on the last one."""
        if not self.is_last_step:
            return False
        personal = validate_personal(self.draft)
        if personal:
            # the draft was changed behind the first gate; send the operator back
            self.step = WizardStep.PERSONAL
            self.errors = personal
            return False
        return self.advance()

    # -- editing -------------------------------------------------------------
    def update(self, values: Mapping) -> list[str]:
        """Apply submitted values for the current step only.

        Every field whose value changed loses its error straight away,
        without re-running validation.
        """
        changed = []
        for name in STEP_FIELDS[self.step]:
            if name not in values:
                continue
            new = values.get(name)
            new = '' if new is None else str(new)
            if new != getattr(self.draft, name):
                setattr(self.draft, name, new)
                self.clear_error(name)
                changed.append(name)
        return changed

    def clear_error(self, name: str) -> None:
        self.errors.pop(name, None)

    def select_doc_type(self, value: str) -> None:
        try:
            self.selected_doc_type = DocumentType(value)
        except ValueError:
            logger.warning('intake_unknown_doc_type', value=value)

    # -- attachments ---------------------------------------------------------
    @property
    def selected_documents(self) -> list[tuple[int, PendingDocument]]:
        """Queued files of the selected type, with their position in the full queue."""
        return [(i, doc) for i, doc in enumerate(self.documents) if doc.doc_type == self.selected_doc_type]

    def attach(self, upload, store, allowed_types: Optional[list] = None, max_mb: Optional[int] = None) -> Optional[PendingDocument]:
        """Queue one uploaded file under the currently selected type.

        Non-PDF files are refused with a ``fileUpload`` error and are not
        stored.
        """
        allowed = allowed_types if allowed_types is not None else settings.ALLOWED_UPLOAD_TYPES
        limit_mb = max_mb if max_mb is not None else settings.UPLOAD_MAX_MB
        content_type = (getattr(upload, 'content_type', '') or '').split(';')[0].strip().lower()
        if content_type not in allowed:
            self.errors['fileUpload'] = 'Please upload only PDF files'
            logger.info('intake_upload_rejected', file=upload.name, content_type=content_type)
            return None
        if upload.size > limit_mb * 1024 * 1024:
            self.errors['fileUpload'] = f'File must be smaller than {limit_mb} MB'
            return None
        path = store.save(self.token, upload)
        doc = PendingDocument(name=upload.name, doc_type=self.selected_doc_type, path=path, size=upload.size)
        self.documents.append(doc)
        self.clear_error('fileUpload')
        return doc

    def remove_document(self, index: int, store) -> Optional[PendingDocument]:
        if not 0 <= index < len(self.documents):
            return None
        doc = self.documents.pop(index)
        store.delete(doc.path)
        return doc

    def discard(self, store) -> None:
        for doc in self.documents:
            store.delete(doc.path)
        self.documents = []

    # -- submission ----------------------------------------------------------
    def backend_payload(self) -> dict:
        """Form fields for ``POST /patients``."""
        d = self.draft
        condition = clean_text(d.condition)
        email = d.email.strip()
        phone = normalize_phone(d.phone)
        age = (d.age or '').strip()
        return {
            'patient_name': clean_text(d.name),
            'patient_contact': phone,
            'patient_email': email,
            'age': int(age) if AGE_RE.match(age) else 0,
            'gender': clean_text(d.gender),
            'emergency_name': clean_text(d.emergencyName) or 'Not Provided',
            'emergency_email': d.emergencyEmail.strip() or email,
            'emergency_contact': normalize_phone(d.emergencyContact) or phone,
            'medical_condition': condition,
            'assigned_doctor': clean_text(d.doctor),
            'doctor_notes': clean_text(d.doctorNotes) or f'Patient admitted for {condition}',
            'admission_date': d.admissionDate.strip(),
            'discharge_date': d.dischargeDate.strip(),
        }

    # -- persistence ---------------------------------------------------------
    def to_session(self) -> dict:
        return {
            'step': int(self.step),
            'draft': asdict(self.draft),
            'errors': dict(self.errors),
            'documents': [doc.to_dict() for doc in self.documents],
            'selected_doc_type': self.selected_doc_type.value,
            'token': self.token,
        }

    @classmethod
    def from_session(cls, data: Optional[Mapping]) -> 'IntakeWizard':
        if not data:
            return cls()
        try:
            return cls(
                draft=IntakeDraft.from_dict(data.get('draft') or {}),
                step=WizardStep(int(data.get('step') or 1)),
                errors=data.get('errors') or {},
                documents=[PendingDocument.from_dict(d) for d in data.get('documents') or []],
                selected_doc_type=DocumentType(data.get('selected_doc_type') or DocumentType.BILLS.value),
                token=data.get('token'),
            )
        except (KeyError, TypeError, ValueError):
            logger.warning('intake_session_reset')
            return cls()
