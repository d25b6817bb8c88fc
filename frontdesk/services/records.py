"""
Patient records as the console sees them.

The patient service returns loosely typed JSON: document fields may be a
single URL, a list of URLs or a list of objects, dates may carry a time
component and some records are older than others.  Everything is
normalised here, once, so views and templates only deal with
:class:`PatientRecord` and :class:`DocumentReference`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional
from urllib.parse import urlsplit

from frontdesk.logger import get_logger
from frontdesk.serializers.patient import PatientPayloadSerializer
from frontdesk.services.calendar import parse_calendar_date

logger = get_logger(__name__)

# (payload field, document kind, default name, metadata key shown under the name)
LIST_DOCUMENT_FIELDS = [
    ('bill_details', 'bills', 'Bill', 'total'),
    ('reports', 'reports', 'Report', 'reason'),
    ('doctor_medical_certificate', 'certificate', 'Doctor Medical Certificate', None),
]

DOCUMENT_TABS = [
    ('bills', 'Bills'),
    ('reports', 'Reports'),
    ('certificate', 'Certificate'),
    ('discharge', 'Discharge Summary'),
    ('action', 'Action Plan'),
    ('insurer', 'Insurer Justification'),
]


@dataclass(frozen=True)
class DocumentReference:
    kind: str
    url: str
    name: str
    note: str = ''
    details: tuple = ()


@dataclass
class PatientRecord:
    id: str
    name: str
    age: Optional[int] = None
    gender: str = ''
    phone: str = ''
    email: str = ''
    emergency_name: str = ''
    emergency_email: str = ''
    emergency_contact: str = ''
    condition: str = ''
    doctor: str = ''
    doctor_notes: str = ''
    admission_raw: str = ''
    discharge_raw: str = ''
    admission: Optional[date] = None
    discharge: Optional[date] = None
    stay_issue: Optional[str] = None
    documents: tuple = ()
    diagnosis: str = ''
    medications: list = field(default_factory=list)
    additional_notes: str = ''

    @property
    def display_id(self) -> str:
        return self.id[-8:].upper() if self.id else 'N/A'

    @property
    def initial(self) -> str:
        return self.name[:1].upper() if self.name else '?'

    @property
    def has_valid_stay(self) -> bool:
        return self.stay_issue is None

    def documents_of(self, kind: str) -> list[DocumentReference]:
        return [d for d in self.documents if d.kind == kind]

    @property
    def document_tabs(self) -> list[tuple[str, str, int]]:
        """(kind, label, count) for every tab that has at least one document."""
        tabs = []
        for kind, label in DOCUMENT_TABS:
            count = len(self.documents_of(kind))
            if count:
                tabs.append((kind, label, count))
        return tabs


@dataclass
class PatientRoster:
    """Result of one listing call: usable records plus the ones we could not read."""
    records: list[PatientRecord] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)

    def __iter__(self):
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


# Anything else (javascript:, data:, relative paths) never reaches an href or iframe.
SAFE_URL_SCHEMES = ('http', 'https')


def safe_document_url(kind: str, url: Any) -> Optional[str]:
    """Return ``url`` stripped when it is an http(s) link, otherwise None."""
    text = str(url).strip()
    try:
        scheme = urlsplit(text).scheme.lower()
    except ValueError:
        scheme = ''
    if scheme in SAFE_URL_SCHEMES and text:
        return text
    logger.warning('document_url_rejected', kind=kind, url=text[:80])
    return None


def _line_items(raw: Any) -> tuple:
    if not isinstance(raw, list):
        return ()
    return tuple(item for item in raw if isinstance(item, dict))


def normalize_documents(kind: str, raw: Any, default_name: str, note_key: Optional[str] = None) -> list[DocumentReference]:
    """Turn ``str | list[str] | list[dict]`` into a list of references.

    A bare string is a single document named ``default_name``; unnamed
    list items get a numbered name.  Items without a URL, or whose URL is
    not http(s), are skipped.
    """
    if raw is None or raw == '':
        return []
    if isinstance(raw, str):
        url = safe_document_url(kind, raw)
        return [DocumentReference(kind=kind, url=url, name=default_name)] if url else []
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        logger.warning('document_field_unreadable', kind=kind, type=type(raw).__name__)
        return []
    docs: list[DocumentReference] = []
    for idx, item in enumerate(raw):
        numbered = f'{default_name} {idx + 1}'
        if isinstance(item, str):
            url = safe_document_url(kind, item) if item else None
            if url:
                docs.append(DocumentReference(kind=kind, url=url, name=numbered))
            continue
        if not isinstance(item, dict) or not item.get('url'):
            continue
        url = safe_document_url(kind, item['url'])
        if url is None:
            continue
        docs.append(DocumentReference(
            kind=kind,
            url=url,
            name=str(item.get('name') or numbered),
            note=str(item.get(note_key) or '') if note_key else '',
            details=_line_items(item.get('details') or item.get('biomarkers')),
        ))
    return docs


def collect_documents(payload: dict) -> tuple:
    docs: list[DocumentReference] = []
    for field_name, kind, default_name, note_key in LIST_DOCUMENT_FIELDS:
        docs.extend(normalize_documents(kind, payload.get(field_name), default_name, note_key))
    medication = payload.get('medication_details')
    if not isinstance(medication, dict):
        medication = {}
    for key, kind, name in [
        ('discharge_summary_url', 'discharge', 'Discharge Summary'),
        ('action_plan_pdf_url', 'action', 'Action Plan'),
    ]:
        raw = medication.get(key)
        url = safe_document_url(kind, raw) if isinstance(raw, str) and raw else None
        if url:
            docs.append(DocumentReference(kind=kind, url=url, name=name))
    insurer = payload.get('insurer_justification_pdf_url')
    url = safe_document_url('insurer', insurer) if insurer else None
    if url:
        docs.append(DocumentReference(kind='insurer', url=url, name='Insurer Justification'))
    return tuple(docs)


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def stay_issue_for(admission_raw: str, discharge_raw: str, admission: Optional[date], discharge: Optional[date]) -> Optional[str]:
    if not admission_raw:
        return 'Missing admission date'
    if admission is None:
        return f'Unreadable admission date "{admission_raw}"'
    if not discharge_raw:
        return 'Missing discharge date'
    if discharge is None:
        return f'Unreadable discharge date "{discharge_raw}"'
    if discharge < admission:
        return 'Discharge date is before admission date'
    return None


def record_from_payload(data: dict) -> PatientRecord:
    """Build a :class:`PatientRecord` from one API object.

    Raises ``ValueError`` when the object does not have the expected shape.
    """
    s = PatientPayloadSerializer(data=data)
    if not s.is_valid():
        raise ValueError(f'unexpected patient payload: {s.errors}')
    v = {k: ('' if val is None else val) for k, val in s.validated_data.items()}
    admission_raw = v['admission_date'].strip()
    discharge_raw = v['discharge_date'].strip()
    admission = parse_calendar_date(admission_raw)
    discharge = parse_calendar_date(discharge_raw)
    medication = data.get('medication_details') or {}
    if not isinstance(medication, dict):
        medication = {}
    return PatientRecord(
        id=v['_id'] or v['id'],
        name=v['patient_name'],
        age=_to_int(v['age']),
        gender=v['gender'],
        phone=v['patient_contact'],
        email=v['patient_email'],
        emergency_name=v['emergency_name'],
        emergency_email=v['emergency_email'],
        emergency_contact=v['emergency_contact'],
        condition=v['medical_condition'],
        doctor=v['assigned_doctor'],
        doctor_notes=v['doctor_notes'],
        admission_raw=admission_raw,
        discharge_raw=discharge_raw,
        admission=admission,
        discharge=discharge,
        stay_issue=stay_issue_for(admission_raw, discharge_raw, admission, discharge),
        documents=collect_documents(data),
        diagnosis=str(medication.get('diagnosis') or ''),
        medications=list(_line_items(medication.get('medications'))),
        additional_notes=str(medication.get('additional_notes') or ''),
    )


def roster_from_payload(payload: Any) -> PatientRoster:
    """Normalise the ``GET /patients`` body, keeping API order."""
    roster = PatientRoster()
    items: Iterable[Any] = payload if isinstance(payload, list) else []
    if not isinstance(payload, list):
        logger.warning('patient_list_not_array', type=type(payload).__name__)
        roster.rejected.append('The patient service did not return a list')
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            roster.rejected.append(f'Entry {idx + 1} is not a patient object')
            continue
        try:
            roster.records.append(record_from_payload(item))
        except ValueError as exc:
            logger.warning('patient_record_rejected', position=idx, error=str(exc))
            roster.rejected.append(f'Entry {idx + 1} could not be read')
    return roster
