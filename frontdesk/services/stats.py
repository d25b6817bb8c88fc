"""
Dashboard figures derived from the patient list.

Figures are computed from stay intervals relative to ``today``: a patient
is *scheduled* before admission, *admitted* between admission and
discharge (inclusive) and *discharged* afterwards.  Records whose stay
cannot be read are counted as *unknown*.
"""
from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Iterable

STATUS_SCHEDULED = 'scheduled'
STATUS_ADMITTED = 'admitted'
STATUS_DISCHARGED = 'discharged'
STATUS_UNKNOWN = 'unknown'

STATUS_LABELS = {
    STATUS_SCHEDULED: 'Scheduled',
    STATUS_ADMITTED: 'Admitted',
    STATUS_DISCHARGED: 'Discharged',
    STATUS_UNKNOWN: 'Needs attention',
}


def stay_status(record, today: date) -> str:
    if not record.has_valid_stay:
        return STATUS_UNKNOWN
    if today < record.admission:
        return STATUS_SCHEDULED
    if today > record.discharge:
        return STATUS_DISCHARGED
    return STATUS_ADMITTED


def search_records(records: Iterable, term: str = '', status: str = '', today: date | None = None) -> list:
    """Case-insensitive match on name, condition or doctor, in API order."""
    needle = (term or '').strip().lower()
    out = []
    for r in records:
        if needle and not any(needle in (value or '').lower() for value in (r.name, r.condition, r.doctor)):
            continue
        if status and today is not None and stay_status(r, today) != status:
            continue
        out.append(r)
    return out


def dashboard_stats(records: Iterable, today: date, top: int = 5) -> dict:
    records = list(records)
    statuses = Counter(stay_status(r, today) for r in records)
    doctors = Counter(r.doctor for r in records if r.doctor and stay_status(r, today) == STATUS_ADMITTED)
    conditions = Counter(r.condition.strip().title() for r in records if r.condition.strip())
    return {
        'total': len(records),
        'admitted': statuses[STATUS_ADMITTED],
        'scheduled': statuses[STATUS_SCHEDULED],
        'discharged': statuses[STATUS_DISCHARGED],
        'flagged': statuses[STATUS_UNKNOWN],
        'admissionsToday': sum(1 for r in records if r.has_valid_stay and r.admission == today),
        'dischargesToday': sum(1 for r in records if r.has_valid_stay and r.discharge == today),
        'doctorLoad': [{'doctor': name, 'patients': n} for name, n in doctors.most_common()],
        'topConditions': [{'condition': name, 'patients': n} for name, n in conditions.most_common(top)],
    }
