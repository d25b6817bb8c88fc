from __future__ import annotations

from django.utils.http import url_has_allowed_host_and_scheme

from frontdesk.exceptions import PatientApiError
from frontdesk.logger import get_logger
from frontdesk.services import api_client
from frontdesk.services.records import PatientRoster

logger = get_logger(__name__)

LOAD_ERROR = 'Failed to load patients. Please try again.'


def load_roster() -> tuple[PatientRoster, str | None]:
    """Fetch the patient list for a page; errors become a banner message."""
    try:
        return api_client.get_patient_api().list_patients(), None
    except PatientApiError as exc:
        logger.warning('roster_unavailable', error=exc.message)
        return PatientRoster(), LOAD_ERROR


def safe_next(request, default: str) -> str:
    target = request.POST.get('next') or request.GET.get('next') or ''
    if target and url_has_allowed_host_and_scheme(target, allowed_hosts={request.get_host()},
                                                  require_https=request.is_secure()):
        return target
    return default
