"""
Client for the remote patient service.

All pages go through :class:`PatientApiClient`.  Calls are synchronous,
bounded by ``PATIENT_API_TIMEOUT`` and never retried: a failure is
reported to the operator, who can simply reload the page.
"""
from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import requests
from django.conf import settings

from frontdesk.exceptions import PatientApiError, PatientApiUnavailable, PatientApiValidationError
from frontdesk.logger import get_logger
from frontdesk.services.records import PatientRecord, PatientRoster, record_from_payload, roster_from_payload

logger = get_logger(__name__)

PATIENTS_ENDPOINT = '/patients'

DEFAULT_HEADERS = {
    # skips the ngrok browser interstitial when the service sits behind a tunnel
    'ngrok-skip-browser-warning': 'true',
    'Accept': 'application/json',
}


def validation_errors(body: Any) -> Optional[list[tuple[str, str]]]:
    """Read a ``{"detail": [{"loc": [...], "msg": ...}]}`` body.

    Returns ``(field, message)`` pairs, using the last ``loc`` element as
    the field name, or None when the body has another shape.
    """
    if not isinstance(body, dict) or not isinstance(body.get('detail'), list):
        return None
    errors = []
    for item in body['detail']:
        if not isinstance(item, dict):
            continue
        loc = item.get('loc') or []
        field = str(loc[-1]) if isinstance(loc, list) and loc else 'request'
        errors.append((field, str(item.get('msg') or 'invalid')))
    return errors or None


class PatientApiClient:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None,
                 token: Optional[str] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or settings.PATIENT_API_BASE_URL).rstrip('/')
        self.timeout = timeout or settings.PATIENT_API_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        token = token if token is not None else settings.PATIENT_API_TOKEN
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

    def url(self, endpoint: str) -> str:
        return f'{self.base_url}{endpoint}'

    def patient_endpoint(self, patient_id: str) -> str:
        """``/patients/<id>`` with the id encoded as a single path segment."""
        if str(patient_id) in ('', '.', '..'):
            # dot segments are resolved by the HTTP stack even when quoted
            raise PatientApiError(f'Invalid patient id "{patient_id}"', status_code=404)
        return f'{PATIENTS_ENDPOINT}/{quote(str(patient_id), safe="")}'

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        url = self.url(endpoint)
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error('patient_api_unreachable', method=method, url=url, error=str(exc))
            raise PatientApiUnavailable(f'Could not reach the patient service at {url}') from exc

        logger.info('patient_api_call', method=method, url=url, status=r.status_code)
        content_type = r.headers.get('content-type') or ''
        if 'application/json' not in content_type:
            logger.error('patient_api_non_json', url=url, status=r.status_code, body=r.text[:200])
            raise PatientApiUnavailable(
                f'Server returned HTML instead of JSON. Check if backend is running at {url}',
                status_code=r.status_code,
            )
        try:
            body = r.json()
        except ValueError as exc:
            raise PatientApiUnavailable(f'Malformed JSON from {url}', status_code=r.status_code) from exc

        if not r.ok:
            errors = validation_errors(body)
            if errors:
                raise PatientApiValidationError(errors, status_code=r.status_code)
            raise PatientApiError(f'API Error: {r.status_code} {r.reason}', status_code=r.status_code)
        return body

    # -- patients ------------------------------------------------------------
    def list_patients(self) -> PatientRoster:
        roster = roster_from_payload(self._request('GET', PATIENTS_ENDPOINT))
        if roster.rejected:
            logger.warning('patient_list_partial', kept=len(roster.records), rejected=len(roster.rejected))
        return roster

    def get_patient(self, patient_id: str) -> PatientRecord:
        body = self._request('GET', self.patient_endpoint(patient_id))
        if not isinstance(body, dict):
            raise PatientApiError('Unexpected response for patient detail')
        try:
            return record_from_payload(body)
        except ValueError as exc:
            raise PatientApiError('The patient record could not be read') from exc

    def create_patient(self, payload: dict, files: Optional[list] = None) -> Any:
        """POST a multipart form; ``files`` are ``(field, (name, fh, type))`` parts."""
        data = {k: '' if v is None else str(v) for k, v in payload.items()}
        body = self._request('POST', PATIENTS_ENDPOINT, data=data, files=files or None)
        created_id = (body.get('_id') or body.get('id')) if isinstance(body, dict) else None
        logger.info('patient_created', id=created_id, files=len(files or []))
        return body

    def update_patient(self, patient_id: str, data: dict) -> Any:
        return self._request('PUT', self.patient_endpoint(patient_id), json=data)

    def delete_patient(self, patient_id: str) -> Any:
        return self._request('DELETE', self.patient_endpoint(patient_id))


def get_patient_api() -> PatientApiClient:
    return PatientApiClient()
