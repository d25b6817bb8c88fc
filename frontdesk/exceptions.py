"""
Error types raised when talking to the patient service, and the unified
exception handler used by the JSON endpoints.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from frontdesk.logger import get_logger

logger = get_logger(__name__)


class PatientApiError(Exception):
    """Base class for failures of the remote patient service."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PatientApiUnavailable(PatientApiError):
    """Network failure or a response that is not JSON."""


class PatientApiValidationError(PatientApiError):
    """The service rejected a submission with a ``detail`` error array."""

    def __init__(self, errors: list[tuple[str, str]], status_code: int | None = None):
        lines = '\n'.join(f'{field}: {msg}' for field, msg in errors)
        super().__init__(f'Validation Error:\n{lines}', status_code)
        self.errors = errors


def api_exception_handler(exc, context):
    if isinstance(exc, PatientApiError):
        logger.warning('upstream_error', message=exc.message, upstream_status=exc.status_code)
        return Response(
            {'ok': False, 'error': {'code': 'upstream_error', 'message': exc.message}},
            status=status.HTTP_502_BAD_GATEWAY,
        )
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled_api_error')
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)
