from django.db import DatabaseError, connections
from django.http import JsonResponse

from frontdesk.exceptions import PatientApiError
from frontdesk.services import api_client


def healthz(request):
    """Probe the session database; ``?deep=1`` also calls the patient service."""
    body = {'ok': True}
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        body['db'] = bool(row and row[0] == 1)
    except DatabaseError as e:
        body.update(ok=False, db=False, error=str(e))
    if request.GET.get('deep'):
        try:
            api_client.get_patient_api().list_patients()
            body['patientApi'] = True
        except PatientApiError as e:
            body.update(ok=False, patientApi=False, error=e.message)
    return JsonResponse(body, status=200 if body['ok'] else 503)
