"""
Patient directory and patient detail pages.
"""
from __future__ import annotations

from django.http import Http404
from django.shortcuts import render

from frontdesk.exceptions import PatientApiError
from frontdesk.logger import get_logger
from frontdesk.permissions import operator_required
from frontdesk.services import api_client
from frontdesk.services.stats import search_records
from frontdesk.views.common import load_roster

logger = get_logger(__name__)


@operator_required
def patient_list_page(request):
    roster, error = load_roster()
    term = request.GET.get('q', '')
    patients = search_records(roster.records, term)
    return render(request, 'frontdesk/patients/list.html', {
        'patients': patients,
        'term': term,
        'total': len(roster.records),
        'rejected': roster.rejected,
        'error': error,
    })


@operator_required
def patient_detail_page(request, patient_id: str):
    """Show one patient with their documents grouped in tabs.

    ``?tab=<kind>`` selects the tab and ``?doc=<n>`` opens the n-th
    document of that tab in the embedded viewer.
    """
    try:
        patient = api_client.get_patient_api().get_patient(patient_id)
    except PatientApiError as exc:
        if exc.status_code == 404:
            raise Http404('patient not found') from exc
        logger.warning('patient_detail_unavailable', patient_id=patient_id, error=exc.message)
        return render(request, 'frontdesk/patients/detail.html', {
            'patient': None,
            'error': 'Failed to load this patient. Please try again.',
        })

    tabs = patient.document_tabs
    tab_kinds = [kind for kind, _, _ in tabs]
    active_tab = request.GET.get('tab') or (tab_kinds[0] if tab_kinds else '')
    if active_tab not in tab_kinds:
        active_tab = tab_kinds[0] if tab_kinds else ''
    documents = patient.documents_of(active_tab) if active_tab else []
    viewing = None
    doc_index = request.GET.get('doc', '')
    if doc_index.isdecimal() and int(doc_index) < len(documents):
        viewing = documents[int(doc_index)]
    return render(request, 'frontdesk/patients/detail.html', {
        'patient': patient,
        'tabs': tabs,
        'active_tab': active_tab,
        'documents': documents,
        'viewing': viewing,
        'error': None,
    })
