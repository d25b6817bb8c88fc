"""
Dashboard: headline figures plus a searchable, status-filtered table.
"""
from __future__ import annotations

from django.shortcuts import render
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from frontdesk.permissions import IsOperator, operator_required
from frontdesk.services import api_client
from frontdesk.services.stats import STATUS_LABELS, dashboard_stats, search_records, stay_status
from frontdesk.views.common import load_roster


@operator_required
def dashboard_page(request):
    today = timezone.localdate()
    roster, error = load_roster()
    term = request.GET.get('q', '')
    status = request.GET.get('status', '')
    if status not in STATUS_LABELS:
        status = ''
    rows = [
        {'record': r, 'status': stay_status(r, today), 'status_label': STATUS_LABELS[stay_status(r, today)]}
        for r in search_records(roster.records, term, status, today)
    ]
    return render(request, 'frontdesk/dashboard.html', {
        'stats': dashboard_stats(roster.records, today),
        'rows': rows,
        'term': term,
        'status': status,
        'status_labels': STATUS_LABELS,
        'today': today,
        'admitting_today': [r for r in roster.records if r.has_valid_stay and r.admission == today],
        'discharging_today': [r for r in roster.records if r.has_valid_stay and r.discharge == today],
        'rejected': roster.rejected,
        'error': error,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOperator])
def dashboard_stats_view(request):
    """Return dashboard figures computed from the live patient list."""
    today = timezone.localdate()
    roster = api_client.get_patient_api().list_patients()
    return Response({
        'ok': True,
        'date': today.isoformat(),
        'data': dashboard_stats(roster.records, today),
        'rejected': len(roster.rejected),
    })
