"""
Admission timeline: one row per patient staying in the displayed month.
"""
from __future__ import annotations

from django.shortcuts import render
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from frontdesk.permissions import IsOperator, operator_required
from frontdesk.serializers.patient import CalendarQuerySerializer
from frontdesk.services import api_client
from frontdesk.services.calendar import build_timeline, parse_month
from frontdesk.views.common import load_roster


@operator_required
def calendar_page(request):
    today = timezone.localdate()
    year, month = parse_month(request.GET.get('month'), today)
    roster, error = load_roster()
    timeline = build_timeline(roster.records, year, month, today)
    return render(request, 'frontdesk/calendar.html', {
        'timeline': timeline,
        'rejected': roster.rejected,
        'error': error,
    })


def _serialize_timeline(timeline) -> dict:
    return {
        'month': timeline.key,
        'title': timeline.title,
        'previous': timeline.previous_key,
        'next': timeline.next_key,
        'days': [{'day': d.day, 'weekday': d.weekday, 'isToday': d.is_today} for d in timeline.days],
        'patients': [
            {
                'id': row.record.id,
                'name': row.record.name,
                'condition': row.record.condition,
                'doctor': row.record.doctor,
                'admissionDate': row.record.admission.isoformat(),
                'dischargeDate': row.record.discharge.isoformat(),
                'color': row.color,
                'days': row.days_occupied,
            }
            for row in timeline.rows
        ],
        'flagged': [
            {'id': r.id, 'name': r.name, 'issue': r.stay_issue}
            for r in timeline.flagged
        ],
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOperator])
def calendar_view(request):
    """Return the month timeline for ``?month=YYYY-MM`` (default: current month)."""
    q = CalendarQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    today = timezone.localdate()
    year, month = parse_month(q.validated_data.get('month'), today)
    roster = api_client.get_patient_api().list_patients()
    timeline = build_timeline(roster.records, year, month, today)
    return Response({'ok': True, 'data': _serialize_timeline(timeline)})
