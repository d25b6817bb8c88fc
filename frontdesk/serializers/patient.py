import re

from rest_framework import serializers

MONTH_RE = re.compile(r'^\d{4}-\d{2}$')


def _text(**kwargs):
    return serializers.CharField(required=False, allow_blank=True, allow_null=True, default='', **kwargs)


class PatientPayloadSerializer(serializers.Serializer):
    """Shape check for one element of ``GET /patients``.

    Everything is optional: the service owns the record, this only makes
    sure scalar fields are scalars before they reach the templates.
    """
    _id = _text()
    id = _text()
    patient_name = _text()
    age = _text()
    gender = _text()
    patient_contact = _text()
    patient_email = _text()
    emergency_name = _text()
    emergency_email = _text()
    emergency_contact = _text()
    medical_condition = _text()
    assigned_doctor = _text()
    doctor_notes = _text()
    admission_date = _text()
    discharge_date = _text()
    medication_details = serializers.DictField(required=False, allow_null=True, default=dict)
    insurer_justification_pdf_url = _text()
    bill_details = serializers.JSONField(required=False, allow_null=True, default=None)
    reports = serializers.JSONField(required=False, allow_null=True, default=None)
    doctor_medical_certificate = serializers.JSONField(required=False, allow_null=True, default=None)


class CalendarQuerySerializer(serializers.Serializer):
    month = serializers.CharField(required=False, allow_blank=True)

    def validate_month(self, v):
        v = (v or '').strip()
        if v and not MONTH_RE.match(v):
            raise serializers.ValidationError('month must look like YYYY-MM')
        if v and not 1 <= int(v[5:]) <= 12:
            raise serializers.ValidationError('month must be between 01 and 12')
        return v


class IntakeValidateSerializer(serializers.Serializer):
    step = serializers.ChoiceField(choices=[1, 2])
    values = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False, default=dict)
