"""
Add-patient wizard.

Each POST carries an ``action`` (``start``, ``next``, ``previous``,
``upload``, ``remove:<index>``, ``submit`` or ``cancel``) plus the fields of the
current step.  The wizard is stored in the session and the page always
answers with a redirect, so reloading never resubmits.
"""
from __future__ import annotations

from django.contrib import messages
from django.shortcuts import redirect, render
from django.views.decorators.http import require_http_methods
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from frontdesk.exceptions import PatientApiError
from frontdesk.logger import get_logger
from frontdesk.permissions import IsOperator, operator_required
from frontdesk.serializers.patient import IntakeValidateSerializer
from frontdesk.services import api_client
from frontdesk.services.attachments import PendingDocumentStore
from frontdesk.services.intake import (
    DOCTOR_CHOICES,
    GENDER_CHOICES,
    DocumentType,
    IntakeDraft,
    IntakeWizard,
    WizardStep,
    validate_step,
)

logger = get_logger(__name__)

SESSION_KEY = IntakeWizard.SESSION_KEY


def _save(request, wizard: IntakeWizard) -> None:
    request.session[SESSION_KEY] = wizard.to_session()


def _close(request, wizard: IntakeWizard, store: PendingDocumentStore) -> None:
    wizard.discard(store)
    request.session.pop(SESSION_KEY, None)


def _submit(request, wizard: IntakeWizard, store: PendingDocumentStore) -> bool:
    if not wizard.ready_to_submit():
        return False
    try:
        with store.opened(wizard.documents) as parts:
            api_client.get_patient_api().create_patient(wizard.backend_payload(), parts)
    except PatientApiError as exc:
        logger.warning('intake_submit_failed', error=exc.message)
        messages.error(request, exc.message)
        return False
    except OSError:
        logger.exception('intake_attachment_missing')
        messages.error(request, 'Failed to add patient. Please try again.')
        return False
    return True


@operator_required
@require_http_methods(['GET', 'POST'])
def intake_page(request):
    store = PendingDocumentStore()
    wizard = IntakeWizard.from_session(request.session.get(SESSION_KEY))
    if request.method == 'GET':
        _save(request, wizard)
        return render(request, 'frontdesk/intake.html', {
            'wizard': wizard,
            'draft': wizard.draft,
            'errors': wizard.errors,
            'steps': list(WizardStep),
            'gender_choices': GENDER_CHOICES,
            'doctor_choices': DOCTOR_CHOICES,
            'doc_types': list(DocumentType),
        })

    action = request.POST.get('action', 'next')
    if action == 'start':
        # a fresh wizard every time the "Add patient" button is used
        _close(request, wizard, store)
        return redirect('intake')
    wizard.update(request.POST)
    if 'docType' in request.POST:
        wizard.select_doc_type(request.POST['docType'])

    if action == 'cancel':
        _close(request, wizard, store)
        return redirect('patients')
    if action == 'next':
        wizard.advance()
    elif action == 'previous':
        wizard.retreat()
    elif action == 'upload' and wizard.is_last_step:
        upload = request.FILES.get('document')
        if upload is None:
            wizard.errors['fileUpload'] = 'Choose a PDF file to upload'
        else:
            wizard.attach(upload, store)
    elif action.startswith('remove:'):
        index = action.split(':', 1)[1]
        if index.isdecimal():
            wizard.remove_document(int(index), store)
    elif action == 'submit':
        if _submit(request, wizard, store):
            name = wizard.draft.name.strip()
            _close(request, wizard, store)
            messages.success(request, f'{name} was added.')
            return redirect('patients')
    _save(request, wizard)
    return redirect('intake')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOperator])
def intake_validate_view(request):
    """Validate the fields of one wizard step without changing any state."""
    s = IntakeValidateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    draft = IntakeDraft.from_dict(s.validated_data.get('values') or {})
    errors = validate_step(draft, WizardStep(s.validated_data['step']))
    return Response({'ok': not errors, 'errors': errors})
