from django.shortcuts import redirect
from django.urls import reverse
from django.views.decorators.http import require_POST

from frontdesk.permissions import operator_required
from frontdesk.views.common import safe_next


@operator_required
@require_POST
def toggle_theme(request):
    """Flip between the light and dark theme for this session."""
    current = request.session.get('theme', 'light')
    request.session['theme'] = 'light' if current == 'dark' else 'dark'
    return redirect(safe_next(request, reverse('dashboard')))
