"""
Operator sign-in and sign-out.

Operators authenticate against Django's user table and receive a
server-side session; every later request is checked by
:func:`frontdesk.permissions.operator_required` or
:class:`frontdesk.permissions.IsOperator`.
"""
from __future__ import annotations

from django.contrib.auth import authenticate, login, logout
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.http import require_http_methods, require_POST
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from frontdesk.logger import get_logger
from frontdesk.permissions import is_operator
from frontdesk.serializers.auth import LoginSerializer
from frontdesk.views.common import safe_next

logger = get_logger(__name__)

INVALID_CREDENTIALS = 'Invalid username or password'
NOT_AN_OPERATOR = 'This account is not allowed to use the console'


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


def _authenticate_operator(request, data) -> tuple[object | None, dict]:
    s = LoginSerializer(data=data)
    if not s.is_valid():
        return None, {k: str(v[0]) for k, v in s.errors.items()}
    username = s.validated_data['username']
    user = authenticate(request, username=username, password=s.validated_data['password'])
    if user is None:
        logger.info('login_failed', username=username, ip=request.META.get('REMOTE_ADDR'))
        return None, {'form': INVALID_CREDENTIALS}
    if not is_operator(user):
        logger.info('login_refused', username=username)
        return None, {'form': NOT_AN_OPERATOR}
    login(request, user)
    logger.info('login_ok', username=username, ip=request.META.get('REMOTE_ADDR'))
    return user, {}


@require_http_methods(['GET', 'POST'])
def login_page(request):
    target = safe_next(request, reverse('dashboard'))
    if request.user.is_authenticated and is_operator(request.user):
        return redirect(target)
    errors: dict = {}
    username = ''
    if request.method == 'POST':
        username = request.POST.get('username', '')
        user, errors = _authenticate_operator(request, request.POST)
        if user is not None:
            return redirect(target)
    return render(request, 'frontdesk/login.html', {
        'errors': errors,
        'username': username,
        'next': target,
    }, status=400 if errors else 200)


@require_POST
def logout_page(request):
    if request.user.is_authenticated:
        logger.info('logout', username=request.user.get_username())
    logout(request)
    return redirect('login')


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    """Session login for API clients; returns the operator profile."""
    user, errors = _authenticate_operator(request, request.data)
    if user is None:
        return Response({'ok': False, 'errors': errors}, status=400)
    return Response({
        'ok': True,
        'user': {
            'id': user.id,
            'username': user.get_username(),
            'email': user.email,
            'name': user.get_full_name() or user.get_username(),
        },
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    logout(request)
    return Response({'ok': True})
