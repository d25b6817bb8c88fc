"""
Access control for the console.

An operator is an active account that is either a superuser or a member
of the ``OPERATOR_GROUP`` Django group.  Pages use
:func:`operator_required`; JSON endpoints use :class:`IsOperator`.
"""
from functools import wraps

from django.conf import settings
from django.contrib.auth.views import redirect_to_login
from django.core.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission


def is_operator(user) -> bool:
    if not (user and user.is_authenticated and user.is_active):
        return False
    if user.is_superuser:
        return True
    return user.groups.filter(name=settings.OPERATOR_GROUP).exists()


class IsOperator(BasePermission):
    """Allow access only to console operators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return is_operator(getattr(request, "user", None))


def operator_required(view_func):
    """Redirect anonymous users to the login page; 403 for non-operators."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return redirect_to_login(request.get_full_path())
        if not is_operator(request.user):
            raise PermissionDenied('operator access required')
        return view_func(request, *args, **kwargs)
    return _wrapped
