from frontdesk.permissions import is_operator

THEMES = ('light', 'dark')


def console(request):
    """Expose the signed-in operator and the theme preference to templates."""
    user = getattr(request, 'user', None)
    theme = request.session.get('theme', 'light') if hasattr(request, 'session') else 'light'
    if theme not in THEMES:
        theme = 'light'
    signed_in = bool(user and user.is_authenticated)
    return {
        'operator_email': (user.email or user.get_username()) if signed_in else '',
        'is_operator': is_operator(user) if signed_in else False,
        'theme': theme,
    }
