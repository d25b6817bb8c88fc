"""
URL mappings for the console.

Pages render HTML for operators; ``api/`` routes return JSON for scripts
and the swagger UI.  Paths have no trailing slash.
"""
from django.urls import path
from django.views.generic import RedirectView

from .views import auth, calendar, dashboard, health, intake, patients, preferences


urlpatterns = [
    path('', RedirectView.as_view(pattern_name='dashboard', permanent=False)),
    path('healthz', health.healthz, name='healthz'),
    # Session
    path('login', auth.login_page, name='login'),
    path('logout', auth.logout_page, name='logout'),
    path('preferences/theme', preferences.toggle_theme, name='toggle_theme'),
    # Pages
    path('dashboard', dashboard.dashboard_page, name='dashboard'),
    path('patients', patients.patient_list_page, name='patients'),
    path('patients/new', intake.intake_page, name='intake'),
    path('patients/<str:patient_id>', patients.patient_detail_page, name='patient_detail'),
    path('appointments', calendar.calendar_page, name='calendar'),
    # JSON API
    path('api/auth/login', auth.login_view, name='login_view'),
    path('api/auth/logout', auth.logout_view, name='logout_view'),
    path('api/dashboard', dashboard.dashboard_stats_view, name='dashboard_stats_view'),
    path('api/calendar', calendar.calendar_view, name='calendar_view'),
    path('api/intake/validate', intake.intake_validate_view, name='intake_validate_view'),
]
