"""
URL configuration for the ward front-desk console.

The ``urlpatterns`` list routes URLs to views.  This module includes
the Django admin, Prometheus metrics and the console routes provided by
the frontdesk app.  OpenAPI documentation for the JSON endpoints is
exposed at ``/swagger/`` and ``/redoc/``.
"""
from django.contrib import admin
from django.urls import path, include

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

# API metadata for Swagger/OpenAPI documentation
api_info = openapi.Info(
    title="Ward Front-Desk API",
    default_version='v1',
    description="JSON endpoints backing the ward front-desk console.",
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # Django admin site (operator account management)
    path('admin/', admin.site.urls),
    # Prometheus exporter at /metrics
    path('', include('django_prometheus.urls')),
    # Console pages and JSON endpoints
    path('', include('frontdesk.routers')),
    # Swagger and ReDoc
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]
