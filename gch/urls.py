"""
Root URL map.

The portal API lives in ``care.routers`` at the site root, the Django
admin at ``/django-admin/`` and the interactive API docs at
``/swagger/`` and ``/redoc/``.
"""
from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework.permissions import AllowAny

api_info = openapi.Info(
    title="GCH Healthcare API",
    default_version="v1",
    description="Appointments, check-in queue, consultations, prescriptions, lab orders and supply.",
)

schema_view = get_schema_view(api_info, public=True, permission_classes=[AllowAny])

docs = [
    path("swagger/", schema_view.with_ui("swagger", cache_timeout=0), name="schema-swagger-ui"),
    path("redoc/", schema_view.with_ui("redoc", cache_timeout=0), name="schema-redoc"),
]

urlpatterns = [
    path("django-admin/", admin.site.urls),
    path("", include("care.routers")),
] + docs
