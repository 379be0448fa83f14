"""Root URL configuration for waitly."""

from __future__ import annotations

from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

# -----------------------------------------------------------------------------
# Swagger / ReDoc API schema setup
# -----------------------------------------------------------------------------

schema_view = get_schema_view(
    openapi.Info(
        title="Waitly API",
        default_version="v1",
        description="Virtual queue: join, position, wait estimates and counter operations",
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/queue/", include("apps.queueapp.urls")),
    path("api/docs/", schema_view.with_ui("swagger", cache_timeout=0), name="schema-swagger-ui"),
]
