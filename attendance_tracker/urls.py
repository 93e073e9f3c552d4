"""
Main URL configuration for the attendance tracker.

The JSON API is mounted under ``/api/``: attendance submission and reporting
from the ``attendance`` app and admin authentication from the ``users`` app.
"""

from django.contrib import admin
from django.http import HttpRequest, JsonResponse
from django.urls import include, path
from django.views.decorators.http import require_GET


@require_GET
def health(request: HttpRequest) -> JsonResponse:
    """Liveness check for load balancers."""

    return JsonResponse({"status": "ok"})


urlpatterns = [
    path("health", health, name="health"),
    path("api/auth/", include("users.api.urls")),
    path("api/", include("attendance.api.urls")),
    path("admin/", admin.site.urls),
]
