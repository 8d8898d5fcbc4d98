"""Training Ops main URL configuration."""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path


def health(request):
    """Minimal health-check endpoint used by load-balancers / uptime checks."""
    return JsonResponse({"status": "ok"})


urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", health, name="health"),
    path("api/v1/", include("api.v1.urls")),
]
