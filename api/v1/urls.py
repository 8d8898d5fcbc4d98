# api/v1/urls.py
from django.urls import include, path

urlpatterns = [
    path("availability/", include("apps.availabilityapp.urls")),
    path("scheduling/", include("apps.schedulingapp.urls")),
]
