# apps/availabilityapp/apps.py
from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class AvailabilityAppConfig(AppConfig):
    name = "apps.availabilityapp"
    verbose_name = _("Instructor Availability")
    default_auto_field = "django.db.models.BigAutoField"
