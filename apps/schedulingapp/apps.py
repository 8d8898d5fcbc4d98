# apps/schedulingapp/apps.py
from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class SchedulingAppConfig(AppConfig):
    name = "apps.schedulingapp"
    verbose_name = _("Course Scheduling")
    default_auto_field = "django.db.models.BigAutoField"
