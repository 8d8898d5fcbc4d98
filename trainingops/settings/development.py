"""
Development settings for Training Ops project.

These settings override the base settings for local development environments.
"""

from .base import *  # noqa: F401,F403
from .base import config

DEBUG = config("DEBUG", default=True, cast=bool)

ALLOWED_HOSTS = ["*"]

# Local Postgres unless USE_SQLITE is set
if not config("USE_SQLITE", default=False, cast=bool):
    DATABASES["default"].update(  # noqa: F405
        {
            "HOST": config("POSTGRES_HOST", default="localhost"),
            "CONN_MAX_AGE": 300,
            "OPTIONS": {
                "connect_timeout": 5,
                "sslmode": config("POSTGRES_SSL_MODE", default="disable"),
            },
        }
    )

# Redis is optional locally; fall back to process memory
if not config("REDIS_URL", default=""):
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "trainingops-dev",
        }
    }

LOGGING["loggers"]["apps"]["level"] = "DEBUG"  # noqa: F405
