import os
from .base import *

DEBUG = True

SECRET_KEY = "dev-secret-key-not-for-production"

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "web"]

# Works both locally (localhost) and in container (postgres)
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": "crebit",
        "USER": "crebit",
        "PASSWORD": "crebit",
        "HOST": os.environ.get("DATABASE_HOST", "localhost"),
        "PORT": "5432",
    }
}

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = CELERY_BROKER_URL

# Run tasks synchronously in dev for easier debugging
CELERY_TASK_ALWAYS_EAGER = False  # Set True if you want synchronous tasks

# Wompi sandbox
WOMPI_API_URL = os.environ.get("WOMPI_API_URL", "https://sandbox.wompi.co/v1")
WOMPI_INTEGRITY_SECRET = os.environ.get("WOMPI_INTEGRITY_SECRET", "test_integrity_secret")
WOMPI_EVENTS_SECRET = os.environ.get("WOMPI_EVENTS_SECRET", "test_events_secret")
