# crebit/settings/test.py

from .base import *  # noqa: F401, F403

SECRET_KEY = "test-secret-key"

# File-backed so worker threads share the database. IMMEDIATE makes every
# atomic block take the write lock up front and wait for it.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": str(BASE_DIR / "test_crebit.sqlite3"),
        "OPTIONS": {
            "transaction_mode": "IMMEDIATE",
            "timeout": 20,
        },
        "TEST": {
            "NAME": str(BASE_DIR / "test_crebit.sqlite3"),
        },
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

WOMPI_PUBLIC_KEY = "pub_test_key"
WOMPI_PRIVATE_KEY = "prv_test_key"
WOMPI_INTEGRITY_SECRET = "test_integrity_secret"
WOMPI_EVENTS_SECRET = "test_events_secret"
WOMPI_API_URL = "https://sandbox.wompi.test/v1"

RECHARGE_POLL_INTERVAL_SECONDS = 0

LOGGING["loggers"]["apps"]["level"] = "DEBUG"
