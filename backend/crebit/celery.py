# crebit/celery.py

import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "crebit.settings.local")

app = Celery("crebit")

# CELERY_* settings, including the beat schedule for quota resets and
# checkout reconciliation.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up match_new_lead, reset_expired_quotas, reconcile_open_checkouts.
app.autodiscover_tasks()
