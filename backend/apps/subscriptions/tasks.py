# apps/subscriptions/tasks.py

import logging
from celery import shared_task

from .quota import reset_expired_windows
from .services import process_new_lead

logger = logging.getLogger(__name__)


@shared_task(soft_time_limit=60)
def match_new_lead(lead_id: int) -> dict:
    """
    Notify matching subscribers of a newly offered lead and run auto-buys.

    Queued on commit whenever a lead enters the OFFERED state.
    """
    return process_new_lead(lead_id)


@shared_task
def reset_expired_quotas() -> dict:
    """Zero daily counters whose 24h window has elapsed. Runs via Celery Beat."""
    from django.utils import timezone

    reset = reset_expired_windows()
    return {"reset": reset, "timestamp": timezone.now().isoformat()}
