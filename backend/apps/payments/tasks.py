# apps/payments/tasks.py

import logging
from celery import shared_task

from .services import reconcile_checkouts

logger = logging.getLogger(__name__)


@shared_task(soft_time_limit=300)
def reconcile_open_checkouts() -> dict:
    """
    Credit approved transactions whose webhook never arrived.

    Runs periodically via Celery Beat.
    """
    return reconcile_checkouts()
