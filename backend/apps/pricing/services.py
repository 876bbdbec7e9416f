# apps/pricing/services.py

import logging

from django.db import IntegrityError, transaction
from django.db.models import Max

from apps.common.exceptions import StorageConflict
from apps.common.retry import retry_on_conflict

from .models import PricingConfig

logger = logging.getLogger(__name__)


@retry_on_conflict
def update_pricing(
    lead_prices: dict,
    commission_rates: dict,
    user=None,
) -> PricingConfig:
    """
    Publish a new pricing version.

    Two admins saving at once race for the same version number; the loser
    hits the unique constraint and is retried against the new latest version.
    """
    with transaction.atomic():
        current = PricingConfig.objects.aggregate(v=Max("version"))["v"] or 0
        try:
            with transaction.atomic():
                config = PricingConfig.objects.create(
                    version=current + 1,
                    lead_prices=lead_prices,
                    commission_rates=commission_rates,
                    created_by=user,
                )
        except IntegrityError as e:
            raise StorageConflict("Pricing was updated concurrently. Reload and try again.") from e

    logger.info(f"Published pricing v{config.version}")
    return config
