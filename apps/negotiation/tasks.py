import logging

from celery import shared_task
from django.db.models import F
from django.utils import timezone

from apps.core.utils.cache_manager import CacheManager
from apps.negotiation.config.negotiation_config import NegotiationConfig
from apps.negotiation.models import NegotiationSession

logger = logging.getLogger("negotiation_performance")


@shared_task(bind=True, max_retries=3)
def expire_stale_negotiations(self):
    """
    Close idle pending negotiations and unredeemed discounts past their expiry.

    Both sweeps are single conditional updates, so a session redeemed or
    advanced concurrently is left alone.
    """
    try:
        start_time = timezone.now()
        now = start_time
        Status = NegotiationSession.Status

        idle = NegotiationSession.objects.filter(
            status=Status.PENDING,
            last_offer_at__lt=now - NegotiationConfig.session_idle_timeout(),
        )
        unredeemed = NegotiationSession.objects.filter(
            status=Status.ACCEPTED,
            discount_applied=False,
            expires_at__lte=now,
        )
        skus = set(idle.values_list("sku", flat=True)) | set(
            unredeemed.values_list("sku", flat=True)
        )

        idle_count = idle.update(
            status=Status.EXPIRED, version=F("version") + 1, updated_at=now
        )
        unredeemed_count = unredeemed.update(status=Status.EXPIRED, updated_at=now)

        for sku in skus:
            CacheManager.invalidate("negotiation", sku=sku)

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Expired {idle_count} idle negotiations and {unredeemed_count} "
            f"unredeemed discounts in {duration:.2f}ms"
        )
        return {"idle_expired": idle_count, "discounts_expired": unredeemed_count}

    except Exception as exc:
        logger.error(f"Failed to expire stale negotiations: {exc}")
        raise self.retry(exc=exc, countdown=60)
