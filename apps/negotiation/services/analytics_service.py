import logging
from decimal import Decimal
from typing import Any, Dict

from django.core.cache import cache
from django.db import transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone

from apps.core.utils.cache_key_manager import CacheKeyManager
from apps.core.utils.cache_manager import CacheManager
from apps.negotiation.config.negotiation_config import NegotiationConfig
from apps.negotiation.models import NegotiationSession

logger = logging.getLogger("negotiation_performance")


class NegotiationAnalyticsService:
    """Per-SKU negotiation statistics, cached until a session for the SKU closes."""

    @staticmethod
    def invalidate_stats(sku: str):
        """Drop the cached stats for ``sku`` once the current transaction commits."""
        transaction.on_commit(lambda: CacheManager.invalidate("negotiation", sku=sku))

    @staticmethod
    def get_negotiation_stats(sku: str) -> Dict[str, Any]:
        cache_key = CacheKeyManager.make_key("negotiation", "stats", sku=sku)
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit for negotiation stats {sku}")
            return cached

        start_time = timezone.now()
        Status = NegotiationSession.Status
        aggregates = NegotiationSession.objects.filter(sku=sku).aggregate(
            total=Count("id"),
            accepted=Count("id", filter=Q(status=Status.ACCEPTED)),
            rejected=Count("id", filter=Q(status=Status.REJECTED)),
            expired=Count("id", filter=Q(status=Status.EXPIRED)),
            pending=Count("id", filter=Q(status=Status.PENDING)),
            avg_initial_offer=Avg("initial_offer"),
            avg_final_price=Avg("final_price", filter=Q(status=Status.ACCEPTED)),
            avg_discount_pct=Avg("discount_pct", filter=Q(status=Status.ACCEPTED)),
            avg_rounds=Avg("current_round"),
        )

        total = aggregates["total"]
        accepted = aggregates["accepted"]
        stats = {
            "sku": sku,
            "total": total,
            "accepted": accepted,
            "rejected": aggregates["rejected"],
            "expired": aggregates["expired"],
            "pending": aggregates["pending"],
            "avg_offered_price": _rounded(aggregates["avg_initial_offer"]),
            "avg_final_price": _rounded(aggregates["avg_final_price"]),
            "avg_discount_pct": _rounded(aggregates["avg_discount_pct"]),
            "avg_rounds": _rounded(aggregates["avg_rounds"]),
            "success_rate": (
                (Decimal(accepted) / Decimal(total) * 100).quantize(Decimal("0.01"))
                if total
                else Decimal("0")
            ),
        }

        cache.set(cache_key, stats, NegotiationConfig.stats_cache_timeout())

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(f"Negotiation stats for {sku} computed in {duration:.2f}ms")
        return stats


def _rounded(value):
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"))
