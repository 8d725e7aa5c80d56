import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.utils import timezone

from apps.negotiation.config.negotiation_config import NegotiationConfig
from apps.negotiation.evaluator import to_price
from apps.negotiation.models import NegotiationSession

logger = logging.getLogger("negotiation_performance")

HIGH = "high"
MEDIUM = "medium"

USER_WINDOW = timedelta(hours=24)
IP_WINDOW = timedelta(hours=1)


class FraudDetectionService:
    """Risk checks run when a shopper opens a new negotiation"""

    @staticmethod
    def detect(
        user_id: str,
        base_price: Decimal,
        offered_price=None,
        ip_address: Optional[str] = None,
        now=None,
    ) -> List[Dict[str, Any]]:
        """
        Flag suspicious negotiation activity.

        - ``extreme_lowball`` (medium): the opening offer is below the
          lowball ratio of the base price.
        - ``excessive_negotiations`` (high): the user opened more sessions in
          the last 24 hours than allowed.
        - ``multi_account_ip`` (high): too many other users negotiated from
          the same IP address in the last hour.
        """
        start_time = timezone.now()
        now = now or start_time
        flags = []

        offered = to_price(offered_price)
        if (
            offered is not None
            and offered > 0
            and offered < base_price * NegotiationConfig.fraud_lowball_ratio()
        ):
            flags.append(_flag("extreme_lowball", MEDIUM, now))

        recent_sessions = NegotiationSession.objects.filter(
            user_id=user_id, created_at__gte=now - USER_WINDOW
        ).count()
        if recent_sessions > NegotiationConfig.fraud_max_daily_negotiations():
            flags.append(_flag("excessive_negotiations", HIGH, now))

        if ip_address:
            other_accounts = (
                NegotiationSession.objects.filter(
                    ip_address=ip_address, created_at__gte=now - IP_WINDOW
                )
                .exclude(user_id=user_id)
                .values("user_id")
                .distinct()
                .count()
            )
            if other_accounts > NegotiationConfig.fraud_max_accounts_per_ip():
                flags.append(_flag("multi_account_ip", HIGH, now))

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Fraud check for {user_id} raised {len(flags)} flags in {duration:.2f}ms"
        )
        return flags

    @staticmethod
    def is_blocking(flags: List[Dict[str, Any]]) -> bool:
        return any(flag["severity"] == HIGH for flag in flags)


def _flag(name: str, severity: str, now) -> Dict[str, Any]:
    return {"flag": name, "severity": severity, "timestamp": now.isoformat()}
