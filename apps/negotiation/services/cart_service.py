import logging
from typing import Any, Dict

from django.utils import timezone

from apps.negotiation.evaluator import to_price
from apps.negotiation.models import NegotiationSession
from apps.negotiation.utils.exceptions import Expired, PriceMismatch, SessionNotFound

logger = logging.getLogger("negotiation_performance")


class CartValidationService:
    """Pre-checkout validation of cart lines that carry a negotiated price."""

    @staticmethod
    def session_reference(item: Dict[str, Any]):
        metadata = item.get("metadata")
        if not isinstance(metadata, dict):
            return None
        return metadata.get("negotiation_session")

    @staticmethod
    def validate_negotiated_cart(cart: Dict[str, Any], now=None) -> Dict[str, Any]:
        """
        Check every negotiated line item against its session.

        All problems are collected in one pass; the cart is valid only when
        no errors were found. An already redeemed discount is only a warning.
        """
        start_time = timezone.now()
        now = now or start_time
        errors = []
        warnings = []

        items = [
            item
            for item in (cart or {}).get("items") or []
            if CartValidationService.session_reference(item)
        ]
        session_ids = {
            reference
            for reference in map(CartValidationService.session_reference, items)
            if isinstance(reference, str)
        }
        sessions = {
            session.session_id: session
            for session in NegotiationSession.objects.filter(session_id__in=session_ids)
        }

        for item in items:
            sku = item.get("sku")
            reference = CartValidationService.session_reference(item)
            session = sessions.get(reference) if isinstance(reference, str) else None

            if session is None:
                errors.append(
                    _issue(SessionNotFound, sku, f"Invalid negotiation session for {sku}")
                )
                continue

            if session.is_expired(now):
                errors.append(
                    _issue(Expired, sku, f"Negotiated price for {sku} has expired")
                )
                continue

            if session.status != NegotiationSession.Status.ACCEPTED:
                errors.append(
                    {
                        "code": "NotAccepted",
                        "sku": sku,
                        "message": f"Negotiation for {sku} was not accepted",
                    }
                )
                continue

            if session.discount_applied:
                warnings.append(
                    {
                        "code": "AlreadyApplied",
                        "sku": sku,
                        "message": f"Discount for {sku} already applied",
                    }
                )

            if to_price(item.get("price")) != session.final_price:
                errors.append(
                    _issue(PriceMismatch, sku, f"Price mismatch for {sku}")
                )

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Validated {len(items)} negotiated cart items in {duration:.2f}ms "
            f"({len(errors)} errors, {len(warnings)} warnings)"
        )
        return {"valid": not errors, "errors": errors, "warnings": warnings}


def _issue(error_class, sku, message):
    return {"code": error_class.code, "sku": sku, "message": message}
