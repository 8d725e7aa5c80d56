import hashlib
import logging
import secrets
from typing import Any, Dict, List, Optional

from django.utils import timezone

from apps.negotiation.models import NegotiationSession
from apps.negotiation.utils.exceptions import (
    AlreadyApplied,
    Expired,
    InvalidToken,
    SkuMismatch,
)

from .analytics_service import NegotiationAnalyticsService

logger = logging.getLogger("negotiation_performance")


def _iso(value):
    return value.isoformat() if value else None


class DiscountCredentialService:
    """Issue, redeem, list and cancel negotiated discount tokens."""

    @staticmethod
    def generate_token(session_id: str, final_price, now=None) -> str:
        now = now or timezone.now()
        data = f"{session_id}:{final_price}:{now.timestamp()}"
        salted = f"{data}:{secrets.token_hex(16)}"
        return hashlib.sha256(salted.encode("utf-8")).hexdigest()[:32]

    @staticmethod
    def build_discount_descriptor(session: NegotiationSession) -> Dict[str, Any]:
        return {
            "code": session.discount_code,
            "type": "negotiation",
            "sku": session.sku,
            "original_price": session.base_price,
            "discounted_price": session.final_price,
            "discount_amount": session.discount_amount,
            "discount_pct": session.negotiated_discount_pct,
            "quantity": session.quantity,
            "expires_at": session.expires_at,
            "session_id": session.session_id,
            "metadata": {
                "user_id": session.user_id,
                "rounds": session.current_round,
                "applied_at": session.discount_applied_at,
            },
        }

    @staticmethod
    def apply_discount_to_cart(
        token: str, cart: Dict[str, Any], now=None
    ) -> Dict[str, Any]:
        """
        Redeem a discount token against a cart.

        The redemption flag is flipped by a conditional update keyed on its
        prior value, so of two concurrent callers exactly one succeeds and
        the other sees ``AlreadyApplied``.
        """
        start_time = timezone.now()
        now = now or start_time

        session = NegotiationSession.objects.filter(
            discount_token=token, status=NegotiationSession.Status.ACCEPTED
        ).first()
        if not token or session is None:
            raise InvalidToken()
        if session.discount_applied:
            raise AlreadyApplied(code=session.discount_code)
        if session.is_expired(now):
            raise Expired(code=session.discount_code)

        items = (cart or {}).get("items") or []
        if not any(item.get("sku") == session.sku for item in items):
            raise SkuMismatch(sku=session.sku)

        updated = NegotiationSession.objects.filter(
            pk=session.pk,
            status=NegotiationSession.Status.ACCEPTED,
            discount_applied=False,
            expires_at__gt=now,
        ).update(
            discount_applied=True,
            discount_applied_at=now,
            redemption_source="cart",
            updated_at=now,
        )
        session.refresh_from_db()
        if not updated:
            if session.discount_applied:
                raise AlreadyApplied(code=session.discount_code)
            raise Expired(code=session.discount_code)

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Discount {session.discount_code} applied to cart in {duration:.2f}ms"
        )
        return DiscountCredentialService.build_discount_descriptor(session)

    @staticmethod
    def cancel_discount(token: str, now=None) -> Dict[str, Any]:
        """Cancel an unredeemed discount, closing its session as expired."""
        now = now or timezone.now()
        session = NegotiationSession.objects.filter(discount_token=token).first()
        if not token or session is None:
            raise InvalidToken("Discount not found")

        updated = NegotiationSession.objects.filter(
            pk=session.pk,
            status=NegotiationSession.Status.ACCEPTED,
            discount_applied=False,
        ).update(status=NegotiationSession.Status.EXPIRED, updated_at=now)
        if not updated:
            session.refresh_from_db()
            if session.discount_applied:
                raise AlreadyApplied(
                    "Discount already applied and cannot be cancelled",
                    code=session.discount_code,
                )
            raise Expired(
                "Discount already cancelled or expired", code=session.discount_code
            )

        NegotiationAnalyticsService.invalidate_stats(session.sku)
        logger.info(f"Discount {session.discount_code} cancelled")
        return {"success": True, "message": "Discount cancelled"}

    @staticmethod
    def get_active_discounts(user_id: str, now=None) -> List[Dict[str, Any]]:
        now = now or timezone.now()
        sessions = NegotiationSession.objects.filter(
            user_id=user_id,
            status=NegotiationSession.Status.ACCEPTED,
            discount_applied=False,
            expires_at__gt=now,
        ).order_by("-accepted_at")

        return [
            {
                "session_id": session.session_id,
                "sku": session.sku,
                "original_price": session.base_price,
                "discounted_price": session.final_price,
                "discount": session.discount_amount,
                "discount_pct": session.negotiated_discount_pct,
                "expires_at": session.expires_at,
                "token": session.discount_token,
            }
            for session in sessions
        ]

    @staticmethod
    def generate_shopify_discount(
        session: NegotiationSession, now=None
    ) -> Dict[str, Any]:
        """Price-rule style payload for the Shopify Admin API."""
        now = now or timezone.now()
        return {
            "code": session.discount_code,
            "value_type": "fixed_amount",
            "value": str(session.discount_amount),
            "customer_selection": "prerequisite",
            "prerequisite_customer_ids": [session.user_id],
            "prerequisite_product_ids": [session.sku],
            "usage_limit": 1,
            "starts_at": now.isoformat(),
            "ends_at": _iso(session.expires_at),
        }

    @staticmethod
    def generate_woo_coupon(session: NegotiationSession) -> Dict[str, Any]:
        """Coupon payload for the WooCommerce REST API."""
        return {
            "code": session.discount_code,
            "discount_type": "fixed_product",
            "amount": str(session.discount_amount),
            "product_ids": [session.sku],
            "usage_limit": 1,
            "usage_limit_per_user": 1,
            "individual_use": True,
            "exclude_sale_items": False,
            "date_expires": _iso(session.expires_at),
            "meta_data": [
                {"key": "negotiation_session", "value": session.session_id},
                {"key": "user_id", "value": session.user_id},
            ],
        }

    @staticmethod
    def create_discounted_line_item(
        session: NegotiationSession, extra_metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Cart line item carrying the negotiated price and its session id."""
        metadata = {
            "negotiation_session": session.session_id,
            "negotiated_price": True,
            "expires_at": _iso(session.expires_at),
        }
        metadata.update(extra_metadata or {})
        return {
            "sku": session.sku,
            "quantity": session.quantity,
            "original_price": session.base_price,
            "price": session.final_price,
            "discount": session.discount_amount,
            "discount_pct": session.negotiated_discount_pct,
            "metadata": metadata,
        }
