import logging
from decimal import ROUND_CEILING, Decimal
from typing import Any, Dict, Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.negotiation.config.negotiation_config import NegotiationConfig
from apps.negotiation.evaluator import OfferEvaluator, to_price
from apps.negotiation.messages import ACCEPT
from apps.negotiation.models import NegotiationSession
from apps.negotiation.utils.exceptions import (
    DuplicateOffer,
    Expired,
    InvalidInput,
    NegotiationBlocked,
    SessionClosed,
    SessionConflict,
    SessionNotFound,
)

from .analytics_service import NegotiationAnalyticsService
from .discount_service import DiscountCredentialService
from .fraud_service import FraudDetectionService

logger = logging.getLogger("negotiation_performance")

CENT = Decimal("0.01")
# Largest amount the price columns hold
MAX_PRICE = Decimal("9999999999.99")

SESSION_METADATA_FIELDS = ("ip_address", "user_agent", "conversion_source", "language")


class NegotiationSessionService:
    """
    Drives a negotiation session through its rounds.

    Every state change is a single conditional ``UPDATE`` guarded by the
    session's ``version`` and ``status``. A writer that loses the race gets
    ``SessionConflict`` and nothing is written.
    """

    @staticmethod
    def get_session(session_id: str) -> NegotiationSession:
        try:
            return NegotiationSession.objects.get(session_id=session_id)
        except NegotiationSession.DoesNotExist:
            raise SessionNotFound(session_id=session_id)

    @staticmethod
    def expire_if_idle(session: NegotiationSession, now=None) -> bool:
        """Lazily expire a pending session that has been idle too long."""
        now = now or timezone.now()
        if session.status != NegotiationSession.Status.PENDING:
            return False
        if now - session.last_offer_at <= NegotiationConfig.session_idle_timeout():
            return False

        updated = NegotiationSession.objects.filter(
            pk=session.pk, status=NegotiationSession.Status.PENDING
        ).update(
            status=NegotiationSession.Status.EXPIRED,
            version=F("version") + 1,
            updated_at=now,
        )
        if updated:
            logger.info(f"Negotiation {session.session_id} expired after idle timeout")
            NegotiationAnalyticsService.invalidate_stats(session.sku)
        return True

    @staticmethod
    def get_or_create_session(
        sku: str,
        user_id: str,
        unit_price,
        quantity: int = 1,
        metadata: Optional[Dict[str, Any]] = None,
        offered_price=None,
        now=None,
    ) -> Tuple[NegotiationSession, bool]:
        """
        Return the pending session for (sku, user), opening one if needed.

        The base price is fixed here and never changes for the session. A new
        session is screened for fraud first, using the opening
        ``offered_price`` when given; a high-severity flag raises
        ``NegotiationBlocked``.
        """
        now = now or timezone.now()
        price = to_price(unit_price)
        if price is None or price <= 0:
            raise InvalidInput("Base price must be a positive number", sku=sku)
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise InvalidInput("Quantity must be a positive integer", sku=sku)
        if not sku or not user_id:
            raise InvalidInput("sku and user_id are required")
        base_price = price * quantity
        if base_price > MAX_PRICE:
            raise InvalidInput("Base price is too large", sku=sku)
        base_price = base_price.quantize(CENT)
        if base_price <= 0:
            raise InvalidInput("Base price must be a positive number", sku=sku)

        existing = NegotiationSession.objects.filter(
            sku=sku, user_id=user_id, status=NegotiationSession.Status.PENDING
        ).first()
        if existing and not NegotiationSessionService.expire_if_idle(existing, now):
            return existing, False

        extra = {
            key: value
            for key, value in (metadata or {}).items()
            if key in SESSION_METADATA_FIELDS and value not in (None, "")
        }
        flags = FraudDetectionService.detect(
            user_id,
            base_price,
            offered_price=offered_price,
            ip_address=extra.get("ip_address"),
            now=now,
        )
        if FraudDetectionService.is_blocking(flags):
            names = [flag["flag"] for flag in flags]
            logger.warning(f"Blocked negotiation for {user_id} on {sku}: {names}")
            raise NegotiationBlocked(sku=sku, flags=names)

        try:
            with transaction.atomic():
                session = NegotiationSession.objects.create(
                    sku=sku,
                    user_id=user_id,
                    quantity=quantity,
                    base_price=base_price,
                    last_offer_at=now,
                    fraud_flags=flags,
                    **extra,
                )
        except IntegrityError:
            # A concurrent request opened the pending session first
            session = NegotiationSession.objects.filter(
                sku=sku, user_id=user_id, status=NegotiationSession.Status.PENDING
            ).first()
            if session is None:
                raise SessionConflict(sku=sku)
            return session, False

        logger.info(f"Opened negotiation {session.session_id} for {sku}")
        return session, True

    @staticmethod
    def submit_offer(
        session_id: str,
        offered_price,
        evaluator: Optional[OfferEvaluator] = None,
        now=None,
    ) -> Tuple[NegotiationSession, Dict[str, Any]]:
        """
        Evaluate one offer and record it as the next round.

        Returns the refreshed session and the evaluator's decision.
        """
        start_time = timezone.now()
        now = now or start_time
        evaluator = evaluator or OfferEvaluator()

        session = NegotiationSessionService.get_session(session_id)
        if session.is_terminal:
            raise SessionClosed(session_id=session_id, status=session.status)
        if NegotiationSessionService.expire_if_idle(session, now):
            raise Expired("Negotiation session has expired", session_id=session_id)

        offered = to_price(offered_price)
        history = list(session.offer_history)
        if offered is not None and any(
            to_price(entry.get("offered_price")) == offered for entry in history
        ):
            raise DuplicateOffer(session_id=session_id, offered_price=str(offered))

        result = evaluator.evaluate(session.base_price, offered_price, history)

        entry = {
            "offered_price": str(offered if offered is not None else offered_price),
            "decision": result["decision"],
            "counter_price": str(result["counter_offer"]),
            "timestamp": now.isoformat(),
        }
        new_round = session.current_round + 1

        updates = {
            "current_round": new_round,
            "offer_history": history + [entry],
            "last_offer_at": now,
            "version": F("version") + 1,
            "updated_at": now,
        }
        if offered is not None and offered > 0:
            # Anything above the base price is worth the base price
            recorded = min(offered, session.base_price).quantize(CENT)
            if session.initial_offer is None:
                updates["initial_offer"] = recorded
            updates["final_offer"] = recorded

        if result["decision"] == ACCEPT:
            final_price = Decimal(result["counter_offer"]).quantize(
                CENT, rounding=ROUND_CEILING
            )
            updates.update(
                NegotiationSessionService._acceptance_fields(session, final_price, now)
            )
        elif new_round >= evaluator.config.round_cap:
            updates.update(
                status=NegotiationSession.Status.REJECTED,
                rejected_at_round=new_round,
                time_to_decision_seconds=NegotiationSessionService._elapsed(
                    session, now
                ),
            )

        updated = NegotiationSession.objects.filter(
            pk=session.pk,
            version=session.version,
            status=NegotiationSession.Status.PENDING,
        ).update(**updates)
        if not updated:
            raise SessionConflict(session_id=session_id)

        session.refresh_from_db()
        if session.is_terminal:
            NegotiationAnalyticsService.invalidate_stats(session.sku)

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Offer on {session_id} round {new_round}: {result['decision']} "
            f"({session.status}) in {duration:.2f}ms"
        )
        return session, result

    @staticmethod
    def accept_counter_offer(
        session_id: str, now=None
    ) -> NegotiationSession:
        """Accept the most recent counter price of a pending session."""
        start_time = timezone.now()
        now = now or start_time

        session = NegotiationSessionService.get_session(session_id)
        if session.is_terminal:
            raise SessionClosed(session_id=session_id, status=session.status)
        if NegotiationSessionService.expire_if_idle(session, now):
            raise Expired("Negotiation session has expired", session_id=session_id)
        if not session.offer_history:
            raise InvalidInput("No counter offer to accept", session_id=session_id)

        counter = to_price(session.offer_history[-1].get("counter_price"))
        if counter is None or counter <= 0:
            raise InvalidInput("No counter offer to accept", session_id=session_id)

        final_price = min(counter, session.base_price).quantize(CENT)
        updates = NegotiationSessionService._acceptance_fields(session, final_price, now)
        updates.update(version=F("version") + 1, updated_at=now)

        updated = NegotiationSession.objects.filter(
            pk=session.pk,
            version=session.version,
            status=NegotiationSession.Status.PENDING,
        ).update(**updates)
        if not updated:
            raise SessionConflict(session_id=session_id)

        session.refresh_from_db()
        NegotiationAnalyticsService.invalidate_stats(session.sku)

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Counter offer {final_price} accepted on {session_id} in {duration:.2f}ms"
        )
        return session

    @staticmethod
    def _acceptance_fields(session, final_price: Decimal, now) -> Dict[str, Any]:
        discount_given = session.base_price - final_price
        return {
            "status": NegotiationSession.Status.ACCEPTED,
            "final_price": final_price,
            "discount_token": DiscountCredentialService.generate_token(
                session.session_id, final_price, now
            ),
            "accepted_at": now,
            "expires_at": now + NegotiationConfig.discount_ttl(),
            "discount_given": discount_given,
            "discount_pct": (discount_given / session.base_price * 100).quantize(CENT),
            "time_to_decision_seconds": NegotiationSessionService._elapsed(
                session, now
            ),
        }

    @staticmethod
    def _elapsed(session, now) -> int:
        return max(int((now - session.created_at).total_seconds()), 0)
