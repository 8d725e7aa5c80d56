"""
Entry points of the negotiation engine.

Each function validates its input, calls the services and returns a plain
dict. Domain errors never escape: they come back as
``{"success": False, "error": {"code": ..., "message": ...}}`` so any
transport (DRF view, Celery task, management command) can relay them.
"""

import logging
from functools import wraps
from typing import Any, Dict, Optional, Sequence

from apps.core.utils.extract_error import extract_validation_error_message
from apps.negotiation.evaluator import OfferEvaluator
from apps.negotiation.serializers import (
    ActiveDiscountSerializer,
    CartSerializer,
    DiscountDescriptorSerializer,
    NegotiationSessionSerializer,
    OfferSerializer,
)
from apps.negotiation.services import (
    CartValidationService,
    DiscountCredentialService,
    NegotiationAnalyticsService,
    NegotiationSessionService,
    WebhookReconciler,
)
from apps.negotiation.services.session_service import SESSION_METADATA_FIELDS
from apps.negotiation.utils.exceptions import (
    InvalidInput,
    NegotiationError,
    SignatureInvalid,
)

logger = logging.getLogger(__name__)


def failure(error: NegotiationError) -> Dict[str, Any]:
    return {"success": False, "error": error.as_dict()}


def negotiation_operation(func):
    """Turn ``NegotiationError`` raised by ``func`` into a failure dict."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except NegotiationError as e:
            logger.info(f"{func.__name__} failed: {e.code} {e.message}")
            return failure(e)

    return wrapper


def _validated(serializer_class, data):
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise InvalidInput(extract_validation_error_message(serializer.errors))
    return serializer.validated_data


def evaluate_offer(
    base_price,
    offered_price,
    offer_history: Optional[Sequence[Any]] = None,
    evaluator: Optional[OfferEvaluator] = None,
) -> Dict[str, Any]:
    """Stateless evaluation; never fails."""
    result = (evaluator or OfferEvaluator()).evaluate(
        base_price, offered_price, offer_history
    )
    return {"success": True, **result}


@negotiation_operation
def make_offer(data: Dict[str, Any], evaluator: Optional[OfferEvaluator] = None):
    """
    Record an offer for a (sku, user) pair, opening the session on first use.

    ``data`` holds ``sku``, ``user_id``, ``unit_price``, ``offered_price`` and
    optionally ``quantity`` plus request metadata.
    """
    offer = _validated(OfferSerializer, data)
    metadata = {key: offer[key] for key in SESSION_METADATA_FIELDS if key in offer}

    session, _ = NegotiationSessionService.get_or_create_session(
        sku=offer["sku"],
        user_id=offer["user_id"],
        unit_price=offer["unit_price"],
        quantity=offer["quantity"],
        metadata=metadata,
        offered_price=offer["offered_price"],
    )
    session, result = NegotiationSessionService.submit_offer(
        session.session_id, offer["offered_price"], evaluator=evaluator
    )
    return {
        "success": True,
        **result,
        "session": NegotiationSessionSerializer(session).data,
    }


@negotiation_operation
def accept_counter_offer(session_id: str):
    session = NegotiationSessionService.accept_counter_offer(session_id)
    return {"success": True, "session": NegotiationSessionSerializer(session).data}


@negotiation_operation
def apply_discount(token: str, cart: Dict[str, Any]):
    validated = _validated(CartSerializer, cart)
    descriptor = DiscountCredentialService.apply_discount_to_cart(token, validated)
    return {
        "success": True,
        "discount": DiscountDescriptorSerializer(descriptor).data,
    }


@negotiation_operation
def validate_cart(cart: Dict[str, Any]):
    validated = _validated(CartSerializer, cart)
    return {"success": True, **CartValidationService.validate_negotiated_cart(validated)}


@negotiation_operation
def cancel_discount(token: str):
    return DiscountCredentialService.cancel_discount(token)


@negotiation_operation
def list_active_discounts(user_id: str):
    if not user_id:
        raise InvalidInput("user_id is required")
    discounts = DiscountCredentialService.get_active_discounts(user_id)
    return {
        "success": True,
        "discounts": ActiveDiscountSerializer(discounts, many=True).data,
    }


@negotiation_operation
def negotiation_stats(sku: str):
    return {"success": True, "stats": NegotiationAnalyticsService.get_negotiation_stats(sku)}


def handle_webhook(
    platform: str, event: str, raw_payload, signature_header: Optional[str] = None
) -> Dict[str, Any]:
    """
    Process a platform webhook.

    ``status`` is 401 for a bad signature, 400 for any other failure and 200
    otherwise, including events that are acknowledged but not processed.
    """
    try:
        result = WebhookReconciler.handle_webhook(
            platform, event, raw_payload, signature_header
        )
    except SignatureInvalid as e:
        return {"processed": False, "status": 401, "error": e.as_dict()}
    except NegotiationError as e:
        logger.warning(f"Webhook {platform} {event} failed: {e.code} {e.message}")
        return {"processed": False, "status": 400, "error": e.as_dict()}

    processed = result.pop("processed")
    return {"processed": processed, "status": 200, "result": result}
