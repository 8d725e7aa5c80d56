import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from django.utils import timezone

from apps.negotiation.config.negotiation_config import NegotiationConfig
from apps.negotiation.models import NegotiationSession
from apps.negotiation.serializers import OrderPayloadSerializer
from apps.negotiation.utils.exceptions import (
    InvalidInput,
    SignatureInvalid,
    UnsupportedPlatform,
)
from apps.negotiation.utils.signatures import (
    canonical_json,
    verify_shopify_webhook,
    verify_woo_webhook,
)

logger = logging.getLogger("webhooks")

SHOPIFY = "shopify"
WOOCOMMERCE = "woocommerce"

SIGNATURE_HEADERS = {
    SHOPIFY: "X-Shopify-Hmac-Sha256",
    WOOCOMMERCE: "X-WC-Webhook-Signature",
}

SESSION_PROPERTY = "negotiation_session"


class WebhookReconciler:
    """
    Marks negotiated discounts as redeemed from commerce platform events.

    Signatures are verified before the payload is used for anything, and
    unknown events are acknowledged without processing so the platform does
    not keep retrying them.
    """

    HANDLERS = {
        (SHOPIFY, "orders/create"): "process_order_created",
        (SHOPIFY, "checkouts/create"): "process_checkout_created",
        (WOOCOMMERCE, "order.created"): "process_order_created",
    }

    @classmethod
    def handle_webhook(
        cls,
        platform: str,
        event: str,
        raw_payload: Union[bytes, str, Dict[str, Any]],
        signature: Optional[str] = None,
    ) -> Dict[str, Any]:
        start_time = timezone.now()
        if platform not in SIGNATURE_HEADERS:
            raise UnsupportedPlatform(f"Unsupported platform: {platform}", platform=platform)

        payload = cls.verify_and_parse(platform, raw_payload, signature)

        handler_name = cls.HANDLERS.get((platform, event))
        if handler_name is None:
            logger.info(f"Unhandled {platform} event: {event}")
            return {"processed": False, "event": event}

        result = getattr(cls, handler_name)(platform, payload)

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(f"Processed {platform} {event} webhook in {duration:.2f}ms")
        return result

    @staticmethod
    def verify_and_parse(
        platform: str,
        raw_payload: Union[bytes, str, Dict[str, Any]],
        signature: Optional[str],
    ) -> Dict[str, Any]:
        """Verify the platform signature, then return the decoded payload."""
        secret = NegotiationConfig.webhook_secret(platform)

        if platform == SHOPIFY:
            raw = _raw_bytes(raw_payload)
            if secret and not verify_shopify_webhook(raw, signature, secret):
                _reject(platform)
            return _decode(raw_payload)

        try:
            payload = _decode(raw_payload)
        except InvalidInput:
            # An undecodable body cannot carry a valid signature
            if secret:
                _reject(platform)
            raise
        if secret and not verify_woo_webhook(payload, signature, secret):
            _reject(platform)
        return payload

    @staticmethod
    def extract_session_ids(line_items: Iterable[Dict[str, Any]]) -> List[str]:
        session_ids = []
        for item in line_items:
            session_id = _property_value(item.get("properties")) or _property_value(
                item.get("meta_data")
            )
            if session_id and str(session_id) not in session_ids:
                session_ids.append(str(session_id))
        return session_ids

    @classmethod
    def process_order_created(cls, platform: str, payload: Dict[str, Any]):
        serializer = OrderPayloadSerializer(data=payload)
        if not serializer.is_valid():
            raise InvalidInput("Malformed order payload", errors=serializer.errors)
        order = serializer.validated_data

        now = timezone.now()
        session_ids = cls.extract_session_ids(order.get("line_items", []))
        found = list(
            NegotiationSession.objects.filter(session_id__in=session_ids).values_list(
                "session_id", flat=True
            )
        )

        reconciled = 0
        for session_id in found:
            # Same compare-and-set as cart redemption; the platform is authoritative
            reconciled += NegotiationSession.objects.filter(
                session_id=session_id,
                status=NegotiationSession.Status.ACCEPTED,
                discount_applied=False,
            ).update(
                discount_applied=True,
                discount_applied_at=now,
                redemption_source=f"webhook:{platform}",
                updated_at=now,
            )

        if session_ids and len(found) < len(session_ids):
            logger.warning(
                f"{platform} order references unknown negotiation sessions: "
                f"{sorted(set(session_ids) - set(found))}"
            )
        logger.info(
            f"{platform} order reconciled {reconciled} of {len(found)} negotiations"
        )
        return {
            "processed": True,
            "negotiations_found": len(found),
            "reconciled": reconciled,
            "order_value": order.get("total_price") or order.get("total"),
        }

    @staticmethod
    def process_checkout_created(platform: str, payload: Dict[str, Any]):
        return {"processed": True, "checkout_id": payload.get("id")}


def _reject(platform: str):
    logger.warning(f"Rejected {platform} webhook with invalid signature")
    raise SignatureInvalid(platform=platform)


def _raw_bytes(raw_payload) -> bytes:
    if isinstance(raw_payload, bytes):
        return raw_payload
    if isinstance(raw_payload, str):
        return raw_payload.encode("utf-8")
    return canonical_json(raw_payload).encode("utf-8")


def _decode(raw_payload) -> Dict[str, Any]:
    if isinstance(raw_payload, dict):
        return raw_payload
    try:
        payload = json.loads(raw_payload)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("Webhook payload is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise InvalidInput("Webhook payload must be a JSON object")
    return payload


def _property_value(properties) -> Optional[str]:
    """Read the session id from a property dict or a list of key/value pairs."""
    if isinstance(properties, dict):
        return properties.get(SESSION_PROPERTY)
    if isinstance(properties, list):
        for entry in properties:
            if not isinstance(entry, dict):
                continue
            key = entry.get("key", entry.get("name"))
            if key == SESSION_PROPERTY:
                return entry.get("value")
    return None
