import json

import pytest

from apps.negotiation.services import DiscountCredentialService, WebhookReconciler
from apps.negotiation.utils.exceptions import (
    AlreadyApplied,
    InvalidInput,
    SignatureInvalid,
    UnsupportedPlatform,
)
from apps.negotiation.utils.signatures import (
    canonical_json,
    compute_signature,
    verify_shopify_webhook,
    verify_woo_webhook,
)

SHOPIFY_SECRET = "shopify-test-secret"
WOO_SECRET = "woo-test-secret"


def shopify_order(session_id, total_price="9500.00"):
    return {
        "id": 820982911946154508,
        "total_price": total_price,
        "line_items": [
            {
                "sku": "TSHIRT-01",
                "properties": [{"name": "negotiation_session", "value": session_id}],
            },
            {"sku": "PLAIN-ITEM", "properties": []},
        ],
    }


def woo_order(session_id):
    return {
        "id": 727,
        "total": "9500.00",
        "line_items": [
            {
                "sku": "TSHIRT-01",
                "meta_data": [{"key": "negotiation_session", "value": session_id}],
            }
        ],
    }


def signed_shopify(payload, secret=SHOPIFY_SECRET):
    body = json.dumps(payload).encode("utf-8")
    return body, compute_signature(body, secret)


class TestSignatures:
    def test_known_vector(self):
        # HMAC-SHA256("key", "The quick brown fox jumps over the lazy dog"), base64
        assert (
            compute_signature("The quick brown fox jumps over the lazy dog", "key")
            == "97yD9DBThCSxMpjmqm+xQ+9NWaFJRhdZl0edvC0aPNg="
        )

    def test_shopify_signature_covers_raw_bytes(self):
        body = b'{"id": 1}'
        signature = compute_signature(body, SHOPIFY_SECRET)

        assert verify_shopify_webhook(body, signature, SHOPIFY_SECRET)
        assert not verify_shopify_webhook(b'{"id":1}', signature, SHOPIFY_SECRET)
        assert not verify_shopify_webhook(body, None, SHOPIFY_SECRET)

    def test_woo_signature_covers_serialized_json(self):
        payload = {"id": 1, "name": "Café"}
        signature = compute_signature(canonical_json(payload), WOO_SECRET)

        assert verify_woo_webhook(payload, signature, WOO_SECRET)
        assert not verify_woo_webhook(payload, signature, "other-secret")


@pytest.mark.django_db
class TestHandleWebhook:
    def test_shopify_order_marks_discount_applied(self, accepted_session):
        body, signature = signed_shopify(shopify_order(accepted_session.session_id))

        result = WebhookReconciler.handle_webhook("shopify", "orders/create", body, signature)

        assert result == {
            "processed": True,
            "negotiations_found": 1,
            "reconciled": 1,
            "order_value": "9500.00",
        }
        accepted_session.refresh_from_db()
        assert accepted_session.discount_applied is True
        assert accepted_session.redemption_source == "webhook:shopify"

    def test_woo_order_marks_discount_applied(self, accepted_session):
        payload = woo_order(accepted_session.session_id)
        signature = compute_signature(canonical_json(payload), WOO_SECRET)

        result = WebhookReconciler.handle_webhook(
            "woocommerce", "order.created", canonical_json(payload), signature
        )

        assert result["negotiations_found"] == 1
        assert result["order_value"] == "9500.00"
        accepted_session.refresh_from_db()
        assert accepted_session.redemption_source == "webhook:woocommerce"

    def test_already_redeemed_session_is_found_but_not_reconciled(
        self, accepted_session, cart_for
    ):
        DiscountCredentialService.apply_discount_to_cart(
            accepted_session.discount_token, cart_for(accepted_session)
        )
        body, signature = signed_shopify(shopify_order(accepted_session.session_id))

        result = WebhookReconciler.handle_webhook("shopify", "orders/create", body, signature)

        assert result["negotiations_found"] == 1
        assert result["reconciled"] == 0
        accepted_session.refresh_from_db()
        assert accepted_session.redemption_source == "cart"

    def test_webhook_reconciliation_blocks_later_cart_redemption(
        self, accepted_session, cart_for
    ):
        body, signature = signed_shopify(shopify_order(accepted_session.session_id))
        WebhookReconciler.handle_webhook("shopify", "orders/create", body, signature)

        with pytest.raises(AlreadyApplied):
            DiscountCredentialService.apply_discount_to_cart(
                accepted_session.discount_token, cart_for(accepted_session)
            )

        accepted_session.refresh_from_db()
        assert accepted_session.discount_applied is True
        assert accepted_session.redemption_source == "webhook:shopify"

    def test_bad_signature_rejected_before_any_lookup(
        self, accepted_session, django_assert_num_queries
    ):
        body, _ = signed_shopify(shopify_order(accepted_session.session_id))
        forged = compute_signature(body, "attacker-secret")

        with django_assert_num_queries(0), pytest.raises(SignatureInvalid):
            WebhookReconciler.handle_webhook("shopify", "orders/create", body, forged)

        accepted_session.refresh_from_db()
        assert accepted_session.discount_applied is False

    def test_missing_signature_with_secret_configured(self, accepted_session):
        payload = woo_order(accepted_session.session_id)

        with pytest.raises(SignatureInvalid):
            WebhookReconciler.handle_webhook("woocommerce", "order.created", payload, None)

    def test_signature_skipped_without_secret(self, accepted_session, settings):
        settings.WEBHOOK_SECRETS = {"shopify": "", "woocommerce": ""}
        body = json.dumps(shopify_order(accepted_session.session_id))

        result = WebhookReconciler.handle_webhook("shopify", "orders/create", body)

        assert result["reconciled"] == 1

    def test_checkout_created_is_acknowledged(self):
        body, signature = signed_shopify({"id": 42, "line_items": []})

        result = WebhookReconciler.handle_webhook(
            "shopify", "checkouts/create", body, signature
        )

        assert result == {"processed": True, "checkout_id": 42}

    def test_unknown_event_is_acknowledged_without_processing(self, accepted_session):
        body, signature = signed_shopify(shopify_order(accepted_session.session_id))

        result = WebhookReconciler.handle_webhook("shopify", "orders/paid", body, signature)

        assert result["processed"] is False
        accepted_session.refresh_from_db()
        assert accepted_session.discount_applied is False

    def test_unsupported_platform(self):
        with pytest.raises(UnsupportedPlatform):
            WebhookReconciler.handle_webhook("magento", "order.created", b"{}", "sig")

    def test_invalid_json(self):
        body = b"not json"
        signature = compute_signature(body, SHOPIFY_SECRET)

        with pytest.raises(InvalidInput):
            WebhookReconciler.handle_webhook("shopify", "orders/create", body, signature)

    def test_undecodable_woo_body_is_a_signature_failure(self):
        with pytest.raises(SignatureInvalid):
            WebhookReconciler.handle_webhook(
                "woocommerce", "order.created", b"not json", "forged"
            )

    def test_undecodable_woo_body_without_secret_is_invalid_input(self, settings):
        settings.WEBHOOK_SECRETS = {"shopify": "", "woocommerce": ""}

        with pytest.raises(InvalidInput):
            WebhookReconciler.handle_webhook("woocommerce", "order.created", b"not json")

    def test_unknown_session_ids_are_ignored(self):
        body, signature = signed_shopify(shopify_order("no-such-session"))

        result = WebhookReconciler.handle_webhook("shopify", "orders/create", body, signature)

        assert result["negotiations_found"] == 0
        assert result["reconciled"] == 0

    def test_session_id_extraction_formats(self):
        line_items = [
            {"properties": {"negotiation_session": "from-dict"}},
            {"properties": [{"name": "negotiation_session", "value": "from-list"}]},
            {"meta_data": [{"key": "negotiation_session", "value": "from-meta"}]},
            {"meta_data": [{"key": "other", "value": "x"}]},
            {"properties": {"negotiation_session": "from-dict"}},
        ]

        assert WebhookReconciler.extract_session_ids(line_items) == [
            "from-dict",
            "from-list",
            "from-meta",
        ]
