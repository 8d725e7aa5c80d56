import json
from decimal import Decimal

import pytest

from apps.negotiation import operations
from apps.negotiation.models import NegotiationSession
from apps.negotiation.utils.signatures import compute_signature


@pytest.fixture
def offer_data():
    return {
        "sku": "TSHIRT-01",
        "user_id": "device-123",
        "unit_price": "10000",
        "offered_price": 9500,
        "conversion_source": "product_page",
    }


def test_evaluate_offer_is_stateless():
    result = operations.evaluate_offer(600, 60, [])

    assert result["success"] is True
    assert result["decision"] == "reject"
    assert result["counter_offer"] == 582


def test_evaluate_offer_never_fails_on_garbage():
    result = operations.evaluate_offer("x", {"price": 1}, None)

    assert result["success"] is True
    assert result["decision"] == "reject"


@pytest.mark.django_db
class TestOfferOperations:
    def test_make_offer_accepts_and_issues_token(self, offer_data, seeded_evaluator):
        result = operations.make_offer(offer_data, evaluator=seeded_evaluator)

        assert result["success"] is True
        assert result["decision"] == "accept"
        session = result["session"]
        assert session["status"] == "accepted"
        assert session["current_round"] == 1
        assert session["discount_code"].startswith("NEGO-")
        assert len(session["discount_token"]) == 32

    def test_make_offer_continues_existing_session(self, offer_data, seeded_evaluator):
        offer_data["offered_price"] = 5000
        first = operations.make_offer(offer_data, evaluator=seeded_evaluator)
        offer_data["offered_price"] = 5100
        second = operations.make_offer(offer_data, evaluator=seeded_evaluator)

        assert first["session"]["session_id"] == second["session"]["session_id"]
        assert second["session"]["current_round"] == 2
        assert second["offer_attempt"] == 2

    def test_offer_far_above_base_is_accepted_at_base(self, offer_data, seeded_evaluator):
        offer_data["offered_price"] = "1e30"

        result = operations.make_offer(offer_data, evaluator=seeded_evaluator)

        assert result["success"] is True
        assert result["decision"] == "accept"
        assert result["session"]["final_price"] == Decimal("10000.00")

    def test_invalid_payload_is_reported(self, offer_data):
        offer_data["unit_price"] = "-1"

        result = operations.make_offer(offer_data)

        assert result["success"] is False
        assert result["error"]["code"] == "InvalidInput"
        assert result["error"]["message"].startswith("unit_price")
        assert NegotiationSession.objects.count() == 0

    def test_duplicate_offer_is_reported(self, offer_data, seeded_evaluator):
        offer_data["offered_price"] = 5000
        operations.make_offer(offer_data, evaluator=seeded_evaluator)

        result = operations.make_offer(offer_data, evaluator=seeded_evaluator)

        assert result == {
            "success": False,
            "error": {
                "code": "DuplicateOffer",
                "message": "You already offered this price",
                "details": result["error"]["details"],
            },
        }

    def test_accept_counter_offer(self, offer_data, seeded_evaluator):
        offer_data["offered_price"] = 5000
        session_id = operations.make_offer(offer_data, evaluator=seeded_evaluator)[
            "session"
        ]["session_id"]

        result = operations.accept_counter_offer(session_id)

        assert result["success"] is True
        assert result["session"]["status"] == "accepted"

    def test_unknown_session(self):
        result = operations.accept_counter_offer("nope")

        assert result["error"]["code"] == "SessionNotFound"


@pytest.mark.django_db
class TestDiscountOperations:
    def test_apply_then_reapply(self, accepted_session, cart_for):
        token = accepted_session.discount_token

        first = operations.apply_discount(token, cart_for(accepted_session))
        second = operations.apply_discount(token, cart_for(accepted_session))

        assert first["success"] is True
        assert first["discount"]["code"] == "NEGO-A1B2C3D4"
        assert first["discount"]["discount_pct"] == 5
        assert isinstance(first["discount"]["expires_at"], str)
        assert second["success"] is False
        assert second["error"]["code"] == "AlreadyApplied"

    def test_apply_with_malformed_cart(self, accepted_session):
        result = operations.apply_discount(
            accepted_session.discount_token, {"items": [{"price": "10"}]}
        )

        assert result["error"]["code"] == "InvalidInput"
        assert result["error"]["message"] == "items[0].sku: This field is required."

    def test_validate_cart(self, accepted_session, cart_for):
        result = operations.validate_cart(cart_for(accepted_session, price="1"))

        assert result["success"] is True
        assert result["valid"] is False
        assert result["errors"][0]["code"] == "PriceMismatch"

    def test_validate_cart_with_list_session_reference(self):
        cart = {
            "items": [
                {"sku": "A", "price": "1", "metadata": {"negotiation_session": ["x"]}}
            ]
        }

        result = operations.validate_cart(cart)

        assert result["success"] is True
        assert result["valid"] is False
        assert result["errors"][0]["code"] == "SessionNotFound"

    def test_cancel_and_list(self, accepted_session):
        listed = operations.list_active_discounts(accepted_session.user_id)
        assert [d["token"] for d in listed["discounts"]] == [
            accepted_session.discount_token
        ]

        assert operations.cancel_discount(accepted_session.discount_token) == {
            "success": True,
            "message": "Discount cancelled",
        }
        assert operations.list_active_discounts(accepted_session.user_id)["discounts"] == []

    def test_list_requires_user(self):
        assert operations.list_active_discounts("")["error"]["code"] == "InvalidInput"

    def test_stats(self, accepted_session):
        result = operations.negotiation_stats(accepted_session.sku)

        assert result["stats"]["accepted"] == 1


@pytest.mark.django_db
class TestWebhookOperation:
    def test_processed_order(self, accepted_session):
        body = json.dumps(
            {
                "id": 1,
                "total_price": "9500.00",
                "line_items": [
                    {"properties": {"negotiation_session": accepted_session.session_id}}
                ],
            }
        )
        signature = compute_signature(body, "shopify-test-secret")

        result = operations.handle_webhook("shopify", "orders/create", body, signature)

        assert result["processed"] is True
        assert result["status"] == 200
        assert result["result"]["reconciled"] == 1

    def test_bad_signature_is_401(self):
        result = operations.handle_webhook("shopify", "orders/create", "{}", "forged")

        assert result["processed"] is False
        assert result["status"] == 401
        assert result["error"]["code"] == "SignatureInvalid"

    def test_garbage_woo_body_is_401(self):
        result = operations.handle_webhook("woocommerce", "order.created", "garbage", None)

        assert result["status"] == 401
        assert result["error"]["code"] == "SignatureInvalid"

    def test_unsupported_platform_is_400(self):
        result = operations.handle_webhook("bigcommerce", "order.created", "{}", None)

        assert result["status"] == 400
        assert result["error"]["code"] == "UnsupportedPlatform"

    def test_unknown_event_is_acknowledged(self):
        body = "{}"
        signature = compute_signature(body, "shopify-test-secret")

        result = operations.handle_webhook("shopify", "app/uninstalled", body, signature)

        assert result == {
            "processed": False,
            "status": 200,
            "result": {"event": "app/uninstalled"},
        }
