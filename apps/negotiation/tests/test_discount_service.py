from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.utils import timezone

from apps.negotiation.models import NegotiationSession
from apps.negotiation.services import DiscountCredentialService
from apps.negotiation.utils.exceptions import (
    AlreadyApplied,
    Expired,
    InvalidToken,
    SkuMismatch,
)


def test_generated_tokens_are_unique_hex():
    now = timezone.now()
    tokens = {
        DiscountCredentialService.generate_token("session", Decimal("9500"), now)
        for _ in range(50)
    }

    assert len(tokens) == 50
    assert all(len(token) == 32 for token in tokens)
    assert all(int(token, 16) >= 0 for token in tokens)


@pytest.mark.django_db
class TestApplyDiscount:
    def test_successful_redemption_returns_descriptor(self, accepted_session, cart_for):
        descriptor = DiscountCredentialService.apply_discount_to_cart(
            accepted_session.discount_token, cart_for(accepted_session)
        )

        assert descriptor["code"] == "NEGO-A1B2C3D4"
        assert descriptor["sku"] == accepted_session.sku
        assert descriptor["original_price"] == Decimal("10000.00")
        assert descriptor["discounted_price"] == Decimal("9500.00")
        assert descriptor["discount_amount"] == Decimal("500.00")
        assert descriptor["discount_pct"] == Decimal("5")
        assert descriptor["quantity"] == 1
        assert descriptor["session_id"] == accepted_session.session_id
        assert descriptor["metadata"]["applied_at"] is not None

        accepted_session.refresh_from_db()
        assert accepted_session.discount_applied is True
        assert accepted_session.redemption_source == "cart"

    def test_second_redemption_is_rejected(self, accepted_session, cart_for):
        token = accepted_session.discount_token
        DiscountCredentialService.apply_discount_to_cart(token, cart_for(accepted_session))

        with pytest.raises(AlreadyApplied):
            DiscountCredentialService.apply_discount_to_cart(
                token, cart_for(accepted_session)
            )

    def test_sku_mismatch_leaves_credential_untouched(self, accepted_session):
        cart = {"items": [{"sku": "OTHER-SKU", "price": "9500", "quantity": 1}]}

        with pytest.raises(SkuMismatch):
            DiscountCredentialService.apply_discount_to_cart(
                accepted_session.discount_token, cart
            )

        accepted_session.refresh_from_db()
        assert accepted_session.discount_applied is False

    @pytest.mark.parametrize("token", ["", "not-a-token"])
    def test_unknown_token(self, accepted_session, cart_for, token):
        with pytest.raises(InvalidToken):
            DiscountCredentialService.apply_discount_to_cart(
                token, cart_for(accepted_session)
            )

    def test_token_of_cancelled_session_is_invalid(self, accepted_session, cart_for):
        DiscountCredentialService.cancel_discount(accepted_session.discount_token)

        with pytest.raises(InvalidToken):
            DiscountCredentialService.apply_discount_to_cart(
                accepted_session.discount_token, cart_for(accepted_session)
            )

    def test_expired_credential(self, accepted_session, cart_for):
        later = accepted_session.expires_at + timedelta(seconds=1)

        with pytest.raises(Expired):
            DiscountCredentialService.apply_discount_to_cart(
                accepted_session.discount_token, cart_for(accepted_session), now=later
            )

        accepted_session.refresh_from_db()
        assert accepted_session.discount_applied is False

    def test_losing_concurrent_redemption_sees_already_applied(
        self, accepted_session, cart_for
    ):
        # Another worker flips the flag between our read and our write
        original_filter = NegotiationSession.objects.filter
        calls = {"count": 0}

        def racing_filter(*args, **kwargs):
            calls["count"] += 1
            if calls["count"] == 2:
                NegotiationSession.objects.all().update(discount_applied=True)
            return original_filter(*args, **kwargs)

        with patch.object(
            NegotiationSession.objects, "filter", side_effect=racing_filter
        ), pytest.raises(AlreadyApplied):
            DiscountCredentialService.apply_discount_to_cart(
                accepted_session.discount_token, cart_for(accepted_session)
            )

        accepted_session.refresh_from_db()
        assert accepted_session.redemption_source == ""


@pytest.mark.django_db
class TestCancelAndList:
    def test_cancel_unredeemed_discount(self, accepted_session):
        result = DiscountCredentialService.cancel_discount(accepted_session.discount_token)

        assert result == {"success": True, "message": "Discount cancelled"}
        accepted_session.refresh_from_db()
        assert accepted_session.status == NegotiationSession.Status.EXPIRED

    def test_cannot_cancel_redeemed_discount(self, accepted_session, cart_for):
        DiscountCredentialService.apply_discount_to_cart(
            accepted_session.discount_token, cart_for(accepted_session)
        )

        with pytest.raises(AlreadyApplied):
            DiscountCredentialService.cancel_discount(accepted_session.discount_token)

        accepted_session.refresh_from_db()
        assert accepted_session.status == NegotiationSession.Status.ACCEPTED

    def test_cancel_twice(self, accepted_session):
        DiscountCredentialService.cancel_discount(accepted_session.discount_token)

        with pytest.raises(Expired):
            DiscountCredentialService.cancel_discount(accepted_session.discount_token)

    def test_cancel_unknown_token(self):
        with pytest.raises(InvalidToken):
            DiscountCredentialService.cancel_discount("missing")

    def test_active_discounts_most_recent_first(self, make_session):
        now = timezone.now()

        def accepted(sku, token, accepted_ago, **extra):
            fields = {
                "sku": sku,
                "status": NegotiationSession.Status.ACCEPTED,
                "final_price": Decimal("9000.00"),
                "discount_token": token,
                "accepted_at": now - accepted_ago,
                "expires_at": now - accepted_ago + timedelta(hours=24),
            }
            fields.update(extra)
            return make_session(**fields)

        older = accepted("SKU-A", "a" * 32, timedelta(hours=3))
        newer = accepted("SKU-B", "b" * 32, timedelta(hours=1))
        accepted("SKU-C", "c" * 32, timedelta(hours=2), discount_applied=True)
        accepted("SKU-D", "d" * 32, timedelta(hours=30))
        accepted("SKU-E", "e" * 32, timedelta(hours=1), user_id="someone-else")
        make_session(sku="SKU-F")

        discounts = DiscountCredentialService.get_active_discounts("user-1", now=now)

        assert [d["session_id"] for d in discounts] == [
            newer.session_id,
            older.session_id,
        ]
        assert discounts[0]["discount"] == Decimal("1000.00")
        assert discounts[0]["discount_pct"] == Decimal("10")
        assert discounts[0]["token"] == "b" * 32


@pytest.mark.django_db
class TestPlatformPayloads:
    def test_shopify_discount(self, accepted_session):
        payload = DiscountCredentialService.generate_shopify_discount(accepted_session)

        assert payload["code"] == accepted_session.discount_code
        assert payload["value_type"] == "fixed_amount"
        assert payload["value"] == "500.00"
        assert payload["prerequisite_product_ids"] == [accepted_session.sku]
        assert payload["usage_limit"] == 1
        assert payload["ends_at"] == accepted_session.expires_at.isoformat()

    def test_woo_coupon_carries_session_id(self, accepted_session):
        coupon = DiscountCredentialService.generate_woo_coupon(accepted_session)

        assert coupon["discount_type"] == "fixed_product"
        assert coupon["amount"] == "500.00"
        assert {"key": "negotiation_session", "value": accepted_session.session_id} in (
            coupon["meta_data"]
        )

    def test_discounted_line_item(self, accepted_session):
        item = DiscountCredentialService.create_discounted_line_item(accepted_session)

        assert item["price"] == Decimal("9500.00")
        assert item["original_price"] == Decimal("10000.00")
        assert item["metadata"]["negotiation_session"] == accepted_session.session_id
        assert item["metadata"]["negotiated_price"] is True
