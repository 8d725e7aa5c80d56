import random
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone

from apps.negotiation.evaluator import OfferEvaluator
from apps.negotiation.messages import MessageRegistry
from apps.negotiation.models import NegotiationSession


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def seeded_evaluator():
    return OfferEvaluator(messages=MessageRegistry(rng=random.Random(1234)), currency="RWF")


@pytest.fixture
def make_session():
    def _make_session(**overrides):
        fields = {
            "sku": "TSHIRT-01",
            "user_id": "user-1",
            "base_price": Decimal("10000.00"),
        }
        fields.update(overrides)
        return NegotiationSession.objects.create(**fields)

    return _make_session


@pytest.fixture
def accepted_session(make_session):
    now = timezone.now()
    return make_session(
        status=NegotiationSession.Status.ACCEPTED,
        current_round=1,
        offer_history=[
            {
                "offered_price": "9500",
                "decision": "accept",
                "counter_price": "9500",
                "timestamp": now.isoformat(),
            }
        ],
        final_price=Decimal("9500.00"),
        discount_token="a1b2c3d4e5f60718293a4b5c6d7e8f90",
        accepted_at=now,
        expires_at=now + timedelta(hours=24),
    )


@pytest.fixture
def cart_for():
    def _cart_for(session, price=None):
        return {
            "items": [
                {
                    "sku": session.sku,
                    "price": str(price if price is not None else session.final_price),
                    "quantity": session.quantity,
                    "metadata": {"negotiation_session": session.session_id},
                }
            ]
        }

    return _cart_for
