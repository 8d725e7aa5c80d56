"""
Offer evaluation for price negotiation.

The evaluator is a pure function of (base price, offered price, prior rounds):
it never touches the database and never raises. Bad input degrades to a
reject decision tagged ``InvalidInput`` so the negotiation UI always gets a
response it can render.
"""

import logging
from decimal import ROUND_CEILING, Decimal, InvalidOperation
from typing import Any, Dict, Optional, Sequence

from apps.negotiation.config.negotiation_config import (
    EvaluatorConfig,
    NegotiationConfig,
)
from apps.negotiation.messages import (
    ACCEPT,
    COUNTER,
    INVALID_OFFER_MESSAGE,
    REJECT,
    MessageRegistry,
    format_amount,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
ONE = Decimal("1")


def to_price(value) -> Optional[Decimal]:
    """Parse a price, returning None for anything non-numeric, infinite or NaN."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not price.is_finite():
        return None
    return price


def round_up(value: Decimal, unit: Decimal) -> Decimal:
    if unit <= 0:
        return value
    return (value / unit).to_integral_value(rounding=ROUND_CEILING) * unit


class OfferEvaluator:
    """Accept / counter / reject decisions under a profit floor."""

    def __init__(
        self,
        config: Optional[EvaluatorConfig] = None,
        messages: Optional[MessageRegistry] = None,
        currency: Optional[str] = None,
    ):
        self.config = config or EvaluatorConfig.from_settings()
        self.messages = messages or MessageRegistry()
        self.currency = currency or NegotiationConfig.currency()

    def thresholds(self, base_price: Decimal) -> Dict[str, Decimal]:
        """Price thresholds derived from the profitability model."""
        cfg = self.config
        estimated_cost = base_price * cfg.cost_ratio
        minimum_price = estimated_cost * (ONE + cfg.minimum_margin_pct / HUNDRED)
        target_price = estimated_cost * (ONE + cfg.target_margin_pct / HUNDRED)
        return {
            "estimated_cost": estimated_cost,
            "minimum_price": minimum_price,
            "target_price": target_price,
            "min_acceptable_price": max(
                minimum_price, base_price * (ONE - cfg.max_discount_pct / HUNDRED)
            ),
            "max_acceptable_price": base_price
            * (ONE - cfg.min_discount_pct / HUNDRED),
            "sweet_spot_price": max(
                target_price,
                base_price * (ONE - cfg.sweet_spot_discount_pct / HUNDRED),
            ),
        }

    def counter_discount_pct(self, attempt: int) -> Decimal:
        schedule = self.config.counter_schedule_pct
        if 1 <= attempt <= len(schedule):
            pct = schedule[attempt - 1]
        else:
            pct = self.config.final_discount_pct
        return min(pct, self.config.max_discount_pct)

    def generate_counter_offer(
        self, base_price: Decimal, offer_history: Sequence[Any]
    ) -> Decimal:
        """
        Progressive counter price for the next attempt.

        The schedule price is raised to the profit floor when it falls below
        it, then rounded up to the configured granularity. Rounding only ever
        goes up; when the coarse unit would overshoot the catalog price the
        counter is rounded to a whole currency unit instead.
        """
        cfg = self.config
        attempt = len(offer_history) + 1
        limits = self.thresholds(base_price)

        counter = base_price * (ONE - self.counter_discount_pct(attempt) / HUNDRED)

        if counter < limits["minimum_price"]:
            logger.debug(
                f"Profit protection: counter {counter} raised to {limits['minimum_price']}"
            )
            counter = limits["minimum_price"]

        if attempt <= cfg.target_anchor_rounds and counter < limits["target_price"]:
            counter = max(counter, limits["target_price"] * cfg.target_anchor_ratio)

        rounded = round_up(counter, cfg.price_rounding_unit)
        if rounded > base_price:
            rounded = round_up(counter, ONE)
        return min(rounded, base_price)

    def evaluate(
        self,
        base_price,
        offered_price,
        offer_history: Optional[Sequence[Any]] = None,
    ) -> Dict[str, Any]:
        """
        Evaluate a shopper's offer.

        Returns a dict with ``decision`` (accept, counter or reject),
        ``counter_offer``, ``message``, ``reasoning``, ``discount_pct``,
        ``savings``, ``offer_attempt`` and ``can_negotiate``.
        """
        history = list(offer_history or [])
        cfg = self.config
        attempt = len(history) + 1
        can_negotiate = len(history) < cfg.round_cap

        base = to_price(base_price)
        offered = to_price(offered_price)
        if base is None or offered is None or base <= 0 or offered <= 0:
            logger.warning(
                f"Invalid price values: base_price={base_price!r}, offered_price={offered_price!r}"
            )
            return {
                "decision": REJECT,
                "counter_offer": base if base is not None and base > 0 else Decimal("0"),
                "message": INVALID_OFFER_MESSAGE,
                "reasoning": "InvalidInput: prices must be positive numbers",
                "discount_pct": Decimal("0"),
                "savings": Decimal("0"),
                "offer_attempt": attempt,
                "can_negotiate": can_negotiate,
            }

        limits = self.thresholds(base)
        requested_pct = (base - offered) / base * HUNDRED
        is_final_round = attempt >= cfg.round_cap

        if offered < limits["min_acceptable_price"]:
            decision = REJECT
            counter_offer = self.generate_counter_offer(base, history)
            reasoning = (
                f"Offer is {requested_pct:.1f}% below price, beyond the "
                f"{cfg.max_discount_pct}% maximum discount or the profit floor."
            )
        elif offered < limits["sweet_spot_price"]:
            counter_offer = self.generate_counter_offer(base, history)
            if cfg.accept_on_final_round and len(history) >= cfg.round_cap - 1:
                decision = ACCEPT
                counter_offer = offered
                reasoning = (
                    f"After {attempt} rounds, accepting {requested_pct:.1f}% discount."
                )
            elif counter_offer <= offered:
                decision = ACCEPT
                counter_offer = offered
                reasoning = "Offer meets the best counter price available this round."
            else:
                decision = COUNTER
                reasoning = (
                    f"Offer acceptable but countering for better price. "
                    f"Attempt {attempt}/{cfg.round_cap}"
                )
        else:
            decision = ACCEPT
            counter_offer = min(offered, base)
            reasoning = f"Great offer! {requested_pct:.1f}% discount is acceptable."

        savings = base - counter_offer
        discount_pct = (savings / base * HUNDRED).quantize(Decimal("0.01"))

        message = self.messages.render(
            decision,
            is_final_round,
            counter_offer=format_amount(counter_offer),
            offered_price=format_amount(offered),
            savings=format_amount(savings),
            discount_pct=f"{discount_pct:.0f}",
            currency=self.currency,
            attempt=attempt,
        )

        logger.debug(
            f"Offer {offered} on {base} (attempt {attempt}): {decision} at {counter_offer}"
        )

        return {
            "decision": decision,
            "counter_offer": counter_offer,
            "message": message,
            "reasoning": reasoning,
            "discount_pct": discount_pct,
            "savings": savings,
            "offer_attempt": attempt,
            "can_negotiate": can_negotiate,
        }
