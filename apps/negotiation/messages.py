"""
Shopper-facing negotiation messages.

Templates are grouped by ``(decision, is_final_round)``. A lookup that has no
final-round variant falls back to the regular one. Selection goes through an
injectable ``random.Random`` so tests can seed it and assert exact text.
"""

import random
from decimal import Decimal
from string import Formatter
from typing import Dict, List, Optional, Tuple

ACCEPT = "accept"
COUNTER = "counter"
REJECT = "reject"

DEFAULT_TEMPLATES: Dict[Tuple[str, bool], List[str]] = {
    (ACCEPT, False): [
        "Deal! {counter_offer} {currency} it is. You saved {savings} {currency} ({discount_pct}% off).",
        "You got me. {counter_offer} {currency} is a fair price and you keep {savings} {currency} in your pocket.",
        "Sold for {counter_offer} {currency}! That's {discount_pct}% off the original price.",
        "We have a deal at {counter_offer} {currency}. Enjoy your {savings} {currency} in savings!",
    ],
    (COUNTER, False): [
        "I can't go that low, but how about {counter_offer} {currency}? That's still {savings} {currency} off.",
        "Let's meet at {counter_offer} {currency}. You're already getting {discount_pct}% off.",
        "Close! My price for you is {counter_offer} {currency}, a solid discount on premium quality.",
        "How about {counter_offer} {currency}? Fair for both of us, and you can keep negotiating.",
    ],
    (COUNTER, True): [
        "Final offer: {counter_offer} {currency}. That's {discount_pct}% off and the lowest I can go.",
        "This is my best price, {counter_offer} {currency} ({discount_pct}% discount). No more rounds after this one.",
        "Last chance: {counter_offer} {currency}, rock bottom. Take it before it's gone!",
    ],
    (REJECT, False): [
        "That's a bit too aggressive for us. I can do {counter_offer} {currency}, which still saves you {savings} {currency}.",
        "At that price we'd be losing money. {counter_offer} {currency} is as low as I can go right now.",
        "I respect the hustle, but {offered_price} {currency} isn't sustainable. How about {counter_offer} {currency}?",
        "That offer is below what I can approve. Here's my counter: {counter_offer} {currency}.",
    ],
    (REJECT, True): [
        "I can't accept {offered_price} {currency}. My final price is {counter_offer} {currency}.",
        "That's too low for a final round. The best I can do is {counter_offer} {currency}.",
    ],
}

INVALID_OFFER_MESSAGE = "Invalid offer. Please enter a valid price!"

# Context keys passed to every template by the evaluator
PLACEHOLDERS = frozenset(
    {"counter_offer", "offered_price", "savings", "discount_pct", "currency", "attempt"}
)


def format_amount(value) -> str:
    """Thousands separators, no decimals for whole amounts."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if value == value.to_integral_value():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def check_placeholders(template: str):
    """Raise ValueError if ``template`` uses a placeholder the evaluator never fills."""
    try:
        fields = [name for _, name, _, _ in Formatter().parse(template) if name is not None]
    except ValueError as e:
        raise ValueError(f"Malformed message template {template!r}: {e}") from e
    unknown = [name for name in fields if name not in PLACEHOLDERS]
    if unknown:
        raise ValueError(
            f"Unknown placeholder(s) {', '.join(unknown)} in message template {template!r}"
        )


class MessageRegistry:
    """
    Template catalog keyed by ``(decision, is_final_round)``.

    Decisions without registered templates use the built-in catalog, so a
    partial registry always renders.
    """

    def __init__(
        self,
        templates: Optional[Dict[Tuple[str, bool], List[str]]] = None,
        rng: Optional[random.Random] = None,
    ):
        source = DEFAULT_TEMPLATES if templates is None else templates
        self._templates = {}
        for (decision, is_final_round), value in source.items():
            self.register(decision, is_final_round, value)
        self.rng = rng or random.Random()

    def register(self, decision: str, is_final_round: bool, templates: List[str]):
        for template in templates:
            check_placeholders(template)
        self._templates[(decision, is_final_round)] = list(templates)

    def templates_for(self, decision: str, is_final_round: bool = False) -> List[str]:
        templates = _lookup(self._templates, decision, is_final_round) or _lookup(
            DEFAULT_TEMPLATES, decision, is_final_round
        )
        if not templates:
            raise KeyError(f"No message templates registered for '{decision}'")
        return templates

    def render(self, decision: str, is_final_round: bool = False, **context) -> str:
        template = self.rng.choice(self.templates_for(decision, is_final_round))
        return template.format(**context)


def _lookup(catalog, decision: str, is_final_round: bool) -> List[str]:
    templates = catalog.get((decision, is_final_round))
    if not templates and is_final_round:
        templates = catalog.get((decision, False))
    return templates or []
