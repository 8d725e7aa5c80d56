from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Tuple

from django.conf import settings


def _setting(key, default):
    return getattr(settings, "NEGOTIATION_SETTINGS", {}).get(key, default)


@dataclass(frozen=True)
class EvaluatorConfig:
    """
    Profitability model for the offer evaluator.

    Percentages are of the catalog price unless noted otherwise. The
    defaults assume cost is 65% of the price, never sell below a 15% margin
    over cost and aim for 25%.
    """

    cost_ratio: Decimal = Decimal("0.65")
    minimum_margin_pct: Decimal = Decimal("15")
    target_margin_pct: Decimal = Decimal("25")
    min_discount_pct: Decimal = Decimal("2")
    max_discount_pct: Decimal = Decimal("10")
    sweet_spot_discount_pct: Decimal = Decimal("8")

    round_cap: int = 4
    counter_schedule_pct: Tuple[Decimal, ...] = field(
        default=(Decimal("3"), Decimal("5"), Decimal("7"))
    )
    final_discount_pct: Decimal = Decimal("10")

    # Early counters stay near the target price
    target_anchor_rounds: int = 2
    target_anchor_ratio: Decimal = Decimal("0.95")

    price_rounding_unit: Decimal = Decimal("500")

    # Accept an in-window offer on the last allowed round instead of countering
    accept_on_final_round: bool = True

    @classmethod
    def from_settings(cls) -> "EvaluatorConfig":
        defaults = cls()
        return cls(
            cost_ratio=Decimal(str(_setting("COST_RATIO", defaults.cost_ratio))),
            minimum_margin_pct=Decimal(
                str(_setting("MINIMUM_MARGIN_PCT", defaults.minimum_margin_pct))
            ),
            target_margin_pct=Decimal(
                str(_setting("TARGET_MARGIN_PCT", defaults.target_margin_pct))
            ),
            min_discount_pct=Decimal(
                str(_setting("MIN_DISCOUNT_PCT", defaults.min_discount_pct))
            ),
            max_discount_pct=Decimal(
                str(_setting("MAX_DISCOUNT_PCT", defaults.max_discount_pct))
            ),
            sweet_spot_discount_pct=Decimal(
                str(
                    _setting("SWEET_SPOT_DISCOUNT_PCT", defaults.sweet_spot_discount_pct)
                )
            ),
            round_cap=int(_setting("ROUND_CAP", defaults.round_cap)),
            counter_schedule_pct=tuple(
                Decimal(str(pct))
                for pct in _setting(
                    "COUNTER_SCHEDULE_PCT", defaults.counter_schedule_pct
                )
            ),
            final_discount_pct=Decimal(
                str(_setting("FINAL_DISCOUNT_PCT", defaults.final_discount_pct))
            ),
            target_anchor_rounds=int(
                _setting("TARGET_ANCHOR_ROUNDS", defaults.target_anchor_rounds)
            ),
            target_anchor_ratio=Decimal(
                str(_setting("TARGET_ANCHOR_RATIO", defaults.target_anchor_ratio))
            ),
            price_rounding_unit=Decimal(
                str(_setting("PRICE_ROUNDING_UNIT", defaults.price_rounding_unit))
            ),
            accept_on_final_round=bool(
                _setting("ACCEPT_ON_FINAL_ROUND", defaults.accept_on_final_round)
            ),
        )


class NegotiationConfig:
    """Lifecycle settings, read on every call so overrides take effect."""

    @staticmethod
    def discount_ttl() -> timedelta:
        return timedelta(hours=int(_setting("DISCOUNT_TTL_HOURS", 24)))

    @staticmethod
    def session_idle_timeout() -> timedelta:
        return timedelta(minutes=int(_setting("SESSION_IDLE_TIMEOUT_MINUTES", 30)))

    @staticmethod
    def currency() -> str:
        return _setting("CURRENCY", "RWF")

    @staticmethod
    def stats_cache_timeout() -> int:
        return int(_setting("STATS_CACHE_TIMEOUT", 3600))

    @staticmethod
    def fraud_lowball_ratio() -> Decimal:
        return Decimal(str(_setting("FRAUD_LOWBALL_RATIO", "0.5")))

    @staticmethod
    def fraud_max_daily_negotiations() -> int:
        return int(_setting("FRAUD_MAX_DAILY_NEGOTIATIONS", 20))

    @staticmethod
    def fraud_max_accounts_per_ip() -> int:
        return int(_setting("FRAUD_MAX_ACCOUNTS_PER_IP", 5))

    @staticmethod
    def webhook_secret(platform: str) -> str:
        return getattr(settings, "WEBHOOK_SECRETS", {}).get(platform, "")
