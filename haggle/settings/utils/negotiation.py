from .get_env import env

# Negotiation engine settings
NEGOTIATION_SETTINGS = {
    # Profitability model (percentages are of the catalog price unless noted)
    "COST_RATIO": env.get("NEGOTIATION_COST_RATIO", default="0.65"),
    "MINIMUM_MARGIN_PCT": env.get("NEGOTIATION_MINIMUM_MARGIN_PCT", default="15"),
    "TARGET_MARGIN_PCT": env.get("NEGOTIATION_TARGET_MARGIN_PCT", default="25"),
    "MIN_DISCOUNT_PCT": env.get("NEGOTIATION_MIN_DISCOUNT_PCT", default="2"),
    "MAX_DISCOUNT_PCT": env.get("NEGOTIATION_MAX_DISCOUNT_PCT", default="10"),
    "SWEET_SPOT_DISCOUNT_PCT": env.get(
        "NEGOTIATION_SWEET_SPOT_DISCOUNT_PCT", default="8"
    ),
    # Rounds
    "ROUND_CAP": env.get("NEGOTIATION_ROUND_CAP", default=4, cast_to=int),
    "COUNTER_SCHEDULE_PCT": env.list(
        "NEGOTIATION_COUNTER_SCHEDULE_PCT", default="3,5,7"
    ),
    "FINAL_DISCOUNT_PCT": env.get("NEGOTIATION_FINAL_DISCOUNT_PCT", default="10"),
    "TARGET_ANCHOR_ROUNDS": env.get(
        "NEGOTIATION_TARGET_ANCHOR_ROUNDS", default=2, cast_to=int
    ),
    "TARGET_ANCHOR_RATIO": env.get("NEGOTIATION_TARGET_ANCHOR_RATIO", default="0.95"),
    "PRICE_ROUNDING_UNIT": env.get("NEGOTIATION_PRICE_ROUNDING_UNIT", default="500"),
    # Accept an in-window offer on the last allowed round instead of countering
    "ACCEPT_ON_FINAL_ROUND": env.get(
        "NEGOTIATION_ACCEPT_ON_FINAL_ROUND", default=True, cast_to=bool
    ),
    # Lifetimes
    "DISCOUNT_TTL_HOURS": env.get("NEGOTIATION_DISCOUNT_TTL_HOURS", default=24, cast_to=int),
    "SESSION_IDLE_TIMEOUT_MINUTES": env.get(
        "NEGOTIATION_SESSION_IDLE_TIMEOUT_MINUTES", default=30, cast_to=int
    ),
    # Presentation
    "CURRENCY": env.get("NEGOTIATION_CURRENCY", default="RWF"),
    # Fraud checks when a session is opened
    "FRAUD_LOWBALL_RATIO": env.get("NEGOTIATION_FRAUD_LOWBALL_RATIO", default="0.5"),
    "FRAUD_MAX_DAILY_NEGOTIATIONS": env.get(
        "NEGOTIATION_FRAUD_MAX_DAILY_NEGOTIATIONS", default=20, cast_to=int
    ),
    "FRAUD_MAX_ACCOUNTS_PER_IP": env.get(
        "NEGOTIATION_FRAUD_MAX_ACCOUNTS_PER_IP", default=5, cast_to=int
    ),
    # Caching
    "STATS_CACHE_TIMEOUT": 3600,  # 1 hour
}

# Webhook secrets per commerce platform, empty disables signature checks
WEBHOOK_SECRETS = {
    "shopify": env.get("SHOPIFY_WEBHOOK_SECRET", default=""),
    "woocommerce": env.get("WOO_WEBHOOK_SECRET", default=""),
}
