# -----------------------------------------------------------------------------
# CENTRALIZED CACHE-KEY TEMPLATES
#
# Usage:
#    CacheKeyManager.make_key("negotiation", "stats", sku="TSHIRT-01")
#    -> "negotiation:stats:TSHIRT-01"
#
# Django's KEY_PREFIX is prepended by the cache backend.
# -----------------------------------------------------------------------------
CACHE_KEY_TEMPLATES = {
    "negotiation": {
        "stats": "negotiation:stats:{sku}",
    },
}
