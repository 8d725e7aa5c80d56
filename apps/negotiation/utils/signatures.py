import base64
import hashlib
import hmac
import json
from typing import Any, Optional, Union


def compute_signature(data: Union[bytes, str], secret: str) -> str:
    """Base64 encoded HMAC-SHA256 of ``data``."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), data, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def signatures_match(expected: str, received: Optional[str]) -> bool:
    if not received:
        return False
    return hmac.compare_digest(expected.encode("ascii"), received.strip().encode("utf-8"))


def canonical_json(payload: Any) -> str:
    """Compact JSON serialization used for body-level signatures."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def verify_shopify_webhook(raw_body: bytes, hmac_header: Optional[str], secret: str) -> bool:
    """Shopify signs the raw request body."""
    return signatures_match(compute_signature(raw_body, secret), hmac_header)


def verify_woo_webhook(payload: Any, signature: Optional[str], secret: str) -> bool:
    """WooCommerce signatures are checked over the serialized JSON body."""
    return signatures_match(compute_signature(canonical_json(payload), secret), signature)
