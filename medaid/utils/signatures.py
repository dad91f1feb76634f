"""HMAC signing for provider webhooks."""
import hashlib
import hmac
from typing import Optional

SIGNATURE_HEADER = "X-Provider-Signature"
SIGNATURE_PREFIX = "sha256="


def sign_payload(secret: str, body: bytes) -> str:
    """Return the signature header value for a raw request body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Constant-time check of a ``sha256=<hex>`` signature header."""
    if not signature or not signature.startswith(SIGNATURE_PREFIX):
        return False
    expected = sign_payload(secret, body)
    return hmac.compare_digest(expected, signature.strip())
