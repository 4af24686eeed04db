import hashlib
import hmac
import logging
from typing import Optional

from app.core.exceptions import AuthError

logger = logging.getLogger(__name__)


def compute_signature(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), payload, hashlib.sha1).hexdigest()


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """
    Universe signs the exact raw body with HMAC-SHA1 and sends the hex digest.
    """
    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected.encode(), signature.strip().lower().encode())


def verify_request(payload: bytes, signature: Optional[str], secret: Optional[str]) -> None:
    if not signature or not secret:
        logger.error(
            f"Missing signature or secret (signature present: {bool(signature)}, secret present: {bool(secret)})")
        raise AuthError("Missing signature or secret")
    if not verify_signature(payload, signature, secret):
        logger.error("Invalid webhook signature")
        raise AuthError("Invalid signature")
