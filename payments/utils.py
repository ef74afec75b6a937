"""Signature helpers for Razorpay payment confirmations and webhooks."""

import hmac, hashlib, logging
from django.core.exceptions import ImproperlyConfigured


logger = logging.getLogger(__name__)


def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def _matches(expected: str, signature) -> bool:
    # compare_digest refuses non-ASCII str, so compare UTF-8 bytes instead
    supplied = (signature or "").strip().encode("utf-8", "replace")
    return hmac.compare_digest(expected.encode(), supplied)


def payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Return the hex HMAC-SHA256 Razorpay computes over ``order_id|payment_id``."""
    return _hmac_hex(secret, f"{order_id}|{payment_id}".encode())


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """
    Recompute the checkout signature with the key secret and compare it to
    what the client sent, in constant time.

    Raises :class:`ImproperlyConfigured` when the secret is missing: an empty
    key would make every signature trivially forgeable.
    """
    if not secret:
        logger.error("Razorpay KEY_SECRET missing in settings")
        raise ImproperlyConfigured("RAZORPAY['KEY_SECRET'] setting is required to verify payments")
    return _matches(payment_signature(order_id, payment_id, secret), signature)


def verify_webhook_signature(body: bytes, signature: str, secret: str) -> bool:
    """Check ``X-Razorpay-Signature``: hex HMAC-SHA256 of the raw request body."""
    if not secret:
        logger.error("Razorpay WEBHOOK_SECRET missing in settings")
        raise ImproperlyConfigured("RAZORPAY['WEBHOOK_SECRET'] setting is required to accept webhooks")
    return _matches(_hmac_hex(secret, body or b""), signature)
