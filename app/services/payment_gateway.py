import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)


def compute_payment_signature(secret: str, order_id: str, payment_id: str) -> str:
    """HMAC-SHA256 over ``"<order_id>|<payment_id>"``, hex encoded."""
    payload = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


class PaymentGateway:
    """Verifies checkout callbacks signed with the gateway key secret."""

    def __init__(self, key_secret: str):
        self.key_secret = key_secret

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not order_id or not payment_id or not signature:
            return False
        expected = compute_payment_signature(self.key_secret, order_id, payment_id)
        valid = hmac.compare_digest(expected, signature)
        if not valid:
            logger.warning("Payment signature mismatch for gateway order %s", order_id)
        return valid
