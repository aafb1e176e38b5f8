import json
import uuid
import redis
from typing import Dict, Optional
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder


class PaymentGatewayError(Exception):
    """Raised when the payment provider cannot be reached or errors out"""


def get_redis_client():
    return redis.Redis(
        host=settings.REDIS_HOST,
        port=int(settings.REDIS_PORT),
        db=int(settings.REDIS_DB),
        decode_responses=True
    )


class MockPaymentGateway:
    """
    Stand-in for the card, PayPal and Paymob providers.

    Charges succeed unless the amount ends in 13 (minor units), which is
    declined as insufficient funds. Redis keeps the results of completed
    payment requests so retried requests can be answered without charging
    twice.
    """

    REFERENCE_PREFIXES = {
        'stripe': 'pi',
        'paypal': 'PAYID',
        'paymob': 'pm',
    }

    # Placeholder held under a key while its payment is running
    PENDING = 'pending'

    def __init__(self, provider: str = 'stripe', redis_client=None):
        if provider not in settings.PAYMENT_PROVIDERS:
            raise ValueError(f"Unknown payment provider: {provider}")
        self.provider = provider
        self.redis_client = redis_client if redis_client is not None else get_redis_client()

    def charge(self, amount_p: int, currency: str = "egp") -> Dict:
        """
        Charge the customer

        Args:
            amount_p: Amount in piastres
            currency: Currency code (default: egp)

        Returns:
            Dict with status ("succeeded" or "failed"), reference, amount,
            currency and, on failure, reason
        """
        reference = f"{self.REFERENCE_PREFIXES.get(self.provider, 'pay')}_{uuid.uuid4().hex[:8]}"
        result = {
            "provider": self.provider,
            "reference": reference,
            "amount": amount_p,
            "currency": currency,
        }

        if amount_p % 100 == 13:
            result.update(status="failed", reason="Insufficient funds")
        else:
            result.update(status="succeeded")
        return result

    def refund(self, reference: str, amount_p: int) -> Dict:
        """
        Return a captured charge to the customer

        Args:
            reference: Provider reference of the charge
            amount_p: Amount in piastres

        Returns:
            Dict with provider, reference, amount and status "refunded"
        """
        return {
            "provider": self.provider,
            "reference": reference,
            "amount": amount_p,
            "status": "refunded",
        }

    def reserve_key(self, idempotency_key: str, expire_seconds: Optional[int] = None) -> bool:
        """
        Claim an idempotency key before charging

        Returns:
            True if this request owns the key, False if it is in progress or done
        """
        cache_key = f"payment_result:{idempotency_key}"
        expire_seconds = expire_seconds or settings.PAYMENT_IDEMPOTENCY_TTL
        return bool(self.redis_client.set(cache_key, self.PENDING, nx=True, ex=expire_seconds))

    def store_result(self, idempotency_key: str, payload: Dict, expire_seconds: Optional[int] = None) -> bool:
        """
        Remember the response of a completed payment request

        Args:
            idempotency_key: Key supplied by the client (key)
            payload: Response body to replay (value)
            expire_seconds: Expiration time in seconds (default: PAYMENT_IDEMPOTENCY_TTL)

        Returns:
            True if stored successfully
        """
        cache_key = f"payment_result:{idempotency_key}"
        expire_seconds = expire_seconds or settings.PAYMENT_IDEMPOTENCY_TTL
        return bool(self.redis_client.setex(cache_key, expire_seconds, json.dumps(payload, cls=DjangoJSONEncoder)))

    def get_stored_result(self, idempotency_key: str) -> Optional[Dict]:
        """
        Get the response stored for an idempotency key

        Returns:
            Stored response body, None if not found, expired or still pending
        """
        raw = self.redis_client.get(f"payment_result:{idempotency_key}")
        if raw is None or raw == self.PENDING:
            return None
        return json.loads(raw)

    def clear_stored_result(self, idempotency_key: str) -> bool:
        """
        Forget the response stored for an idempotency key

        Returns:
            True if removed, False if not found
        """
        return bool(self.redis_client.delete(f"payment_result:{idempotency_key}"))
