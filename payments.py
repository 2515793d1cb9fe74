"""
Razorpay integration: remote order creation and callback signature checks.
"""
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import requests

from errors import PaymentGatewayError

logger = logging.getLogger(__name__)


def to_minor_units(amount: float) -> int:
    """Rupees to paise (the gateway works in the currency's minor unit)."""
    return int(round(amount * 100))


def expected_signature(secret: str, order_id: str, payment_id: str) -> str:
    body = f"{order_id}|{payment_id}"
    return hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()


def verify_payment(secret: str, order_id: str, payment_id: str, signature: Optional[str]) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(
        expected_signature(secret, order_id, payment_id).encode(),
        signature.encode(),
    )


class RazorpayGateway:
    def __init__(self, key_id: str, key_secret: str, api_url: str = "https://api.razorpay.com/v1",
                 timeout: float = 10.0):
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.auth = (key_id, key_secret)

    def create_order(self, amount: float, currency: str, receipt: Optional[str]) -> Dict[str, Any]:
        payload = {"amount": to_minor_units(amount), "currency": currency, "receipt": receipt}
        logger.info("Creating gateway order for %s %s (receipt=%s)", payload["amount"], currency, receipt)
        try:
            response = self.session.post(f"{self.api_url}/orders", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Gateway unreachable: %s", e)
            raise PaymentGatewayError(f"Payment gateway error: {str(e)[:100]}")
        if not response.ok:
            logger.error("Gateway rejected order (%s): %s", response.status_code, response.text[:200])
            raise PaymentGatewayError(f"Payment gateway error: {_error_description(response)}")
        return response.json()


def _error_description(response: requests.Response) -> str:
    try:
        return response.json()["error"]["description"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP {response.status_code}"
