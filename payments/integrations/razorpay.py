import json, logging
import requests
from requests import RequestException, Timeout
from requests.auth import HTTPBasicAuth

from ..config import GatewayConfig
from ..exceptions import GatewayError

logger = logging.getLogger(__name__)

COMMON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class RazorpayClient:
    """Thin client for the Razorpay Orders API.

    Every failure mode surfaces as :class:`GatewayError`: HTTP 4xx keeps the
    gateway's own ``error.description`` and maps to 400, anything else
    (5xx, network failure, timeout) maps to 502/504.
    """

    def __init__(self, config: GatewayConfig):
        self.config = config

    def _auth(self) -> HTTPBasicAuth:
        if not self.config.is_configured:
            raise GatewayError("Payment gateway is not configured", status_code=503)
        return HTTPBasicAuth(self.config.key_id, self.config.key_secret)

    def _request(self, method: str, path: str, payload=None) -> dict:
        url = f"{self.config.base_url}{path}"
        auth = self._auth()
        try:
            resp = requests.request(
                method, url, json=payload, headers=COMMON_HEADERS, auth=auth, timeout=self.config.timeout,
            )
        except Timeout:
            logger.error("Razorpay %s %s timed out after %ss", method, path, self.config.timeout)
            raise GatewayError("Payment gateway timed out", status_code=504)
        except RequestException as e:
            logger.error("Razorpay %s %s failed: %s", method, path, e)
            raise GatewayError(f"Gateway request failed: {e}")

        try: data = resp.json()
        except ValueError: data = {"raw": resp.text}

        if 200 <= resp.status_code < 300:
            return data

        error = data.get("error") if isinstance(data, dict) else None
        description = (error or {}).get("description") if isinstance(error, dict) else None
        logger.error(
            "Razorpay %s %s failed: status=%s body=%s", method, path, resp.status_code, json.dumps(data)[:800],
        )
        if 400 <= resp.status_code < 500:
            raise GatewayError(description or "Failed to create order", status_code=400, payload=data)
        raise GatewayError(description or f"Gateway error {resp.status_code}", payload=data)

    def create_order(self, *, amount: int, currency: str, receipt: str, notes: dict) -> dict:
        payload = {"amount": amount, "currency": currency, "receipt": receipt, "notes": notes}
        data = self._request("POST", "/v1/orders", payload)
        if not data.get("id"):
            raise GatewayError("Gateway response missing order id", payload=data)
        return data

    def fetch_order_payments(self, order_id: str) -> list:
        data = self._request("GET", f"/v1/orders/{order_id}/payments")
        return data.get("items") or []
