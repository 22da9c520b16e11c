# Overview: Thin Razorpay REST client used by the subscription service.

from __future__ import annotations

import logging

import httpx

from ..errors import GatewayError

logger = logging.getLogger(__name__)


class RazorpayClient:
    """
    Minimal Razorpay subscriptions API client.

    Only the calls CasaStock needs; the gateway's own behavior is out of scope.
    Installed on the app as app.extensions["razorpay"] so tests can swap it.
    """

    def __init__(
        self,
        key_id: str | None,
        key_secret: str | None,
        *,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 15.0,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "RazorpayClient":
        return cls(
            config.get("RAZORPAY_KEY_ID"),
            config.get("RAZORPAY_KEY_SECRET"),
            base_url=config.get("RAZORPAY_API_BASE", "https://api.razorpay.com/v1"),
            timeout=config.get("RAZORPAY_TIMEOUT_SECONDS", 15.0),
        )

    def create_subscription(self, *, plan_id: str, owner_id: int) -> dict:
        """
        POST /subscriptions for a single monthly cycle.

        Returns the gateway's JSON (``id``, ``short_url``, ``status``...).
        Raises GatewayError on misconfiguration, transport failure or non-2xx.
        """
        if not (self.key_id and self.key_secret and plan_id):
            raise GatewayError("Payment gateway is not configured")

        payload = {
            "plan_id": plan_id,
            "total_count": 1,
            "quantity": 1,
            "customer_notify": 0,
            "notes": {"owner_id": str(owner_id)},
        }

        try:
            with httpx.Client(timeout=self.timeout, auth=(self.key_id, self.key_secret)) as client:
                resp = client.post(f"{self.base_url}/subscriptions", json=payload)
        except httpx.HTTPError as exc:
            logger.error("Razorpay request failed: %s", exc)
            raise GatewayError("Payment gateway unavailable") from exc

        if resp.status_code >= 400:
            logger.error("Razorpay returned %s: %s", resp.status_code, resp.text[:500])
            raise GatewayError("Payment gateway rejected the request")

        try:
            data = resp.json()
        except ValueError as exc:
            raise GatewayError("Payment gateway returned an invalid response") from exc

        if not isinstance(data, dict) or not data.get("id"):
            raise GatewayError("Payment gateway returned an invalid response")
        return data
