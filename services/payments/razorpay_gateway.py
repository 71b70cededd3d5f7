# services/payments/razorpay_gateway.py
"""
Razorpay capture client (REST, HTTP basic auth with key id / key secret).

Configuration (env first, Flask config second):
  RAZORPAY_KEY_ID        key id
  RAZORPAY_KEY_SECRET    key secret
  RAZORPAY_API_BASE      default: https://api.razorpay.com/v1
  CAPTURE_TIMEOUT_SEC    seconds (default 10)
"""

from __future__ import annotations
from typing import Any

import requests

from services.payments.base import CaptureError, CaptureResult, PaymentGateway

DEFAULT_API_BASE = "https://api.razorpay.com/v1"


class RazorpayGateway(PaymentGateway):
    name = "razorpay"

    def __init__(self, key_id: str | None, key_secret: str | None,
                 api_base: str | None = None, timeout: float = 10,
                 session: requests.Session | None = None) -> None:
        self.api_base = (api_base or DEFAULT_API_BASE).rstrip("/")
        self.timeout = timeout
        self.session = session          # injected sessions are owned by the caller
        self.auth = (key_id or "", key_secret or "")
        self.configured = bool(key_id and key_secret)

    def _url(self, payment_id: str) -> str:
        return f"{self.api_base}/payments/{payment_id}/capture"

    def _post(self, session, payment_id: str, amount: Any, currency: str):
        return session.post(
            self._url(payment_id),
            json={"amount": amount, "currency": currency},
            auth=self.auth,
            timeout=self.timeout,
        )

    def capture(self, payment_id: str, amount: Any, currency: str) -> CaptureResult:
        if not self.configured:
            raise CaptureError("RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET not set")
        try:
            if self.session is not None:
                r = self._post(self.session, payment_id, amount, currency)
            else:
                with requests.Session() as s:
                    r = self._post(s, payment_id, amount, currency)
        except requests.exceptions.RequestException as e:
            raise CaptureError(f"capture request failed: {e}") from e

        if r.status_code >= 400:
            # Razorpay errors look like {"error": {"code": ..., "description": ...}}
            try:
                desc = (r.json().get("error") or {}).get("description")
            except ValueError:
                desc = None
            raise CaptureError(f"capture rejected ({r.status_code}): {desc or r.text[:200]}")

        try:
            data = r.json()
        except ValueError as e:
            raise CaptureError("capture response was not JSON") from e

        return CaptureResult(
            payment_id=data.get("id", payment_id),
            status=data.get("status", ""),
            amount=data.get("amount"),
            currency=data.get("currency"),
            raw=data,
        )
