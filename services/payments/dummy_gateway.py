# services/payments/dummy_gateway.py
"""
A development-only gateway that pretends every capture succeeds.
Lets the webhook flow run locally without Razorpay credentials.
"""

from __future__ import annotations
import logging
from typing import Any

from services.payments.base import CaptureResult, PaymentGateway

logger = logging.getLogger(__name__)


class DummyGateway(PaymentGateway):
    name = "dummy"

    def capture(self, payment_id: str, amount: Any, currency: str) -> CaptureResult:
        logger.info("dummy capture payment=%s amount=%s %s",
                    payment_id, amount, currency)
        return CaptureResult(payment_id=payment_id, status="captured",
                             amount=amount, currency=currency)
