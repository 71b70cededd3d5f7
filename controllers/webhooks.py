# controllers/webhooks.py
from __future__ import annotations
from flask import Blueprint, request, jsonify, current_app

from services.mailer import get_mailer
from services.metrics import WEBHOOK_EVENTS
from services.notifications import Branding, OrderConfirmationRenderer
from services.payments.registry import get_gateway
from services.webhook_dispatcher import WebhookDispatcher

webhooks_bp = Blueprint("webhooks", __name__)

SIGNATURE_HEADER = "X-Razorpay-Signature"


def build_dispatcher() -> WebhookDispatcher:
    cfg = current_app.config
    return WebhookDispatcher(
        secret=cfg.get("RAZORPAY_WEBHOOK_SECRET"),
        gateway=get_gateway(),
        mailer=get_mailer(),
        render=OrderConfirmationRenderer(
            template_path=cfg.get("ORDER_EMAIL_TEMPLATE"),
            branding=Branding.from_config(cfg),
            display_tz=cfg.get("DISPLAY_TZ"),
        ),
        settlement_currency=(cfg.get("SETTLEMENT_CURRENCY") or "INR").upper(),
        deadline_sec=float(cfg.get("WEBHOOK_DEADLINE_SEC") or 0) or None,
    )


# ----- gateway webhook (no session auth, signature-verified) -----

@webhooks_bp.post("/razorpay/webhook")
def razorpay_webhook():
    """
    Raw body in, outcome out. The body is read untouched (get_data) because the
    signature covers the exact bytes the gateway sent.
    """
    raw = request.get_data(cache=True)
    sig = request.headers.get(SIGNATURE_HEADER)

    event, outcome = build_dispatcher().handle(raw, sig)

    WEBHOOK_EVENTS.labels(
        event=(event.name if event and event.name else "unknown"),
        outcome=outcome.status or outcome.error or "unknown",
    ).inc()

    if outcome.ok:
        return jsonify(status=outcome.status), outcome.status_code
    return outcome.error, outcome.status_code, {"Content-Type": "text/plain; charset=utf-8"}
