import os
from flask import current_app, has_app_context
# replace/add real adapters here
from services.payments.dummy_gateway import DummyGateway


def _cfg(key: str, default: str | None = None) -> str | None:
    v = os.environ.get(key)
    if v is not None:
        return v
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def get_gateway():
    name = (_cfg("PAYMENT_GATEWAY") or "razorpay").lower()
    if name == "dummy":
        return DummyGateway()
    if name == "razorpay":
        from services.payments.razorpay_gateway import RazorpayGateway
        return RazorpayGateway(
            key_id=_cfg("RAZORPAY_KEY_ID"),
            key_secret=_cfg("RAZORPAY_KEY_SECRET"),
            api_base=_cfg("RAZORPAY_API_BASE"),
            timeout=float(_cfg("CAPTURE_TIMEOUT_SEC", "10") or 10),
        )
    raise RuntimeError(f"Unknown PAYMENT_GATEWAY: {name}")
