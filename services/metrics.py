# services/metrics.py
from __future__ import annotations
import os

os.environ.setdefault("PROMETHEUS_DISABLE_CREATED_SERIES", "1")

from prometheus_client import (  # noqa: E402
    Counter, Histogram, CollectorRegistry,
    generate_latest, CONTENT_TYPE_LATEST,
)

# Use a DEDICATED registry so only our app metrics show up
APP_REGISTRY = CollectorRegistry(auto_describe=True)

# --- Generic HTTP metrics (bind to our registry) ---
REQUEST_COUNT = Counter(
    "http_requests_total", "HTTP requests total",
    ["method", "endpoint", "status"], registry=APP_REGISTRY
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Request latency (seconds)",
    ["endpoint", "method"], registry=APP_REGISTRY,
)

# --- Webhook pipeline ---
WEBHOOK_EVENTS = Counter(
    "payments_webhook_events_total", "Webhook events", ["event", "outcome"], registry=APP_REGISTRY
)
CAPTURE_ATTEMPTS = Counter(
    "payments_capture_attempts_total", "Capture calls made from payment.authorized", [
        "outcome"], registry=APP_REGISTRY
)
CONFIRMATION_EMAILS = Counter(
    "order_confirmation_emails_total", "Order confirmation e-mails", [
        "outcome"], registry=APP_REGISTRY
)

# --- Admin sessions ---
ADMIN_LOGINS = Counter("admin_login_total", "Admin login attempts", [
                       "outcome"], registry=APP_REGISTRY)


def init_app(app):
    @app.get("/metrics")
    def metrics():
        data = generate_latest(APP_REGISTRY)
        return app.response_class(data, mimetype=CONTENT_TYPE_LATEST)

    # --- pre-warm labeled series so dashboards don't say "No data" ---
    for outcome in ("ok", "failed", "skipped"):
        CAPTURE_ATTEMPTS.labels(outcome=outcome).inc(0)
    for outcome in ("sent", "failed"):
        CONFIRMATION_EMAILS.labels(outcome=outcome).inc(0)
    for outcome in ("success", "bad_password", "missing_password"):
        ADMIN_LOGINS.labels(outcome=outcome).inc(0)
