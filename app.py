from models.base import init_engine_and_session, Base
import os
import logging
from logging.handlers import RotatingFileHandler
from time import time

from flask import Flask, request, g, jsonify
from flask_cors import CORS
from dotenv import load_dotenv
from sqlalchemy import text
from controllers.admin import admin_bp, hash_password, TOKEN_HEADER
from controllers.webhooks import webhooks_bp
from services import admin_sessions
from services.metrics import init_app as init_metrics, REQUEST_COUNT, REQUEST_LATENCY

# --- Load .env exactly once, here ---
# If you run "python app.py", this ensures variables are loaded.
# If you use "flask run", Flask will also load .env automatically (when python-dotenv is installed).
load_dotenv()

# Must be present before a production process accepts traffic
REQUIRED_IN_PRODUCTION = (
    "FLASK_SECRET_KEY",
    "DATABASE_URL",
    "RAZORPAY_WEBHOOK_SECRET",
    "SMTP_USER",
    "SMTP_APP_PASSWORD",
    "EMAIL_FROM",
)

DEFAULT_CORS_ORIGINS = "https://noy-admin.web.app,https://gauravbuilds.web.app"


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in ("1", "true", "yes", "on")


def _parse_origins(env_val: str | None) -> list[str]:
    return [o.strip().rstrip("/") for o in (env_val or "").split(",") if o.strip()]


def _admin_password_hash() -> str | None:
    # A precomputed werkzeug hash wins; otherwise hash the plain password once at startup
    h = os.getenv("ADMIN_PASSWORD_HASH")
    if h:
        return h.strip()
    pwd = os.getenv("ADMIN_PASSWORD")
    return hash_password(pwd) if pwd else None


def create_app(test_config: dict | None = None):
    app = Flask(__name__, instance_relative_config=True)

    # ---- Base config from environment (no hardcoded secrets) ----
    APP_ENV = os.getenv("APP_ENV", "development").lower()

    if APP_ENV == "production":
        missing = [k for k in REQUIRED_IN_PRODUCTION if not os.getenv(k)]
        if missing:
            raise RuntimeError(f"Missing env {', '.join(missing)}")

    secret_key = os.getenv("FLASK_SECRET_KEY") or os.urandom(32)  # dev-only fallback

    app.config.from_mapping(
        SECRET_KEY=secret_key,
        APP_ENV=APP_ENV,

        # Gateway
        RAZORPAY_WEBHOOK_SECRET=os.getenv("RAZORPAY_WEBHOOK_SECRET"),
        RAZORPAY_KEY_ID=os.getenv("RAZORPAY_KEY_ID"),
        RAZORPAY_KEY_SECRET=os.getenv("RAZORPAY_KEY_SECRET"),
        RAZORPAY_API_BASE=os.getenv("RAZORPAY_API_BASE"),
        PAYMENT_GATEWAY=os.getenv("PAYMENT_GATEWAY", "razorpay"),
        SETTLEMENT_CURRENCY=os.getenv("SETTLEMENT_CURRENCY", "INR"),
        CAPTURE_TIMEOUT_SEC=float(os.getenv("CAPTURE_TIMEOUT_SEC", "10")),
        WEBHOOK_DEADLINE_SEC=float(os.getenv("WEBHOOK_DEADLINE_SEC", "25")),

        # Mail
        MAIL_BACKEND=os.getenv("MAIL_BACKEND", "smtp"),
        SMTP_HOST=os.getenv("SMTP_HOST", "smtp.gmail.com"),
        SMTP_PORT=int(os.getenv("SMTP_PORT", "587")),
        SMTP_USER=os.getenv("SMTP_USER"),
        SMTP_APP_PASSWORD=os.getenv("SMTP_APP_PASSWORD"),
        SMTP_TIMEOUT_SEC=float(os.getenv("SMTP_TIMEOUT_SEC", "20")),
        EMAIL_FROM=os.getenv("EMAIL_FROM"),

        # Confirmation e-mail content
        ORDER_EMAIL_TEMPLATE=os.getenv("ORDER_EMAIL_TEMPLATE"),
        MAIL_BRAND_NAME=os.getenv("MAIL_BRAND_NAME", "NEW OF YOU"),
        DISPLAY_TZ=os.getenv("DISPLAY_TZ", "Asia/Kolkata"),
        BASE_SITE_URL=os.getenv("BASE_SITE_URL"),
        SUPPORT_URL=os.getenv("SUPPORT_URL"),
        INSTAGRAM_URL=os.getenv("INSTAGRAM_URL"),
        FACEBOOK_URL=os.getenv("FACEBOOK_URL"),
        YOUTUBE_URL=os.getenv("YOUTUBE_URL"),
        LINKEDIN_URL=os.getenv("LINKEDIN_URL"),
        UNSUBSCRIBE_URL=os.getenv("UNSUBSCRIBE_URL"),

        # Admin sessions
        ADMIN_PASSWORD_HASH=_admin_password_hash(),
        ADMIN_SESSION_BACKEND=os.getenv("ADMIN_SESSION_BACKEND", "memory"),
        ADMIN_SESSION_TTL_SEC=float(os.getenv("ADMIN_SESSION_TTL_SEC", "0")),
        REDIS_URL=os.getenv("REDIS_URL"),

        CORS_ALLOWED_ORIGINS=_parse_origins(
            os.getenv("CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS)),
    )
    if test_config:
        app.config.update(test_config)

    # ---- Logging ----
    # default on in containers
    log_to_stdout = os.getenv("LOG_TO_STDOUT", "1") == "1"
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    if log_to_stdout:
        handler = logging.StreamHandler()
    else:
        log_dir = os.path.join(os.path.dirname(__file__), "log")
        try:
            os.makedirs(log_dir, exist_ok=True)
            handler = RotatingFileHandler(
                os.path.join(log_dir, "app.log"),
                maxBytes=5 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
        except OSError:
            # If file logging fails (e.g., in a container), fall back to stdout
            handler = logging.StreamHandler()

    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    ))

    # avoid duplicate handlers on reload
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    app.logger.setLevel(logging.INFO)

    if not app.config.get("RAZORPAY_WEBHOOK_SECRET"):
        app.logger.warning("RAZORPAY_WEBHOOK_SECRET is not set; every webhook will be rejected")

    # ---- DB (read side of the storefront schema) ----
    if _env_bool("AUTO_CREATE_SCHEMA", False):
        engine, _Session = init_engine_and_session()
        Base.metadata.create_all(engine, checkfirst=True)

    # ---- CORS (admin UI origins only) ----
    CORS(
        app,
        origins=app.config["CORS_ALLOWED_ORIGINS"],
        supports_credentials=True,
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", TOKEN_HEADER],
    )

    # ---- Admin session store ----
    admin_sessions.init_app(app)

    # ---- Blueprints ----
    app.register_blueprint(webhooks_bp)
    app.register_blueprint(admin_bp)

    # Prometheus
    if _env_bool("METRICS_ENABLED", True):
        init_metrics(app)

    # ---- Errors ----

    @app.errorhandler(404)
    def not_found(e):
        app.logger.warning("404 %s %s", request.method, request.path)
        return jsonify(error="not found", path=request.path), 404

    @app.errorhandler(405)
    def not_allowed(e):
        app.logger.warning("405 %s %s", request.method, request.path)
        return jsonify(error="method not allowed", path=request.path), 405

    # ---- Routes ----

    @app.before_request
    def _start_timer():
        g._t0 = time()

    @app.after_request
    def _log_request(resp):
        try:
            ms = (time() - getattr(g, "_t0", time())) * 1000
            app.logger.info("%s %s %s %s %.1fms",
                            request.remote_addr, request.method, request.path, resp.status_code, ms)

            # --- Skip self-scrapes to keep series clean ---
            ep = request.endpoint or ""
            path = request.path or ""
            if path.startswith("/metrics"):
                return resp

            endpoint = ep.replace(".", "_") or "unknown"
            method = request.method
            status = str(resp.status_code)

            REQUEST_COUNT.labels(
                method=method, endpoint=endpoint, status=status).inc()
            REQUEST_LATENCY.labels(
                endpoint=endpoint, method=method).observe(ms / 1000.0)
        except Exception:
            app.logger.exception("Failed to log request")
        return resp

    @app.get("/health")
    def health():
        # Liveness: process is up, Flask can serve a simple request
        return jsonify(ok=True), 200

    @app.get("/readyz")
    def readyz():
        # Readiness: app can talk to the DB
        try:
            engine, _ = init_engine_and_session()
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return jsonify(status="ok"), 200
        except Exception as e:
            app.logger.exception("Readiness check failed")
            return jsonify(status="error", error=str(e)), 500

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "3000")), debug=(
        app.config["APP_ENV"] != "production"))
