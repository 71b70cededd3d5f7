# controllers/admin.py
from __future__ import annotations
from functools import wraps

from flask import Blueprint, request, jsonify, current_app
from werkzeug.security import generate_password_hash, check_password_hash

from services.admin_sessions import get_store, new_token
from services.metrics import ADMIN_LOGINS

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

TOKEN_HEADER = "X-Admin-Token"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def _password_matches(password: str) -> bool:
    expected = current_app.config.get("ADMIN_PASSWORD_HASH")
    if not expected:
        return False
    try:
        return check_password_hash(expected, password)
    except ValueError:
        # not a werkzeug hash (unknown method or malformed)
        current_app.logger.error("ADMIN_PASSWORD_HASH is not a werkzeug password hash")
        return False


def admin_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        token = request.headers.get(TOKEN_HEADER)
        if not token or not get_store(current_app).contains(token):
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)
    return wrapper


@admin_bp.post("/login")
def login():
    payload = request.get_json(force=True, silent=True) or {}
    password = payload.get("password") if isinstance(payload, dict) else None
    if not password or not isinstance(password, str):
        ADMIN_LOGINS.labels(outcome="missing_password").inc()
        return jsonify({"error": "Password required"}), 400

    if not current_app.config.get("ADMIN_PASSWORD_HASH"):
        current_app.logger.warning("admin login attempted but no admin password is configured")

    if not _password_matches(password):
        ADMIN_LOGINS.labels(outcome="bad_password").inc()
        current_app.logger.warning("admin login failed from %s", request.remote_addr)
        return jsonify({"error": "Invalid password"}), 403

    token = new_token()
    get_store(current_app).add(token)
    ADMIN_LOGINS.labels(outcome="success").inc()
    current_app.logger.info("admin session issued for %s", request.remote_addr)
    return jsonify({"token": token})


@admin_bp.post("/logout")
@admin_required
def logout():
    get_store(current_app).discard(request.headers.get(TOKEN_HEADER))
    return jsonify({"ok": True})


# Example protected route
@admin_bp.get("/secret")
@admin_required
def secret():
    return jsonify({"message": "Welcome, Admin 🚀"})
