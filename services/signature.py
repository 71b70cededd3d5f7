# services/signature.py
"""
HMAC-SHA256 webhook signatures.

The gateway signs the exact bytes it sends, so verification must run on the
untouched request body (request.get_data()), never on re-serialized JSON.
"""

from __future__ import annotations
import hashlib
import hmac


def compute_signature(raw: bytes, secret: str) -> str:
    """Lowercase hex HMAC-SHA256 of raw using secret."""
    return hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()


def verify_signature(raw: bytes, signature: str | None, secret: str | None) -> bool:
    if not secret or not signature:
        return False
    try:
        expected = compute_signature(raw, secret)
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))
    except (TypeError, UnicodeError):
        return False
