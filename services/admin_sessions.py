# services/admin_sessions.py
"""
Admin session tokens.

A token is an opaque random string handed out by /admin/login. Where tokens
live is pluggable (ADMIN_SESSION_BACKEND):

  memory (default)  process-local dict behind a lock; gone on restart
  redis             shared across workers, expiry handled by Redis

ADMIN_SESSION_TTL_SEC <= 0 means "valid until the backend forgets it".
"""

from __future__ import annotations
import secrets
import threading
import time
from typing import Optional, Protocol

EXTENSION_KEY = "admin_sessions"


class SessionStore(Protocol):
    def add(self, token: str) -> None: ...
    def contains(self, token: str) -> bool: ...
    def discard(self, token: str) -> None: ...


def new_token() -> str:
    return secrets.token_hex(24)


class InMemorySessionStore:
    def __init__(self, ttl_seconds: Optional[float] = None, clock=time.monotonic):
        self.ttl = ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        self._clock = clock
        self._tokens: dict[str, Optional[float]] = {}   # token -> expires_at
        self._lock = threading.Lock()

    def add(self, token: str) -> None:
        now = self._clock()
        expires = now + self.ttl if self.ttl else None
        with self._lock:
            if self.ttl:
                self._sweep(now)
            self._tokens[token] = expires

    def _sweep(self, now: float) -> None:
        # caller holds the lock
        dead = [t for t, exp in self._tokens.items() if exp is not None and exp <= now]
        for t in dead:
            del self._tokens[t]

    def contains(self, token: str) -> bool:
        with self._lock:
            if token not in self._tokens:
                return False
            expires = self._tokens[token]
            if expires is not None and self._clock() >= expires:
                del self._tokens[token]
                return False
            return True

    def discard(self, token: str) -> None:
        with self._lock:
            self._tokens.pop(token, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


class RedisSessionStore:
    def __init__(self, client, ttl_seconds: Optional[int] = None, prefix: str = "admin:session:"):
        self.client = client
        self.ttl = int(ttl_seconds) if ttl_seconds and ttl_seconds > 0 else None
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, ttl_seconds: Optional[int] = None) -> "RedisSessionStore":
        import redis
        return cls(redis.from_url(url, decode_responses=True), ttl_seconds)

    def _key(self, token: str) -> str:
        return f"{self.prefix}{token}"

    def add(self, token: str) -> None:
        if self.ttl:
            self.client.setex(self._key(token), self.ttl, "1")
        else:
            self.client.set(self._key(token), "1")

    def contains(self, token: str) -> bool:
        return bool(self.client.exists(self._key(token)))

    def discard(self, token: str) -> None:
        self.client.delete(self._key(token))


def build_store(backend: str, ttl_seconds: Optional[float] = None,
                redis_url: Optional[str] = None) -> SessionStore:
    backend = (backend or "memory").lower()
    if backend == "memory":
        return InMemorySessionStore(ttl_seconds)
    if backend == "redis":
        if not redis_url:
            raise RuntimeError("REDIS_URL not set (ADMIN_SESSION_BACKEND=redis)")
        return RedisSessionStore.from_url(redis_url, int(ttl_seconds or 0))
    raise RuntimeError(f"Unknown ADMIN_SESSION_BACKEND: {backend}")


def init_app(app, store: Optional[SessionStore] = None) -> SessionStore:
    if store is None:
        store = build_store(
            app.config.get("ADMIN_SESSION_BACKEND", "memory"),
            float(app.config.get("ADMIN_SESSION_TTL_SEC") or 0),
            app.config.get("REDIS_URL"),
        )
    app.extensions[EXTENSION_KEY] = store
    return store


def get_store(app) -> SessionStore:
    return app.extensions[EXTENSION_KEY]
