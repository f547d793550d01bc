from __future__ import annotations

import threading
import time
from collections.abc import Callable

from cachetools import TLRUCache

def _strip_bearer(token: str) -> str:
    parts = str(token or "").strip().split(None, 1)
    if parts and parts[0].lower() == "bearer":
        parts = parts[1:]
    return parts[0].strip() if parts else ""


def _expires_at(_token: str, exp: float, _now: float) -> float:
    return exp


class TokenBlacklist:
    """
    In-process set of revoked access tokens.

    Each entry is kept until the token's own `exp`; after that the signature
    check rejects the token anyway, so the cache drops it.
    """

    def __init__(
        self,
        *,
        maxsize: int = 100_000,
        default_ttl: float = 900,
        timer: Callable[[], float] = time.time,
    ):
        self._timer = timer
        self._default_ttl = float(default_ttl)
        self._cache: TLRUCache[str, float] = TLRUCache(
            maxsize=maxsize, ttu=_expires_at, timer=timer
        )
        self._lock = threading.Lock()

    def add(self, token: str, expires_at: float | None = None) -> None:
        key = _strip_bearer(token)
        if not key:
            return
        if expires_at is None:
            expires_at = self._timer() + self._default_ttl
        with self._lock:
            self._cache[key] = float(expires_at)

    def is_blacklisted(self, token: str) -> bool:
        key = _strip_bearer(token)
        if not key:
            return False
        with self._lock:
            return key in self._cache

    def clear_all(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)
