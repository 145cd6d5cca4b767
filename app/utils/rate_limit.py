"""
app/utils/rate_limit.py
Rate limiting à fenêtre fixe, par identifiant.

MemoryRateLimiter : dictionnaire en mémoire, un seul process.
RedisRateLimiter  : compteur partagé (INCR atomique), plusieurs process.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_time: int     # epoch ms


@dataclass(frozen=True)
class RateLimitPolicy:
    namespace: str
    max_requests: int
    window_ms: int

    def key(self, identifier: str) -> str:
        return f"{self.namespace}:{identifier}"


LEADS_POLICY = RateLimitPolicy("leads", 5, 60_000)
ANALYTICS_POLICY = RateLimitPolicy("analytics", 100, 60_000)


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    def check(self, identifier: str, max_requests: int, window_ms: int) -> RateLimitDecision:
        raise NotImplementedError

    def cleanup(self) -> int:
        """Supprime les fenêtres expirées, retourne le nombre d'entrées supprimées."""
        return 0


@dataclass
class _Window:
    count: int
    reset_time: int


class MemoryRateLimiter(RateLimiter):
    def __init__(self, clock: Callable[[], int] = _now_ms):
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, identifier: str, max_requests: int, window_ms: int) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            current = self._windows.get(identifier)

            if current is None or now > current.reset_time:
                reset_time = now + window_ms
                self._windows[identifier] = _Window(count=1, reset_time=reset_time)
                return RateLimitDecision(allowed=True, remaining=max_requests - 1, reset_time=reset_time)

            current.count += 1
            count, reset_time = current.count, current.reset_time

        return RateLimitDecision(
            allowed=count <= max_requests,
            remaining=max(0, max_requests - count),
            reset_time=reset_time,
        )

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, window in self._windows.items() if now > window.reset_time]
            for key in expired:
                del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)


class RedisRateLimiter(RateLimiter):
    def __init__(self, client, prefix: str = "ratelimit", clock: Callable[[], int] = _now_ms):
        self._client = client
        self._prefix = prefix
        self._clock = clock

    def check(self, identifier: str, max_requests: int, window_ms: int) -> RateLimitDecision:
        key = f"{self._prefix}:{identifier}"
        pipe = self._client.pipeline()
        pipe.incr(key)
        pipe.pttl(key)
        count, ttl = pipe.execute()

        now = self._clock()
        # Premier hit de la fenêtre (ou clé sans TTL) : on pose l'expiration
        if count == 1 or ttl is None or ttl < 0:
            self._client.pexpire(key, window_ms)
            ttl = window_ms

        return RateLimitDecision(
            allowed=count <= max_requests,
            remaining=max(0, max_requests - count),
            reset_time=now + int(ttl),
        )


def build_rate_limiter(backend: str, redis_url: Optional[str] = None) -> RateLimiter:
    if backend == "redis":
        client = redis.Redis.from_url(redis_url, decode_responses=True)
        logger.info("Rate limiter: redis backend")
        return RedisRateLimiter(client)
    if backend != "memory":
        logger.warning(f"Unknown RATE_LIMIT_BACKEND {backend!r}, using memory")
    return MemoryRateLimiter()
