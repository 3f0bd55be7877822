"""
Fixed-window rate limiter with Redis-backed counters.

One counter per identifier (the acting user id):
  ratelimit:{identifier} → request count for the current window

The first hit in a window creates the key with a TTL of window_seconds; the
window ends when the key expires, so expired counters need no sweeping. The
limiter is created once per app (app.extensions['rate_limiter']) and can be
pointed at any shared Redis, which keeps limits consistent across processes.

Redis failures never block a request: the limiter fails open and logs.
"""
import logging
from dataclasses import dataclass

from buyerleads.errors import RateLimitError

logger = logging.getLogger('services.rate_limit')


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: float  # seconds until the current window resets


class RateLimiter:
    """
    Usage:
        limiter = RateLimiter(redis_client, max_requests=10, window_seconds=60)
        result = limiter.check(user_id)
        limiter.enforce(user_id)   # raises RateLimitError when over the limit
    """

    PREFIX = 'ratelimit'

    def __init__(self, redis_client, max_requests=10, window_seconds=60):
        self.redis = redis_client
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def _key(self, identifier):
        return f'{self.PREFIX}:{identifier}'

    def check(self, identifier) -> RateLimitResult:
        """Count one attempt for identifier and report whether it is allowed."""
        key = self._key(identifier)
        try:
            count = int(self.redis.incr(key))
            if count == 1:
                self.redis.expire(key, self.window_seconds)
            ttl = self.redis.ttl(key)
            if ttl is None or ttl < 0:
                # Counter without an expiry would never reset
                self.redis.expire(key, self.window_seconds)
                ttl = self.window_seconds
        except Exception as e:
            logger.warning("Rate limiter unavailable, allowing %s: %s", identifier, e)
            return RateLimitResult(allowed=True, remaining=self.max_requests, retry_after=0)

        if count > self.max_requests:
            logger.info("Rate limit hit for %s (%d/%d, resets in %ss)",
                        identifier, count, self.max_requests, ttl)
            return RateLimitResult(allowed=False, remaining=0, retry_after=float(ttl))

        return RateLimitResult(
            allowed=True,
            remaining=self.max_requests - count,
            retry_after=float(ttl),
        )

    def enforce(self, identifier) -> RateLimitResult:
        result = self.check(identifier)
        if not result.allowed:
            raise RateLimitError(result.retry_after)
        return result

    def reset(self, identifier):
        """Drop the counter so the next attempt starts a fresh window."""
        try:
            self.redis.delete(self._key(identifier))
        except Exception as e:
            logger.error("Failed to reset rate limit for %s: %s", identifier, e)


def init_rate_limiter(app, redis_client, max_requests=10, window_seconds=60) -> RateLimiter:
    """Create the app's limiter and register it under app.extensions."""
    limiter = RateLimiter(redis_client, max_requests=max_requests, window_seconds=window_seconds)
    app.extensions['rate_limiter'] = limiter
    return limiter
