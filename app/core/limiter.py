# app/core/limiter.py
import math
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from limits import parse
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from loguru import logger
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.core.config import get_settings
from app.core.identity import UNKNOWN_IP, extract_client_ip

RECOMMENDATION_LIMIT = "1 per 24 hours"
MESSAGE_LIMIT = "5 per 1 hour"

# Route-level throttles (slowapi)
HANDLE_CHECK_LIMIT = "30/minute"
ENHANCE_LIMIT = "20/minute"


def get_request_identifier(request: Request) -> str:
    """
    Key for the route-level limiter.
    Proxy headers first, the socket address when there are none.
    """
    ip = extract_client_ip(request.headers)
    if ip == UNKNOWN_IP:
        return get_remote_address(request)
    return ip

# In-memory by default; the keyed sliding-window limiters below are the ones
# that need shared storage.
limiter = Limiter(key_func=get_request_identifier)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: Optional[int] = None


class SlidingWindowLimiter:
    """
    N hits per rolling window per key, backed by `limits`' moving window.

    Best-effort by contract: with no storage configured, or when the storage
    errors out, every check is allowed. Callers never see limiter outages.
    """

    def __init__(self, limit: str, prefix: str, storage_uri: Optional[str] = None):
        self.rate = parse(limit)
        self.prefix = prefix
        self._strategy: Optional[MovingWindowRateLimiter] = None

        if not storage_uri:
            logger.warning(f"[rate-limit] No storage configured for '{prefix}'. Rate limiting disabled.")
            return

        try:
            self._strategy = MovingWindowRateLimiter(storage_from_string(storage_uri))
        except Exception as e:
            logger.error(f"[rate-limit] Storage '{storage_uri}' unusable for '{prefix}', rate limiting disabled: {e}")

    @property
    def enabled(self) -> bool:
        return self._strategy is not None

    def check(self, key: str) -> RateLimitResult:
        if self._strategy is None:
            return RateLimitResult(allowed=True)

        try:
            if self._strategy.hit(self.rate, self.prefix, key):
                return RateLimitResult(allowed=True)

            stats = self._strategy.get_window_stats(self.rate, self.prefix, key)
            retry_after = max(0, math.ceil(stats.reset_time - time.time()))
            return RateLimitResult(allowed=False, retry_after_seconds=retry_after)
        except Exception as e:
            logger.error(f"[rate-limit] Error checking rate limit for '{self.prefix}': {e}")
            return RateLimitResult(allowed=True)

    def reset(self, key: str) -> None:
        """Gives the key its window back, for when the write it guarded did not happen."""
        if self._strategy is None:
            return

        try:
            self._strategy.clear(self.rate, self.prefix, key)
        except Exception as e:
            logger.error(f"[rate-limit] Error resetting rate limit for '{self.prefix}': {e}")


@lru_cache()
def get_recommendation_limiter() -> SlidingWindowLimiter:
    return SlidingWindowLimiter(
        RECOMMENDATION_LIMIT,
        prefix="ratelimit:recommendation",
        storage_uri=get_settings().RATE_LIMIT_STORAGE_URI,
    )


@lru_cache()
def get_message_limiter() -> SlidingWindowLimiter:
    return SlidingWindowLimiter(
        MESSAGE_LIMIT,
        prefix="ratelimit:message",
        storage_uri=get_settings().RATE_LIMIT_STORAGE_URI,
    )


def format_retry_after(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds} second{'' if seconds == 1 else 's'}"
    minutes = math.ceil(seconds / 60)
    return f"{minutes} minute{'' if minutes == 1 else 's'}"
