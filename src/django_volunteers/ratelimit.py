"""Fixed-window rate limiting on the Django cache.

Each (action, fingerprint) pair gets a counter that lives for one window.
Limits come from VOLUNTEERS_RATE_LIMITS (see conf.py).

Usage:
    check_rate_limit("create_shift", f"{user.pk}_{organization.pk}")
"""

import logging
import time

from django.core.cache import cache

from .conf import get_rate_limit, is_rate_limit_enabled
from .exceptions import RateLimitExceeded

logger = logging.getLogger(__name__)

KEY_PREFIX = "volunteers:ratelimit"


def _window(window_seconds: int, now: int) -> int:
    return now - (now % window_seconds)


def check_rate_limit(action: str, fingerprint: str) -> int:
    """
    Count one request against the action's limit.

    Returns:
        Requests used in the current window (0 if the action is unlimited)

    Raises:
        RateLimitExceeded: If this request exceeds the limit
    """
    if not is_rate_limit_enabled():
        return 0
    limit = get_rate_limit(action)
    if not limit:
        return 0

    max_requests, window_seconds = limit
    now = int(time.time())
    window_start = _window(window_seconds, now)
    key = f"{KEY_PREFIX}:{action}:{fingerprint}:{window_start}"

    cache.add(key, 0, timeout=window_seconds)
    try:
        count = cache.incr(key)
    except ValueError:
        # Evicted between add() and incr()
        cache.set(key, 1, timeout=window_seconds)
        count = 1

    if count > max_requests:
        retry_after = max(1, window_start + window_seconds - now)
        logger.warning(
            "Rate limit exceeded: action=%s count=%s max=%s", action, count, max_requests,
        )
        raise RateLimitExceeded(action, retry_after)
    return count


def reset_rate_limit(action: str, fingerprint: str) -> None:
    """Clear the current window's counter (used by staff tools and tests)."""
    limit = get_rate_limit(action)
    if not limit:
        return
    window_seconds = limit[1]
    window_start = _window(window_seconds, int(time.time()))
    cache.delete(f"{KEY_PREFIX}:{action}:{fingerprint}:{window_start}")
