"""Django Volunteers configuration.

All settings can be overridden in your Django settings.py.

Example:
    # settings.py
    VOLUNTEERS_SENSITIVE_CATEGORIES = ["Kids Ministry", "Youth", "Nursery"]
    VOLUNTEERS_SCHEDULING_TIMEOUT_MS = 5000
    VOLUNTEERS_RATE_LIMITS = {"create_shift": (30, 60)}
"""

from django.conf import settings


DEFAULT_SENSITIVE_CATEGORIES = [
    "Kids Ministry",
    "Children",
    "Youth",
    "Nursery",
]

DEFAULT_SCHEDULING_TIMEOUT_MS = 10_000

# action -> (max requests, window in seconds)
DEFAULT_RATE_LIMITS = {
    "create_shift": (20, 60),
    "update_shift": (20, 60),
    "shift_status": (20, 60),
    "add_availability": (10, 60),
    "update_availability": (10, 60),
    "delete_availability": (10, 60),
    "create_volunteer": (10, 60),
    "update_volunteer": (10, 60),
    "volunteer_status": (10, 60),
    "create_opportunity": (10, 60),
    "update_opportunity": (10, 60),
    "opportunity_status": (10, 60),
    "delete_opportunity": (10, 60),
    "volunteer_skill": (10, 60),
    "opportunity_skill": (10, 60),
    "review_background_check": (10, 60),
    "confirm_background_check": (5, 60),
}


def get_setting(name: str, default=None):
    """Get a setting with VOLUNTEERS_ prefix."""
    return getattr(settings, f"VOLUNTEERS_{name}", default)


def get_sensitive_categories() -> list[str]:
    """Category keywords that require a cleared background check."""
    return list(get_setting("SENSITIVE_CATEGORIES", DEFAULT_SENSITIVE_CATEGORIES))


def get_scheduling_timeout_ms() -> int:
    """Statement/lock timeout applied to scheduling transactions."""
    return int(get_setting("SCHEDULING_TIMEOUT_MS", DEFAULT_SCHEDULING_TIMEOUT_MS))


def get_rate_limit(action: str) -> tuple[int, int] | None:
    """Return (max_requests, window_seconds) for an action, or None if unlimited."""
    overrides = get_setting("RATE_LIMITS", {}) or {}
    if action in overrides:
        return overrides[action]
    return DEFAULT_RATE_LIMITS.get(action)


def is_rate_limit_enabled() -> bool:
    return bool(get_setting("RATE_LIMIT_ENABLED", True))


# =============================================================================
# DEFAULT SETTINGS REFERENCE
# =============================================================================

# VOLUNTEERS_SENSITIVE_CATEGORIES = [...]      # Categories gated by background check
# VOLUNTEERS_SCHEDULING_TIMEOUT_MS = 10000     # PostgreSQL statement/lock timeout
# VOLUNTEERS_RATE_LIMITS = {...}               # Per-action (max, window_seconds)
# VOLUNTEERS_RATE_LIMIT_ENABLED = True         # Disable limiter entirely (e.g. in tests)
