"""
Pure function checks for shift scheduling.

These functions decide scheduling rules without touching the database.
services.py feeds them rows it has already loaded (under lock) and tests
call them directly.
"""

from datetime import date, time
from typing import Iterable, Optional

from .models import BackgroundCheckStatus, ShiftStatus
from .reasons import SchedulingFailure


# =============================================================================
# Time
# =============================================================================


def validate_time_range(start_time: time, end_time: time) -> bool:
    """Shifts run forward within one day; end must be strictly after start."""
    return start_time < end_time


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """
    Check whether two half-open intervals [start, end) on one date overlap.

    Touching intervals (one ends exactly when the other starts) do not
    overlap.
    """
    return start_a < end_b and start_b < end_a


def find_conflict(start_time: time, end_time: time, existing: Iterable) -> Optional[object]:
    """
    Return the first existing shift whose interval overlaps [start_time, end_time).

    Args:
        start_time: Requested start
        end_time: Requested end
        existing: Objects with start_time/end_time attributes (active shifts
            for the same volunteer on the same date)

    Returns:
        The conflicting object, or None
    """
    for shift in existing:
        if intervals_overlap(start_time, end_time, shift.start_time, shift.end_time):
            return shift
    return None


# =============================================================================
# Blackouts
# =============================================================================


def blackout_covers(start_date: date, end_date: Optional[date], on_date: date) -> bool:
    """
    Check whether a blackout window covers a date.

    Both ends are inclusive. A missing end_date means the blackout is
    open-ended.
    """
    if on_date < start_date:
        return False
    return end_date is None or on_date <= end_date


# =============================================================================
# Background checks
# =============================================================================


def requires_background_check(category: str, sensitive_categories: Iterable[str]) -> bool:
    """Category matches any sensitive keyword (case-insensitive substring)."""
    if not category:
        return False
    lowered = category.lower()
    return any(keyword.lower() in lowered for keyword in sensitive_categories if keyword)


def background_check_failure(
    status: str,
    expiry: Optional[date],
    today: date,
) -> Optional[SchedulingFailure]:
    """
    Decide whether a volunteer's background check blocks a sensitive role.

    Returns:
        BACKGROUND_CHECK_EXPIRED if the check is marked expired or was
        cleared but its expiry date has passed; BACKGROUND_CHECK_REQUIRED
        for any other status that is not CLEARED; None if the check passes.
    """
    if status == BackgroundCheckStatus.EXPIRED:
        return SchedulingFailure.BACKGROUND_CHECK_EXPIRED
    if status != BackgroundCheckStatus.CLEARED:
        return SchedulingFailure.BACKGROUND_CHECK_REQUIRED
    if expiry is not None and expiry < today:
        return SchedulingFailure.BACKGROUND_CHECK_EXPIRED
    return None


# =============================================================================
# Skills and capacity
# =============================================================================


def missing_skills(required: Iterable[str], declared: Iterable[str]) -> set[str]:
    """Required skill names the volunteer has not declared."""
    return set(required) - set(declared)


def capacity_reached(active_count: int, volunteers_needed: int) -> bool:
    return active_count >= volunteers_needed


# =============================================================================
# Shift status graph
# =============================================================================

SHIFT_TRANSITIONS = {
    ShiftStatus.SCHEDULED: [
        ShiftStatus.CONFIRMED,
        ShiftStatus.CHECKED_IN,
        ShiftStatus.CANCELLED,
        ShiftStatus.NO_SHOW,
    ],
    ShiftStatus.CONFIRMED: [
        ShiftStatus.CHECKED_IN,
        ShiftStatus.CANCELLED,
        ShiftStatus.NO_SHOW,
    ],
    ShiftStatus.CHECKED_IN: [ShiftStatus.COMPLETED],
    ShiftStatus.COMPLETED: [],
    ShiftStatus.CANCELLED: [],
    ShiftStatus.NO_SHOW: [],
}

TERMINAL_SHIFT_STATUSES = [
    status for status, targets in SHIFT_TRANSITIONS.items() if not targets
]


def get_allowed_transitions(status: str) -> list[str]:
    return list(SHIFT_TRANSITIONS.get(status, []))


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in get_allowed_transitions(from_status)
