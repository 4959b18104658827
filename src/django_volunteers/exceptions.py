"""Custom exceptions for django-volunteers."""

from .reasons import SchedulingFailure


class VolunteersError(Exception):
    """Base exception for volunteer errors."""
    pass


class SchedulingError(VolunteersError):
    """Raised when a shift fails one of the scheduling checks."""

    def __init__(self, reason: SchedulingFailure, detail: str = ""):
        self.reason = SchedulingFailure(reason)
        self.detail = detail
        message = self.reason.value
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SchedulingConflict(VolunteersError):
    """Raised when a concurrent request changed the slot while this one was checked.

    Retrying after a refresh is safe; nothing was written.
    """

    def __init__(self, volunteer_id=None, opportunity_id=None):
        self.volunteer_id = volunteer_id
        self.opportunity_id = opportunity_id
        super().__init__(
            f"Scheduling of volunteer '{volunteer_id}' into opportunity "
            f"'{opportunity_id}' conflicted with a concurrent request"
        )


class DuplicateVolunteer(VolunteersError):
    """Raised when a volunteer with the same email already exists in the organization."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"A volunteer with email '{email}' already exists")


class ShiftNotFound(VolunteersError):
    """Raised when a shift does not exist in the acting organization."""

    def __init__(self, shift_id):
        self.shift_id = shift_id
        super().__init__(f"Shift '{shift_id}' not found")


class StaleShiftError(VolunteersError):
    """Raised when a shift was modified since the caller last read it."""

    def __init__(self, shift_id, expected_version: int, current_version: int):
        self.shift_id = shift_id
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Shift '{shift_id}' is at version {current_version}, "
            f"caller expected {expected_version}"
        )


class InvalidShiftTransition(VolunteersError):
    """Raised when attempting an invalid shift status transition."""

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot transition shift from '{from_status}' to '{to_status}'")


class ShiftNotEditable(VolunteersError):
    """Raised when rescheduling a shift that is already completed, cancelled or a no-show."""

    def __init__(self, shift_id, status: str):
        self.shift_id = shift_id
        self.status = status
        super().__init__(f"Shift '{shift_id}' is {status} and can no longer be rescheduled")


class VolunteerNotFound(VolunteersError):
    """Raised when a volunteer does not exist in the acting organization."""

    def __init__(self, volunteer_id):
        self.volunteer_id = volunteer_id
        super().__init__(f"Volunteer '{volunteer_id}' not found")


class OpportunityNotFound(VolunteersError):
    """Raised when a serving opportunity does not exist in the acting organization."""

    def __init__(self, opportunity_id):
        self.opportunity_id = opportunity_id
        super().__init__(f"Serving opportunity '{opportunity_id}' not found")


class SkillNotFound(VolunteersError):
    """Raised when a skill record does not exist in the acting organization."""

    def __init__(self, skill_id):
        self.skill_id = skill_id
        super().__init__(f"Skill '{skill_id}' not found")


class AvailabilityNotFound(VolunteersError):
    """Raised when an availability record does not exist in the acting organization."""

    def __init__(self, availability_id):
        self.availability_id = availability_id
        super().__init__(f"Availability '{availability_id}' not found")


class InvalidAvailability(VolunteersError):
    """Raised when an availability record has an inconsistent shape."""
    pass


class InvalidConfirmationToken(VolunteersError):
    """Raised when a background-check confirmation token matches no volunteer."""
    pass


class TenantAccessDenied(VolunteersError):
    """Raised when a user may not act within an organization."""

    def __init__(self, reason: str = "Access denied"):
        self.reason = reason
        super().__init__(reason)


class RateLimitExceeded(VolunteersError):
    """Raised when an action exceeds its fixed-window rate limit."""

    def __init__(self, action: str, retry_after: int):
        self.action = action
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded for '{action}', retry in {retry_after}s")
