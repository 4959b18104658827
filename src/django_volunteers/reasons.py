"""Failure reasons for shift scheduling and their user-facing messages.

Reasons are a fixed vocabulary. Callers translate them with
failure_message(); the three lookup failures share one vague message so a
client cannot tell which id belongs to another organization.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class SchedulingFailure(models.TextChoices):
    VOLUNTEER_NOT_FOUND = "VOLUNTEER_NOT_FOUND", _("Volunteer not found")
    OPPORTUNITY_NOT_FOUND = "OPPORTUNITY_NOT_FOUND", _("Opportunity not found")
    INVALID_LOCATION = "INVALID_LOCATION", _("Invalid location")
    INVALID_TIME_RANGE = "INVALID_TIME_RANGE", _("Invalid time range")
    TIME_CONFLICT = "TIME_CONFLICT", _("Time conflict")
    VOLUNTEER_UNAVAILABLE = "VOLUNTEER_UNAVAILABLE", _("Volunteer unavailable")
    BACKGROUND_CHECK_REQUIRED = "BACKGROUND_CHECK_REQUIRED", _("Background check required")
    BACKGROUND_CHECK_EXPIRED = "BACKGROUND_CHECK_EXPIRED", _("Background check expired")
    MISSING_REQUIRED_SKILLS = "MISSING_REQUIRED_SKILLS", _("Missing required skills")
    OPPORTUNITY_FULL = "OPPORTUNITY_FULL", _("Opportunity full")


GENERIC_SCHEDULING_MESSAGE = _("Unable to schedule shift. Please try again.")

_LOOKUP_MESSAGE = _("Unable to schedule shift. Please verify all selections.")

FAILURE_MESSAGES = {
    SchedulingFailure.VOLUNTEER_NOT_FOUND: _LOOKUP_MESSAGE,
    SchedulingFailure.OPPORTUNITY_NOT_FOUND: _LOOKUP_MESSAGE,
    SchedulingFailure.INVALID_LOCATION: _LOOKUP_MESSAGE,
    SchedulingFailure.INVALID_TIME_RANGE: _("Shift end time must be after its start time."),
    SchedulingFailure.TIME_CONFLICT: _("This volunteer is already scheduled at this time."),
    SchedulingFailure.VOLUNTEER_UNAVAILABLE: _("Volunteer is unavailable on this date."),
    SchedulingFailure.BACKGROUND_CHECK_REQUIRED: _(
        "This role requires a cleared background check. Please update volunteer profile."
    ),
    SchedulingFailure.BACKGROUND_CHECK_EXPIRED: _(
        "Volunteer's background check has expired. Please renew before scheduling."
    ),
    SchedulingFailure.MISSING_REQUIRED_SKILLS: _(
        "Volunteer does not have the required skills for this role."
    ),
    SchedulingFailure.OPPORTUNITY_FULL: _("This serving opportunity is already fully staffed."),
}


def failure_message(reason) -> str:
    """Map a failure reason to a safe user-facing message.

    Unknown reasons get the generic message.
    """
    try:
        reason = SchedulingFailure(reason)
    except ValueError:
        return str(GENERIC_SCHEDULING_MESSAGE)
    return str(FAILURE_MESSAGES.get(reason, GENERIC_SCHEDULING_MESSAGE))
