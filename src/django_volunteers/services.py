"""Volunteer scheduling service layer.

All write operations go through these functions.
Direct model manipulation bypasses invariants and is unsupported.

Every function takes a TenantContext first; rows of other organizations
are reported exactly like missing rows.

Functions:
- create_shift(): Validate and schedule a volunteer into an opportunity
- update_shift(): Optimistic-locked edit with re-validation of the new slot
- confirm_shift(), cancel_shift(), check_in_shift(), check_out_shift(),
  mark_no_show(): Optimistic-locked status transitions
- create_volunteer(), update_volunteer(), deactivate_volunteer(),
  reactivate_volunteer(): Volunteer records
- create_opportunity(), update_opportunity(), toggle_opportunity_status(),
  delete_opportunity(): Serving opportunities
- add_availability(), update_availability(), delete_availability(),
  add_blackout_date(), add_recurring_availability(): Availability records
- add_volunteer_skill(), update_volunteer_skill(), remove_volunteer_skill(),
  set_opportunity_skill(), remove_opportunity_skill(): Skills
- confirm_background_check(), review_background_check(),
  expire_background_checks(): Background-check lifecycle
"""

import logging
from datetime import date, time

from django.db import OperationalError, transaction
from django.db.models import F
from django.utils import timezone

from . import selectors
from .conf import get_sensitive_categories
from .context import TenantContext
from .exceptions import (
    AvailabilityNotFound,
    DuplicateVolunteer,
    InvalidAvailability,
    InvalidConfirmationToken,
    InvalidShiftTransition,
    OpportunityNotFound,
    SchedulingConflict,
    SchedulingError,
    ShiftNotEditable,
    ShiftNotFound,
    SkillNotFound,
    StaleShiftError,
    VolunteerNotFound,
)
from .models import (
    BackgroundCheckStatus,
    OpportunitySkill,
    ServingOpportunity,
    ShiftStatus,
    Volunteer,
    VolunteerAvailability,
    VolunteerShift,
    VolunteerSkill,
)
from .reasons import SchedulingFailure
from .transactions import is_serialization_failure, scheduling_transaction
from .validators import (
    TERMINAL_SHIFT_STATUSES,
    background_check_failure,
    blackout_covers,
    can_transition,
    capacity_reached,
    find_conflict,
    missing_skills,
    requires_background_check,
    validate_time_range,
)

logger = logging.getLogger(__name__)


UPDATABLE_SHIFT_FIELDS = ("shift_date", "start_time", "end_time", "location", "notes")


# =============================================================================
# Scheduling checks
# =============================================================================


def _reject(ctx: TenantContext, reason: SchedulingFailure, volunteer_id=None, opportunity_id=None, detail=""):
    logger.warning(
        "Shift scheduling rejected: reason=%s org=%s volunteer=%s opportunity=%s",
        reason.value,
        ctx.slug,
        volunteer_id,
        opportunity_id,
    )
    raise SchedulingError(reason, detail)


def _check_time_conflict(ctx, volunteer, opportunity, shift_date, start_time, end_time, exclude_shift_id=None):
    existing = selectors.active_shifts_for_volunteer(volunteer, shift_date, exclude_shift_id=exclude_shift_id)
    conflict = find_conflict(start_time, end_time, existing)
    if conflict is not None:
        _reject(
            ctx, SchedulingFailure.TIME_CONFLICT, volunteer.pk, opportunity.pk,
            detail=f"overlaps shift {conflict.pk}",
        )


def _check_blackout(ctx, volunteer, opportunity, shift_date):
    for blackout in selectors.blackouts_starting_by(volunteer, shift_date):
        if blackout_covers(blackout.start_date, blackout.end_date, shift_date):
            _reject(ctx, SchedulingFailure.VOLUNTEER_UNAVAILABLE, volunteer.pk, opportunity.pk)


def _check_background(ctx, volunteer, opportunity):
    if not requires_background_check(opportunity.category, get_sensitive_categories()):
        return
    failure = background_check_failure(
        volunteer.background_check_status,
        volunteer.background_check_expiry,
        timezone.localdate(),
    )
    if failure is not None:
        _reject(ctx, failure, volunteer.pk, opportunity.pk)


def _check_skills(ctx, volunteer, opportunity):
    gap = missing_skills(
        selectors.required_skill_names(opportunity),
        selectors.declared_skill_names(volunteer),
    )
    if gap:
        _reject(
            ctx, SchedulingFailure.MISSING_REQUIRED_SKILLS, volunteer.pk, opportunity.pk,
            detail=", ".join(sorted(gap)),
        )


def _check_capacity(ctx, volunteer, opportunity, shift_date, exclude_shift_id=None):
    count = selectors.active_shift_count(opportunity, shift_date, exclude_shift_id=exclude_shift_id)
    if capacity_reached(count, opportunity.volunteers_needed):
        _reject(ctx, SchedulingFailure.OPPORTUNITY_FULL, volunteer.pk, opportunity.pk)


def _resolve_location(ctx, location_id, volunteer_id, opportunity_id):
    if location_id in (None, ""):
        return None
    location = selectors.get_location(ctx.organization, location_id)
    if location is None:
        _reject(ctx, SchedulingFailure.INVALID_LOCATION, volunteer_id, opportunity_id)
    return location


def _judge_lost_race(
    ctx,
    volunteer_id,
    opportunity_id,
    shift_date,
    start_time,
    end_time,
    exclude_shift_id=None,
):
    """
    Re-run the race-sensitive checks after a serialization failure.

    Must be called once the aborted transaction has rolled back, so the
    reads see what the winning request committed. Always raises.

    Raises:
        SchedulingError: TIME_CONFLICT or OPPORTUNITY_FULL, if the winner
            took the slot
        SchedulingConflict: Otherwise
    """
    volunteer = selectors.get_volunteer(ctx.organization, volunteer_id)
    opportunity = selectors.get_opportunity(ctx.organization, opportunity_id, active_only=False)
    if volunteer is not None and opportunity is not None:
        _check_time_conflict(
            ctx, volunteer, opportunity, shift_date, start_time, end_time,
            exclude_shift_id=exclude_shift_id,
        )
        _check_capacity(ctx, volunteer, opportunity, shift_date, exclude_shift_id=exclude_shift_id)

    logger.warning(
        "Shift scheduling conflict: org=%s volunteer=%s opportunity=%s",
        ctx.slug, volunteer_id, opportunity_id,
    )
    raise SchedulingConflict(volunteer_id, opportunity_id)


# =============================================================================
# Shifts
# =============================================================================


def create_shift(
    ctx: TenantContext,
    volunteer_id,
    opportunity_id,
    shift_date: date,
    start_time: time,
    end_time: time,
    location_id=None,
    notes: str = "",
) -> VolunteerShift:
    """
    Schedule a volunteer into a serving opportunity.

    Checks run in this order and the first failure wins:
    1. Time range (end after start)
    2. Ownership: active volunteer, active opportunity and location belong to ctx
    3. Time conflict with the volunteer's active shifts that date
    4. Blackout covering the date
    5. Background check, for sensitive categories
    6. Required skills
    7. Opportunity capacity for the date

    The volunteer and opportunity rows are locked (in that order) for the
    whole transaction so concurrent requests for the same slot serialize
    on the capacity check. On PostgreSQL a request that lost such a race
    may be aborted by SERIALIZABLE isolation instead; it is then judged
    again against the committed state, so it still fails with
    TIME_CONFLICT or OPPORTUNITY_FULL when the winner took the slot.

    Returns:
        The created VolunteerShift (status SCHEDULED, version 1)

    Raises:
        SchedulingError: With the failing reason
        SchedulingConflict: If a concurrent request aborted this one and
            the slot is still open
    """
    if not validate_time_range(start_time, end_time):
        _reject(ctx, SchedulingFailure.INVALID_TIME_RANGE, volunteer_id, opportunity_id)

    try:
        with scheduling_transaction():
            volunteer = selectors.get_volunteer(
                ctx.organization, volunteer_id, for_update=True, active_only=True,
            )
            if volunteer is None:
                _reject(ctx, SchedulingFailure.VOLUNTEER_NOT_FOUND, volunteer_id, opportunity_id)

            opportunity = selectors.get_opportunity(ctx.organization, opportunity_id, for_update=True)
            if opportunity is None:
                _reject(ctx, SchedulingFailure.OPPORTUNITY_NOT_FOUND, volunteer_id, opportunity_id)

            location = _resolve_location(ctx, location_id, volunteer_id, opportunity_id)

            _check_time_conflict(ctx, volunteer, opportunity, shift_date, start_time, end_time)
            _check_blackout(ctx, volunteer, opportunity, shift_date)
            _check_background(ctx, volunteer, opportunity)
            _check_skills(ctx, volunteer, opportunity)
            _check_capacity(ctx, volunteer, opportunity, shift_date)

            shift = VolunteerShift.objects.create(
                organization=ctx.organization,
                volunteer=volunteer,
                opportunity=opportunity,
                location=location,
                shift_date=shift_date,
                start_time=start_time,
                end_time=end_time,
                notes=notes or "",
                scheduled_by=ctx.user if getattr(ctx.user, "pk", None) else None,
            )
    except OperationalError as exc:
        if not is_serialization_failure(exc):
            raise
        _judge_lost_race(ctx, volunteer_id, opportunity_id, shift_date, start_time, end_time)

    logger.info(
        "Shift scheduled: shift=%s org=%s volunteer=%s opportunity=%s date=%s",
        shift.pk, ctx.slug, volunteer.pk, opportunity.pk, shift_date,
    )
    return shift


def _load_shift(ctx: TenantContext, shift_id, expected_version: int) -> VolunteerShift:
    shift = selectors.get_shift(ctx.organization, shift_id)
    if shift is None:
        raise ShiftNotFound(shift_id)
    if shift.version != expected_version:
        raise StaleShiftError(shift.pk, expected_version, shift.version)
    return shift


def _apply_versioned_update(ctx: TenantContext, shift: VolunteerShift, expected_version: int, values: dict):
    """
    Conditionally write `values` if the shift is still at expected_version.

    The filter on version is the lock: zero affected rows means another
    writer got there first, or the shift is gone.
    """
    values = dict(values)
    values["version"] = F("version") + 1
    values["updated_at"] = timezone.now()

    updated = VolunteerShift.objects.filter(
        pk=shift.pk,
        organization=ctx.organization,
        version=expected_version,
    ).update(**values)

    if not updated:
        current = (
            VolunteerShift.objects
            .filter(pk=shift.pk, organization=ctx.organization)
            .values_list("version", flat=True)
            .first()
        )
        if current is None:
            raise ShiftNotFound(shift.pk)
        raise StaleShiftError(shift.pk, expected_version, current)

    shift.refresh_from_db()
    return shift


def _new_slot(shift: VolunteerShift, changes: dict):
    """(date, start, end, location_id) after applying changes to the shift."""
    location_id = changes.get("location", shift.location_id)
    if location_id == "":
        location_id = None
    return (
        changes.get("shift_date", shift.shift_date),
        changes.get("start_time", shift.start_time),
        changes.get("end_time", shift.end_time),
        location_id,
    )


def update_shift(ctx: TenantContext, shift_id, expected_version: int, **changes) -> VolunteerShift:
    """
    Edit a shift if nobody else has changed it since the caller read it.

    Args:
        ctx: Acting tenant
        shift_id: Shift to edit
        expected_version: The version the caller last saw
        **changes: Any of shift_date, start_time, end_time, location
            (a location id, or None to clear), notes

    When the date, times or location change, the time range, location,
    time conflict, blackout and capacity checks run again for the new slot,
    ignoring the shift itself. Completed, cancelled and no-show shifts keep
    their slot; only their notes can change.

    Returns:
        The updated shift with version incremented by one

    Raises:
        ValueError: If changes names a field that cannot be edited
        ShiftNotFound: If the shift does not exist in ctx's organization
        StaleShiftError: If the shift is no longer at expected_version
        ShiftNotEditable: If a completed, cancelled or no-show shift would
            move to another date, time or location
        SchedulingError: If the new slot fails a check
        SchedulingConflict: If a concurrent request aborted this one and
            the new slot is still open
    """
    unknown = set(changes) - set(UPDATABLE_SHIFT_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update shift field(s): {', '.join(sorted(unknown))}")

    try:
        with scheduling_transaction():
            shift = _load_shift(ctx, shift_id, expected_version)
            values = {}

            if "notes" in changes:
                values["notes"] = changes["notes"] or ""

            new_date, new_start, new_end, new_location_id = _new_slot(shift, changes)
            rescheduled = (
                new_date != shift.shift_date
                or new_start != shift.start_time
                or new_end != shift.end_time
                or str(new_location_id or "") != str(shift.location_id or "")
            )

            if rescheduled:
                if shift.status in TERMINAL_SHIFT_STATUSES:
                    raise ShiftNotEditable(shift.pk, shift.status)

                volunteer_id, opportunity_id = shift.volunteer_id, shift.opportunity_id
                if not validate_time_range(new_start, new_end):
                    _reject(ctx, SchedulingFailure.INVALID_TIME_RANGE, volunteer_id, opportunity_id)

                volunteer = selectors.get_volunteer(ctx.organization, volunteer_id, for_update=True)
                opportunity = selectors.get_opportunity(
                    ctx.organization, opportunity_id, for_update=True, active_only=False,
                )
                location = _resolve_location(ctx, new_location_id, volunteer_id, opportunity_id)

                _check_time_conflict(
                    ctx, volunteer, opportunity, new_date, new_start, new_end, exclude_shift_id=shift.pk,
                )
                _check_blackout(ctx, volunteer, opportunity, new_date)
                _check_capacity(ctx, volunteer, opportunity, new_date, exclude_shift_id=shift.pk)

                values.update(
                    shift_date=new_date,
                    start_time=new_start,
                    end_time=new_end,
                    location=location,
                )

            shift = _apply_versioned_update(ctx, shift, expected_version, values)
    except OperationalError as exc:
        if not is_serialization_failure(exc):
            raise
        shift = _load_shift(ctx, shift_id, expected_version)
        new_date, new_start, new_end, _ = _new_slot(shift, changes)
        _judge_lost_race(
            ctx, shift.volunteer_id, shift.opportunity_id, new_date, new_start, new_end,
            exclude_shift_id=shift.pk,
        )

    logger.info(
        "Shift updated: shift=%s org=%s version=%s fields=%s",
        shift.pk, ctx.slug, shift.version, ",".join(sorted(changes)),
    )
    return shift


def _transition_shift(
    ctx: TenantContext,
    shift_id,
    expected_version: int,
    to_status: str,
    **extra,
) -> VolunteerShift:
    with transaction.atomic():
        shift = _load_shift(ctx, shift_id, expected_version)
        from_status = shift.status
        if not can_transition(from_status, to_status):
            raise InvalidShiftTransition(from_status, to_status)

        shift = _apply_versioned_update(
            ctx, shift, expected_version, {"status": to_status, **extra},
        )

    logger.info(
        "Shift status changed: shift=%s org=%s %s -> %s",
        shift.pk, ctx.slug, from_status, to_status,
    )
    return shift


def confirm_shift(ctx: TenantContext, shift_id, expected_version: int) -> VolunteerShift:
    return _transition_shift(ctx, shift_id, expected_version, ShiftStatus.CONFIRMED)


def cancel_shift(ctx: TenantContext, shift_id, expected_version: int, reason: str = "") -> VolunteerShift:
    """Cancel a shift; it stops blocking the volunteer's time and capacity."""
    return _transition_shift(
        ctx, shift_id, expected_version, ShiftStatus.CANCELLED,
        cancelled_at=timezone.now(),
        cancellation_reason=(reason or "")[:255],
    )


def check_in_shift(ctx: TenantContext, shift_id, expected_version: int) -> VolunteerShift:
    return _transition_shift(
        ctx, shift_id, expected_version, ShiftStatus.CHECKED_IN,
        checked_in_at=timezone.now(),
    )


def check_out_shift(ctx: TenantContext, shift_id, expected_version: int) -> VolunteerShift:
    """Check a volunteer out; the shift becomes COMPLETED."""
    return _transition_shift(
        ctx, shift_id, expected_version, ShiftStatus.COMPLETED,
        checked_out_at=timezone.now(),
    )


def mark_no_show(ctx: TenantContext, shift_id, expected_version: int) -> VolunteerShift:
    return _transition_shift(ctx, shift_id, expected_version, ShiftStatus.NO_SHOW)


# =============================================================================
# Volunteers
# =============================================================================

VOLUNTEER_FIELDS = ("name", "email", "phone")


def _clean_volunteer(ctx: TenantContext, values: dict, volunteer_id=None) -> dict:
    cleaned = {name: (value or "").strip() for name, value in values.items()}
    if "name" in cleaned and not cleaned["name"]:
        raise ValueError("Volunteer name is required")
    email = cleaned.get("email")
    if email and selectors.volunteer_with_email(ctx.organization, email, exclude_id=volunteer_id):
        raise DuplicateVolunteer(email)
    return cleaned


@transaction.atomic
def create_volunteer(ctx: TenantContext, name: str, email: str = "", phone: str = "") -> Volunteer:
    """
    Add a volunteer to ctx's organization.

    Emails are unique per organization, ignoring case; a blank email is
    allowed for any number of volunteers.

    Raises:
        ValueError: If name is blank
        DuplicateVolunteer: If another volunteer already uses the email
    """
    values = _clean_volunteer(ctx, {"name": name, "email": email, "phone": phone})
    volunteer = Volunteer.objects.create(organization=ctx.organization, **values)

    logger.info("Volunteer created: volunteer=%s org=%s", volunteer.pk, ctx.slug)
    return volunteer


@transaction.atomic
def update_volunteer(ctx: TenantContext, volunteer_id, **changes) -> Volunteer:
    """
    Edit a volunteer's name, email or phone.

    Raises:
        ValueError: If changes names another field, or clears the name
        VolunteerNotFound: If the volunteer is not in ctx's organization
        DuplicateVolunteer: If another volunteer already uses the new email
    """
    unknown = set(changes) - set(VOLUNTEER_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update volunteer field(s): {', '.join(sorted(unknown))}")

    volunteer = selectors.get_volunteer(ctx.organization, volunteer_id, for_update=True)
    if volunteer is None:
        raise VolunteerNotFound(volunteer_id)

    values = _clean_volunteer(ctx, changes, volunteer_id=volunteer.pk)
    for name, value in values.items():
        setattr(volunteer, name, value)
    volunteer.save(update_fields=[*values, "updated_at"])

    logger.info(
        "Volunteer updated: volunteer=%s org=%s fields=%s",
        volunteer.pk, ctx.slug, ",".join(sorted(values)),
    )
    return volunteer


def _set_volunteer_active(ctx: TenantContext, volunteer_id, is_active: bool) -> Volunteer:
    with transaction.atomic():
        volunteer = selectors.get_volunteer(ctx.organization, volunteer_id, for_update=True)
        if volunteer is None:
            raise VolunteerNotFound(volunteer_id)
        if volunteer.is_active != is_active:
            volunteer.is_active = is_active
            volunteer.save(update_fields=["is_active", "updated_at"])

    logger.info(
        "Volunteer %s: volunteer=%s org=%s",
        "reactivated" if is_active else "deactivated", volunteer.pk, ctx.slug,
    )
    return volunteer


def deactivate_volunteer(ctx: TenantContext, volunteer_id) -> Volunteer:
    """
    Stop scheduling a volunteer without losing their history.

    Existing shifts are left as they are; new shifts are refused as if the
    volunteer did not exist.
    """
    return _set_volunteer_active(ctx, volunteer_id, False)


def reactivate_volunteer(ctx: TenantContext, volunteer_id) -> Volunteer:
    return _set_volunteer_active(ctx, volunteer_id, True)


# =============================================================================
# Serving opportunities
# =============================================================================

OPPORTUNITY_FIELDS = ("name", "category", "volunteers_needed")


def _clean_opportunity(values: dict) -> dict:
    cleaned = dict(values)
    for text_field in ("name", "category"):
        if text_field in cleaned:
            cleaned[text_field] = (cleaned[text_field] or "").strip()
    if "name" in cleaned and not cleaned["name"]:
        raise ValueError("Opportunity name is required")
    needed = cleaned.get("volunteers_needed", 1)
    if needed is None or needed < 1:
        raise ValueError("An opportunity needs at least one volunteer")
    return cleaned


@transaction.atomic
def create_opportunity(
    ctx: TenantContext,
    name: str,
    category: str = "",
    volunteers_needed: int = 1,
) -> ServingOpportunity:
    """
    Raises:
        ValueError: If name is blank or volunteers_needed is below one
    """
    values = _clean_opportunity({
        "name": name,
        "category": category,
        "volunteers_needed": volunteers_needed,
    })
    opportunity = ServingOpportunity.objects.create(organization=ctx.organization, **values)

    logger.info("Opportunity created: opportunity=%s org=%s", opportunity.pk, ctx.slug)
    return opportunity


@transaction.atomic
def update_opportunity(ctx: TenantContext, opportunity_id, **changes) -> ServingOpportunity:
    """
    Edit an opportunity's name, category or headcount.

    The row is locked like create_shift() locks it, so a new headcount
    applies to the next scheduling request. Shifts already booked beyond
    a lowered headcount are kept.

    Raises:
        ValueError: If changes names another field or has invalid values
        OpportunityNotFound: If the opportunity is not in ctx's organization
    """
    unknown = set(changes) - set(OPPORTUNITY_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update opportunity field(s): {', '.join(sorted(unknown))}")

    opportunity = selectors.get_opportunity(
        ctx.organization, opportunity_id, for_update=True, active_only=False,
    )
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)

    values = _clean_opportunity(changes)
    for name, value in values.items():
        setattr(opportunity, name, value)
    opportunity.save(update_fields=[*values, "updated_at"])

    logger.info(
        "Opportunity updated: opportunity=%s org=%s fields=%s",
        opportunity.pk, ctx.slug, ",".join(sorted(values)),
    )
    return opportunity


@transaction.atomic
def toggle_opportunity_status(ctx: TenantContext, opportunity_id, is_active: bool) -> ServingOpportunity:
    """Open or close an opportunity for new shifts; booked shifts are kept."""
    opportunity = selectors.get_opportunity(
        ctx.organization, opportunity_id, for_update=True, active_only=False,
    )
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)

    if opportunity.is_active != is_active:
        opportunity.is_active = is_active
        opportunity.save(update_fields=["is_active", "updated_at"])

    logger.info(
        "Opportunity %s: opportunity=%s org=%s",
        "activated" if is_active else "deactivated", opportunity.pk, ctx.slug,
    )
    return opportunity


@transaction.atomic
def delete_opportunity(ctx: TenantContext, opportunity_id) -> bool:
    """
    Remove an opportunity.

    Shifts are never deleted, so an opportunity that any shift refers to
    is deactivated instead.

    Returns:
        True if the row was deleted, False if it was deactivated

    Raises:
        OpportunityNotFound: If the opportunity is not in ctx's organization
    """
    opportunity = selectors.get_opportunity(
        ctx.organization, opportunity_id, for_update=True, active_only=False,
    )
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)

    if opportunity.shifts.exists():
        if opportunity.is_active:
            opportunity.is_active = False
            opportunity.save(update_fields=["is_active", "updated_at"])
        logger.info(
            "Opportunity has shifts, deactivated instead of deleted: opportunity=%s org=%s",
            opportunity.pk, ctx.slug,
        )
        return False

    pk = opportunity.pk
    opportunity.delete()
    logger.info("Opportunity deleted: opportunity=%s org=%s", pk, ctx.slug)
    return True


# =============================================================================
# Availability
# =============================================================================

AVAILABILITY_FIELDS = (
    "availability_type",
    "is_available",
    "start_date",
    "end_date",
    "day_of_week",
    "start_time",
    "end_time",
    "recurrence_pattern",
    "reason",
    "notes",
)


def _clean_availability(values: dict) -> dict:
    """
    Normalize an availability record and enforce its shape.

    Raises:
        InvalidAvailability: If required fields for the type are missing or
            date/time ranges run backwards
    """
    kind = values.get("availability_type")
    if kind not in VolunteerAvailability.Type.values:
        raise InvalidAvailability(f"Unknown availability type '{kind}'")

    if kind == VolunteerAvailability.Type.BLACKOUT:
        if values.get("start_date") is None:
            raise InvalidAvailability("Blackout dates need a start date")
        values["is_available"] = False

    if kind == VolunteerAvailability.Type.ONE_TIME and values.get("start_date") is None:
        raise InvalidAvailability("One-time availability needs a date")

    if kind == VolunteerAvailability.Type.RECURRING:
        if values.get("day_of_week") is None:
            raise InvalidAvailability("Recurring availability needs a day of week")
        if values.get("start_time") is None or values.get("end_time") is None:
            raise InvalidAvailability("Recurring availability needs start and end times")
        if not values.get("recurrence_pattern"):
            values["recurrence_pattern"] = VolunteerAvailability.Recurrence.WEEKLY

    day = values.get("day_of_week")
    if day is not None and not 0 <= day <= 6:
        raise InvalidAvailability("Day of week must be between 0 (Sunday) and 6 (Saturday)")

    pattern = values.get("recurrence_pattern")
    if pattern and pattern not in VolunteerAvailability.Recurrence.values:
        raise InvalidAvailability(f"Unknown recurrence pattern '{pattern}'")

    start_date, end_date = values.get("start_date"), values.get("end_date")
    if start_date is not None and end_date is not None and end_date < start_date:
        raise InvalidAvailability("End date must be on or after start date")

    start_time, end_time = values.get("start_time"), values.get("end_time")
    if start_time is not None and end_time is not None and not validate_time_range(start_time, end_time):
        raise InvalidAvailability("End time must be after start time")

    for text_field in ("recurrence_pattern", "reason", "notes"):
        values[text_field] = values.get(text_field) or ""
    return values


@transaction.atomic
def add_availability(ctx: TenantContext, volunteer_id, **fields) -> VolunteerAvailability:
    """
    Add a recurring pattern, one-time availability or blackout for a volunteer.

    Raises:
        VolunteerNotFound: If the volunteer is not in ctx's organization
        InvalidAvailability: If the record shape is inconsistent
    """
    unknown = set(fields) - set(AVAILABILITY_FIELDS)
    if unknown:
        raise ValueError(f"Unknown availability field(s): {', '.join(sorted(unknown))}")

    volunteer = selectors.get_volunteer(ctx.organization, volunteer_id)
    if volunteer is None:
        raise VolunteerNotFound(volunteer_id)

    values = _clean_availability({"is_available": True, **fields})
    availability = VolunteerAvailability.objects.create(volunteer=volunteer, **values)

    logger.info(
        "Availability added: availability=%s org=%s volunteer=%s type=%s",
        availability.pk, ctx.slug, volunteer.pk, availability.availability_type,
    )
    return availability


@transaction.atomic
def update_availability(ctx: TenantContext, availability_id, **changes) -> VolunteerAvailability:
    """
    Edit an availability record; the merged record must still be well-formed.

    Raises:
        AvailabilityNotFound: If the record is not in ctx's organization
        InvalidAvailability: If the merged record shape is inconsistent
    """
    unknown = set(changes) - set(AVAILABILITY_FIELDS)
    if unknown:
        raise ValueError(f"Unknown availability field(s): {', '.join(sorted(unknown))}")

    availability = selectors.get_availability(ctx.organization, availability_id)
    if availability is None:
        raise AvailabilityNotFound(availability_id)

    merged = {name: getattr(availability, name) for name in AVAILABILITY_FIELDS}
    merged.update(changes)
    values = _clean_availability(merged)

    for name, value in values.items():
        setattr(availability, name, value)
    availability.save()

    logger.info(
        "Availability updated: availability=%s org=%s", availability.pk, ctx.slug,
    )
    return availability


@transaction.atomic
def delete_availability(ctx: TenantContext, availability_id) -> None:
    """
    Raises:
        AvailabilityNotFound: If the record is not in ctx's organization
    """
    availability = selectors.get_availability(ctx.organization, availability_id)
    if availability is None:
        raise AvailabilityNotFound(availability_id)

    pk = availability.pk
    availability.delete()
    logger.info("Availability deleted: availability=%s org=%s", pk, ctx.slug)


def add_blackout_date(
    ctx: TenantContext,
    volunteer_id,
    start_date: date,
    end_date: date | None = None,
    reason: str = "",
) -> VolunteerAvailability:
    """Block a volunteer from scheduling; end_date None means until further notice."""
    return add_availability(
        ctx,
        volunteer_id,
        availability_type=VolunteerAvailability.Type.BLACKOUT,
        is_available=False,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
    )


def add_recurring_availability(
    ctx: TenantContext,
    volunteer_id,
    day_of_week: int,
    start_time: time,
    end_time: time,
    recurrence_pattern: str = VolunteerAvailability.Recurrence.WEEKLY,
    notes: str = "",
) -> VolunteerAvailability:
    """E.g. 'Available every Sunday 9am-12pm' is day_of_week=0, 09:00-12:00, WEEKLY."""
    return add_availability(
        ctx,
        volunteer_id,
        availability_type=VolunteerAvailability.Type.RECURRING,
        is_available=True,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        recurrence_pattern=recurrence_pattern,
        notes=notes,
    )


# =============================================================================
# Skills
# =============================================================================


def _clean_skill_name(skill_name: str) -> str:
    name = (skill_name or "").strip()
    if not name:
        raise ValueError("Skill name is required")
    return name


@transaction.atomic
def add_volunteer_skill(
    ctx: TenantContext,
    volunteer_id,
    skill_name: str,
    is_verified: bool = False,
    notes: str = "",
) -> tuple[VolunteerSkill, bool]:
    """
    Declare a skill for a volunteer. Adding an existing skill is a no-op.

    Returns:
        Tuple of (skill, created)
    """
    volunteer = selectors.get_volunteer(ctx.organization, volunteer_id)
    if volunteer is None:
        raise VolunteerNotFound(volunteer_id)

    skill, created = VolunteerSkill.objects.get_or_create(
        volunteer=volunteer,
        skill_name=_clean_skill_name(skill_name),
        defaults={"is_verified": is_verified, "notes": notes or ""},
    )
    if created:
        logger.info("Skill added: volunteer=%s org=%s skill=%s", volunteer.pk, ctx.slug, skill.skill_name)
    return skill, created


@transaction.atomic
def remove_volunteer_skill(ctx: TenantContext, volunteer_id, skill_name: str) -> bool:
    """Returns True if a skill was removed."""
    volunteer = selectors.get_volunteer(ctx.organization, volunteer_id)
    if volunteer is None:
        raise VolunteerNotFound(volunteer_id)

    deleted, _ = VolunteerSkill.objects.filter(
        volunteer=volunteer,
        skill_name=_clean_skill_name(skill_name),
    ).delete()
    return deleted > 0


VOLUNTEER_SKILL_FIELDS = ("is_verified", "notes")


@transaction.atomic
def update_volunteer_skill(ctx: TenantContext, skill_id, **changes) -> VolunteerSkill:
    """
    Mark a declared skill verified (or not) and edit its notes.

    The skill name is fixed; remove and re-add the skill to rename it.

    Raises:
        ValueError: If changes names another field
        SkillNotFound: If the skill's volunteer is not in ctx's organization
    """
    unknown = set(changes) - set(VOLUNTEER_SKILL_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update skill field(s): {', '.join(sorted(unknown))}")

    skill = selectors.get_volunteer_skill(ctx.organization, skill_id)
    if skill is None:
        raise SkillNotFound(skill_id)

    if "is_verified" in changes:
        skill.is_verified = bool(changes["is_verified"])
    if "notes" in changes:
        skill.notes = changes["notes"] or ""
    skill.save(update_fields=[*changes, "updated_at"])

    logger.info("Skill updated: skill=%s org=%s", skill.pk, ctx.slug)
    return skill


@transaction.atomic
def set_opportunity_skill(
    ctx: TenantContext,
    opportunity_id,
    skill_name: str,
    is_required: bool = True,
) -> OpportunitySkill:
    """Attach a skill to an opportunity, or change whether it is required."""
    opportunity = selectors.get_opportunity(ctx.organization, opportunity_id, active_only=False)
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)

    skill, _ = OpportunitySkill.objects.update_or_create(
        opportunity=opportunity,
        skill_name=_clean_skill_name(skill_name),
        defaults={"is_required": is_required},
    )
    return skill


@transaction.atomic
def remove_opportunity_skill(ctx: TenantContext, opportunity_id, skill_name: str) -> bool:
    """Returns True if a skill requirement was removed."""
    opportunity = selectors.get_opportunity(ctx.organization, opportunity_id, active_only=False)
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)

    deleted, _ = OpportunitySkill.objects.filter(
        opportunity=opportunity,
        skill_name=_clean_skill_name(skill_name),
    ).delete()
    return deleted > 0


# =============================================================================
# Background checks
# =============================================================================

REVIEWABLE_STATUSES = (
    BackgroundCheckStatus.CLEARED,
    BackgroundCheckStatus.FLAGGED,
    BackgroundCheckStatus.IN_PROGRESS,
)


@transaction.atomic
def confirm_background_check(token) -> tuple[Volunteer, bool]:
    """
    Record that a volunteer completed their background check (public link).

    Moves the volunteer to PENDING_REVIEW for staff to verify. Volunteers
    already pending review, cleared, or previously confirmed are left as-is.

    Returns:
        Tuple of (volunteer, already_confirmed)

    Raises:
        InvalidConfirmationToken: If no volunteer has this token
    """
    volunteer = selectors.get_volunteer_by_token(token)
    if volunteer is None:
        raise InvalidConfirmationToken("Invalid or expired confirmation link.")

    volunteer = Volunteer.objects.select_for_update().get(pk=volunteer.pk)
    already_confirmed = (
        volunteer.background_check_confirmed_at is not None
        or volunteer.background_check_status in (
            BackgroundCheckStatus.PENDING_REVIEW,
            BackgroundCheckStatus.CLEARED,
        )
    )
    if already_confirmed:
        return volunteer, True

    volunteer.background_check_status = BackgroundCheckStatus.PENDING_REVIEW
    volunteer.background_check_confirmed_at = timezone.now()
    volunteer.save(update_fields=[
        "background_check_status",
        "background_check_confirmed_at",
        "updated_at",
    ])
    logger.info("Background check confirmed: volunteer=%s", volunteer.pk)
    return volunteer, False


@transaction.atomic
def review_background_check(
    ctx: TenantContext,
    volunteer_id,
    status: str,
    expiry: date | None = None,
) -> Volunteer:
    """
    Staff decision on a background check.

    The expiry date is kept only for CLEARED checks.

    Raises:
        VolunteerNotFound: If the volunteer is not in ctx's organization
        ValueError: If status is not CLEARED, FLAGGED or IN_PROGRESS
    """
    if status not in REVIEWABLE_STATUSES:
        raise ValueError(f"Cannot set background check status to '{status}'")

    volunteer = selectors.get_volunteer(ctx.organization, volunteer_id, for_update=True)
    if volunteer is None:
        raise VolunteerNotFound(volunteer_id)

    volunteer.background_check_status = status
    volunteer.background_check_expiry = expiry if status == BackgroundCheckStatus.CLEARED else None
    volunteer.save(update_fields=[
        "background_check_status",
        "background_check_expiry",
        "updated_at",
    ])
    logger.info(
        "Background check reviewed: volunteer=%s org=%s status=%s",
        volunteer.pk, ctx.slug, status,
    )
    return volunteer


def expire_background_checks(today: date | None = None, dry_run: bool = False) -> int:
    """
    Mark CLEARED checks whose expiry date has passed as EXPIRED.

    The confirmation stamp is cleared so the volunteer can confirm a
    renewed check through their link.

    Returns:
        Number of volunteers expired (or that would be, with dry_run)
    """
    today = today or timezone.localdate()
    qs = Volunteer.objects.filter(
        background_check_status=BackgroundCheckStatus.CLEARED,
        background_check_expiry__lt=today,
    )
    if dry_run:
        return qs.count()

    count = qs.update(
        background_check_status=BackgroundCheckStatus.EXPIRED,
        background_check_confirmed_at=None,
        updated_at=timezone.now(),
    )
    if count:
        logger.info("Expired %s background checks (before %s)", count, today)
    return count
