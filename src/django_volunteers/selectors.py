"""
Tenant-scoped read queries for django-volunteers.

Every lookup takes the acting organization and returns None rather than
raising when the row is missing or belongs to another organization, so
callers can map both cases to the same error.

Usage:
    from django_volunteers.selectors import get_volunteer, active_shifts_for_volunteer
"""

import uuid
from datetime import date

from django.db.models import QuerySet

from django_volunteers.models import (
    Location,
    Organization,
    ServingOpportunity,
    Volunteer,
    VolunteerAvailability,
    VolunteerShift,
    VolunteerSkill,
)


def _as_uuid(value) -> uuid.UUID | None:
    """Coerce an id from a URL or JSON body; malformed ids match nothing."""
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


# =============================================================================
# ENTITY SELECTORS
# =============================================================================

def get_volunteer(
    organization: Organization,
    volunteer_id,
    for_update: bool = False,
    active_only: bool = False,
) -> Volunteer | None:
    """Get a volunteer of this organization, optionally row-locked."""
    pk = _as_uuid(volunteer_id)
    if pk is None:
        return None
    qs = Volunteer.objects.filter(pk=pk, organization=organization)
    if active_only:
        qs = qs.filter(is_active=True)
    if for_update:
        qs = qs.select_for_update()
    return qs.first()


def get_volunteer_by_token(token) -> Volunteer | None:
    """Get a volunteer by background-check confirmation token (any organization)."""
    token = _as_uuid(token)
    if token is None:
        return None
    return Volunteer.objects.filter(background_check_token=token).first()


def get_opportunity(
    organization: Organization,
    opportunity_id,
    for_update: bool = False,
    active_only: bool = True,
) -> ServingOpportunity | None:
    """Get a serving opportunity of this organization, optionally row-locked."""
    pk = _as_uuid(opportunity_id)
    if pk is None:
        return None
    qs = ServingOpportunity.objects.filter(pk=pk, organization=organization)
    if active_only:
        qs = qs.filter(is_active=True)
    if for_update:
        qs = qs.select_for_update()
    return qs.first()


def get_location(organization: Organization, location_id) -> Location | None:
    """Get an active location of this organization."""
    pk = _as_uuid(location_id)
    if pk is None:
        return None
    return Location.objects.filter(
        pk=pk,
        organization=organization,
        is_active=True,
    ).first()


def get_shift(organization: Organization, shift_id) -> VolunteerShift | None:
    pk = _as_uuid(shift_id)
    if pk is None:
        return None
    return VolunteerShift.objects.for_organization(organization).filter(pk=pk).first()


def get_volunteer_skill(organization: Organization, skill_id) -> VolunteerSkill | None:
    pk = _as_uuid(skill_id)
    if pk is None:
        return None
    return VolunteerSkill.objects.filter(pk=pk, volunteer__organization=organization).first()


def volunteer_with_email(organization: Organization, email: str, exclude_id=None) -> Volunteer | None:
    """Case-insensitive email match within one organization."""
    if not email:
        return None
    qs = Volunteer.objects.filter(organization=organization, email__iexact=email)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs.first()


def get_availability(organization: Organization, availability_id) -> VolunteerAvailability | None:
    """Availability records are scoped through their volunteer's organization."""
    pk = _as_uuid(availability_id)
    if pk is None:
        return None
    return (
        VolunteerAvailability.objects
        .select_related("volunteer")
        .filter(pk=pk, volunteer__organization=organization)
        .first()
    )


# =============================================================================
# SCHEDULING SELECTORS
# =============================================================================

def active_shifts_for_volunteer(
    volunteer: Volunteer,
    shift_date: date,
    exclude_shift_id=None,
) -> QuerySet[VolunteerShift]:
    """Active shifts the volunteer already holds on a date."""
    qs = (
        VolunteerShift.objects
        .for_organization(volunteer.organization_id)
        .active()
        .on_date(shift_date)
        .filter(volunteer=volunteer)
    )
    if exclude_shift_id is not None:
        qs = qs.exclude(pk=exclude_shift_id)
    return qs


def active_shift_count(
    opportunity: ServingOpportunity,
    shift_date: date,
    exclude_shift_id=None,
) -> int:
    """Number of active shifts filling an opportunity on a date."""
    qs = (
        VolunteerShift.objects
        .for_organization(opportunity.organization_id)
        .active()
        .on_date(shift_date)
        .filter(opportunity=opportunity)
    )
    if exclude_shift_id is not None:
        qs = qs.exclude(pk=exclude_shift_id)
    return qs.count()


def blackouts_starting_by(volunteer: Volunteer, on_date: date) -> QuerySet[VolunteerAvailability]:
    """Blackout windows of the volunteer that began on or before a date."""
    return VolunteerAvailability.objects.filter(
        volunteer=volunteer,
        availability_type=VolunteerAvailability.Type.BLACKOUT,
        is_available=False,
        start_date__lte=on_date,
    ).only("start_date", "end_date")


def declared_skill_names(volunteer: Volunteer) -> set[str]:
    return set(volunteer.skills.values_list("skill_name", flat=True))


def required_skill_names(opportunity: ServingOpportunity) -> set[str]:
    return set(
        opportunity.skills.filter(is_required=True).values_list("skill_name", flat=True)
    )
