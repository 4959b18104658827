"""Models for django-volunteers.

Every record is scoped to exactly one Organization (the tenant). Shifts
carry their own organization key so that tenant filters never need a join.
"""

import uuid

from django.conf import settings
from django.db import models


class VolunteersBaseModel(models.Model):
    """Base model with UUID PK and timestamps."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# =============================================================================
# Tenancy
# =============================================================================


class Organization(VolunteersBaseModel):
    """A church or ministry; the tenant isolation boundary."""

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=100, unique=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class OrganizationMembership(VolunteersBaseModel):
    """A user's role within an organization."""

    class Role(models.TextChoices):
        OWNER = "OWNER", "Owner"
        ADMIN = "ADMIN", "Admin"
        STAFF = "STAFF", "Staff"
        MEMBER = "MEMBER", "Member"

    MANAGER_ROLES = (Role.OWNER, Role.ADMIN)

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="volunteer_memberships",
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.MEMBER)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "user"],
                name="volunteers_membership_unique_user",
            ),
        ]

    def __str__(self):
        return f"{self.user} @ {self.organization.slug} ({self.role})"

    @property
    def can_manage_volunteers(self) -> bool:
        return self.role in self.MANAGER_ROLES


class Location(VolunteersBaseModel):
    """A campus or room where shifts take place."""

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="locations",
    )
    name = models.CharField(max_length=200)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


# =============================================================================
# Volunteers
# =============================================================================


class BackgroundCheckStatus(models.TextChoices):
    NOT_STARTED = "NOT_STARTED", "Not started"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    PENDING_REVIEW = "PENDING_REVIEW", "Pending review"
    CLEARED = "CLEARED", "Cleared"
    FLAGGED = "FLAGGED", "Flagged"
    EXPIRED = "EXPIRED", "Expired"


class Volunteer(VolunteersBaseModel):
    """A person who serves within one organization.

    background_check_token is the secret used by the public confirmation
    link; it is never exposed through the API.
    """

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="volunteers",
    )
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(default=True)

    background_check_status = models.CharField(
        max_length=20,
        choices=BackgroundCheckStatus.choices,
        default=BackgroundCheckStatus.NOT_STARTED,
    )
    background_check_expiry = models.DateField(null=True, blank=True)
    background_check_token = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    background_check_confirmed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["organization", "background_check_status"], name="volunteers_bgcheck_idx"),
        ]

    def __str__(self):
        return self.name


class VolunteerSkill(VolunteersBaseModel):
    """A skill a volunteer has declared (e.g. 'CPR', 'Sound Board')."""

    volunteer = models.ForeignKey(
        Volunteer,
        on_delete=models.CASCADE,
        related_name="skills",
    )
    skill_name = models.CharField(max_length=100)
    is_verified = models.BooleanField(default=False)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["skill_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["volunteer", "skill_name"],
                name="volunteers_skill_unique_per_volunteer",
            ),
        ]

    def __str__(self):
        return f"{self.volunteer}: {self.skill_name}"


# =============================================================================
# Serving opportunities
# =============================================================================


class ServingOpportunity(VolunteersBaseModel):
    """A role volunteers can be scheduled into (e.g. 'Nursery Helper')."""

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="serving_opportunities",
    )
    name = models.CharField(max_length=200)
    category = models.CharField(
        max_length=100,
        blank=True,
        help_text="Ministry category, e.g. 'Kids Ministry - Nursery'",
    )
    volunteers_needed = models.PositiveIntegerField(
        default=1,
        help_text="Headcount per date; active shifts beyond this are rejected",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "serving opportunities"

    def __str__(self):
        return self.name


class OpportunitySkill(VolunteersBaseModel):
    """A skill attached to an opportunity; only required skills are enforced."""

    opportunity = models.ForeignKey(
        ServingOpportunity,
        on_delete=models.CASCADE,
        related_name="skills",
    )
    skill_name = models.CharField(max_length=100)
    is_required = models.BooleanField(default=True)

    class Meta:
        ordering = ["skill_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["opportunity", "skill_name"],
                name="volunteers_opportunity_skill_unique",
            ),
        ]

    def __str__(self):
        flag = "required" if self.is_required else "preferred"
        return f"{self.opportunity}: {self.skill_name} ({flag})"


# =============================================================================
# Availability
# =============================================================================


class VolunteerAvailability(VolunteersBaseModel):
    """A recurring pattern, one-off availability or blackout window.

    Blackouts use start_date/end_date; end_date NULL means open-ended.
    Recurring records use day_of_week (0=Sunday .. 6=Saturday) plus times.
    """

    class Type(models.TextChoices):
        RECURRING = "RECURRING", "Recurring"
        ONE_TIME = "ONE_TIME", "One time"
        BLACKOUT = "BLACKOUT", "Blackout"

    class Recurrence(models.TextChoices):
        WEEKLY = "WEEKLY", "Weekly"
        BIWEEKLY = "BIWEEKLY", "Every other week"
        MONTHLY = "MONTHLY", "Monthly"
        FIRST_OF_MONTH = "FIRST_OF_MONTH", "First of month"
        THIRD_OF_MONTH = "THIRD_OF_MONTH", "Third of month"

    volunteer = models.ForeignKey(
        Volunteer,
        on_delete=models.CASCADE,
        related_name="availability",
    )
    availability_type = models.CharField(max_length=20, choices=Type.choices)
    is_available = models.BooleanField(default=True)

    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    day_of_week = models.PositiveSmallIntegerField(null=True, blank=True)
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    recurrence_pattern = models.CharField(
        max_length=20,
        choices=Recurrence.choices,
        blank=True,
    )

    reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        verbose_name_plural = "volunteer availability"
        indexes = [
            models.Index(fields=["volunteer", "availability_type", "is_available"], name="volunteers_avail_type_idx"),
        ]

    def __str__(self):
        if self.availability_type == self.Type.BLACKOUT:
            end = self.end_date or "open"
            return f"{self.volunteer} blackout {self.start_date} - {end}"
        return f"{self.volunteer} {self.get_availability_type_display()}"


# =============================================================================
# Shifts
# =============================================================================


class ShiftStatus(models.TextChoices):
    SCHEDULED = "SCHEDULED", "Scheduled"
    CONFIRMED = "CONFIRMED", "Confirmed"
    CHECKED_IN = "CHECKED_IN", "Checked in"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"
    NO_SHOW = "NO_SHOW", "No show"


# Shifts in these statuses neither block the volunteer's time nor use capacity
INACTIVE_SHIFT_STATUSES = (ShiftStatus.CANCELLED, ShiftStatus.NO_SHOW)


class VolunteerShiftQuerySet(models.QuerySet):
    def for_organization(self, organization):
        return self.filter(organization=organization)

    def active(self):
        return self.exclude(status__in=INACTIVE_SHIFT_STATUSES)

    def on_date(self, shift_date):
        return self.filter(shift_date=shift_date)


class VolunteerShift(VolunteersBaseModel):
    """A volunteer scheduled into an opportunity on one date.

    Key invariants:
    - Never hard-deleted; status transitions instead
    - version starts at 1 and increments by exactly one per update
    - end_time > start_time (no shifts across midnight)
    """

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="volunteer_shifts",
    )
    volunteer = models.ForeignKey(
        Volunteer,
        on_delete=models.PROTECT,
        related_name="shifts",
    )
    opportunity = models.ForeignKey(
        ServingOpportunity,
        on_delete=models.PROTECT,
        related_name="shifts",
    )
    location = models.ForeignKey(
        Location,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="shifts",
    )

    shift_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()

    status = models.CharField(
        max_length=20,
        choices=ShiftStatus.choices,
        default=ShiftStatus.SCHEDULED,
    )
    version = models.PositiveIntegerField(default=1)

    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_out_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    scheduled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="scheduled_volunteer_shifts",
    )

    objects = VolunteerShiftQuerySet.as_manager()

    class Meta:
        ordering = ["shift_date", "start_time"]
        indexes = [
            models.Index(fields=["volunteer", "shift_date"], name="volunteers_shift_vol_idx"),
            models.Index(fields=["opportunity", "shift_date"], name="volunteers_shift_opp_idx"),
            models.Index(fields=["organization", "shift_date"], name="volunteers_shift_org_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="volunteers_shift_end_after_start",
            ),
        ]

    def __str__(self):
        return (
            f"{self.volunteer} - {self.opportunity} "
            f"{self.shift_date} {self.start_time:%H:%M}-{self.end_time:%H:%M}"
        )

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_SHIFT_STATUSES
