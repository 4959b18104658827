"""Django admin configuration for volunteers."""

from django.contrib import admin

from .models import (
    Location,
    OpportunitySkill,
    Organization,
    OrganizationMembership,
    ServingOpportunity,
    Volunteer,
    VolunteerAvailability,
    VolunteerShift,
    VolunteerSkill,
)


class OrganizationMembershipInline(admin.TabularInline):
    model = OrganizationMembership
    extra = 0
    raw_id_fields = ["user"]


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ["name", "slug", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["name", "slug"]
    prepopulated_fields = {"slug": ("name",)}
    inlines = [OrganizationMembershipInline]


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ["name", "organization", "is_active"]
    list_filter = ["organization", "is_active"]
    search_fields = ["name"]


class VolunteerSkillInline(admin.TabularInline):
    model = VolunteerSkill
    extra = 0


class VolunteerAvailabilityInline(admin.TabularInline):
    model = VolunteerAvailability
    extra = 0
    fields = [
        "availability_type",
        "is_available",
        "start_date",
        "end_date",
        "day_of_week",
        "start_time",
        "end_time",
        "recurrence_pattern",
        "reason",
    ]


@admin.register(Volunteer)
class VolunteerAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "organization",
        "background_check_status",
        "background_check_expiry",
        "is_active",
    ]
    list_filter = ["organization", "background_check_status", "is_active"]
    search_fields = ["name", "email"]
    readonly_fields = ["background_check_token", "background_check_confirmed_at", "created_at", "updated_at"]
    inlines = [VolunteerSkillInline, VolunteerAvailabilityInline]


class OpportunitySkillInline(admin.TabularInline):
    model = OpportunitySkill
    extra = 0


@admin.register(ServingOpportunity)
class ServingOpportunityAdmin(admin.ModelAdmin):
    list_display = ["name", "organization", "category", "volunteers_needed", "is_active"]
    list_filter = ["organization", "is_active"]
    search_fields = ["name", "category"]
    inlines = [OpportunitySkillInline]


@admin.register(VolunteerShift)
class VolunteerShiftAdmin(admin.ModelAdmin):
    """Shifts are read-only here; changes go through services so versions stay honest."""

    list_display = [
        "shift_date",
        "start_time",
        "end_time",
        "volunteer",
        "opportunity",
        "status",
        "version",
    ]
    list_filter = ["organization", "status", "shift_date"]
    search_fields = ["volunteer__name", "opportunity__name"]
    date_hierarchy = "shift_date"
    readonly_fields = [field.name for field in VolunteerShift._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
