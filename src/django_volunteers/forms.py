"""Input forms for the volunteer JSON API.

Forms only check types and shapes of the request body. Business rules
(conflicts, capacity, availability shape) are enforced in services.py so
they hold for every caller.
"""

from django import forms
from django.utils.translation import gettext_lazy as _

from .models import BackgroundCheckStatus, VolunteerAvailability
from .services import REVIEWABLE_STATUSES


class PartialForm(forms.Form):
    """Form where only the keys present in the submitted data count as changes."""

    #: Form field name -> service keyword, for fields named differently
    rename = {}
    #: Fields that are never part of changes()
    control_fields = ()

    def changes(self) -> dict:
        return {
            self.rename.get(name, name): self.cleaned_data.get(name)
            for name in self.fields
            if name in self.data and name not in self.control_fields
        }


class NotClearableMixin:
    """Reject an explicit blank for fields listed in not_clearable."""

    not_clearable = ()

    def clean(self):
        cleaned_data = super().clean()
        for name in self.not_clearable:
            if name in self.data and cleaned_data.get(name) in (None, "") and name not in self.errors:
                self.add_error(name, _("This field cannot be cleared."))
        return cleaned_data


# =============================================================================
# Shifts
# =============================================================================


class ShiftCreateForm(forms.Form):
    volunteer_id = forms.UUIDField()
    opportunity_id = forms.UUIDField()
    shift_date = forms.DateField()
    start_time = forms.TimeField()
    end_time = forms.TimeField()
    location_id = forms.UUIDField(required=False)
    notes = forms.CharField(required=False, strip=True)


class ShiftUpdateForm(NotClearableMixin, PartialForm):
    version = forms.IntegerField(min_value=1)
    shift_date = forms.DateField(required=False)
    start_time = forms.TimeField(required=False)
    end_time = forms.TimeField(required=False)
    location_id = forms.UUIDField(required=False)
    notes = forms.CharField(required=False, strip=True)

    rename = {"location_id": "location"}
    control_fields = ("version",)
    not_clearable = ("shift_date", "start_time", "end_time")


class ShiftStatusForm(forms.Form):
    version = forms.IntegerField(min_value=1)
    reason = forms.CharField(required=False, max_length=255, strip=True)


# =============================================================================
# Volunteers and opportunities
# =============================================================================


class VolunteerForm(forms.Form):
    name = forms.CharField(max_length=200, strip=True)
    email = forms.EmailField(required=False)
    phone = forms.CharField(required=False, max_length=50, strip=True)


class VolunteerUpdateForm(NotClearableMixin, PartialForm):
    name = forms.CharField(required=False, max_length=200, strip=True)
    email = forms.EmailField(required=False)
    phone = forms.CharField(required=False, max_length=50, strip=True)

    not_clearable = ("name",)


class OpportunityForm(forms.Form):
    name = forms.CharField(max_length=200, strip=True)
    category = forms.CharField(required=False, max_length=100, strip=True)
    volunteers_needed = forms.IntegerField(required=False, min_value=1)

    def clean_volunteers_needed(self):
        return self.cleaned_data.get("volunteers_needed") or 1


class OpportunityUpdateForm(NotClearableMixin, PartialForm):
    name = forms.CharField(required=False, max_length=200, strip=True)
    category = forms.CharField(required=False, max_length=100, strip=True)
    volunteers_needed = forms.IntegerField(required=False, min_value=1)

    not_clearable = ("name", "volunteers_needed")


class OpportunityStatusForm(forms.Form):
    is_active = forms.NullBooleanField()

    def clean_is_active(self):
        value = self.cleaned_data.get("is_active")
        if value is None:
            raise forms.ValidationError(_("This field is required."))
        return value


# =============================================================================
# Skills
# =============================================================================


class VolunteerSkillForm(forms.Form):
    skill_name = forms.CharField(max_length=100, strip=True)
    is_verified = forms.BooleanField(required=False)
    notes = forms.CharField(required=False, strip=True)


class VolunteerSkillUpdateForm(PartialForm):
    is_verified = forms.NullBooleanField(required=False)
    notes = forms.CharField(required=False, strip=True)

    def changes(self) -> dict:
        changes = super().changes()
        if changes.get("is_verified") is None:
            changes.pop("is_verified", None)
        return changes


class OpportunitySkillForm(forms.Form):
    skill_name = forms.CharField(max_length=100, strip=True)
    is_required = forms.NullBooleanField(required=False)

    def clean_is_required(self):
        value = self.cleaned_data.get("is_required")
        return True if value is None else value


class SkillNameForm(forms.Form):
    skill_name = forms.CharField(max_length=100, strip=True)


# =============================================================================
# Availability
# =============================================================================


class AvailabilityForm(PartialForm):
    volunteer_id = forms.UUIDField()
    availability_type = forms.ChoiceField(choices=VolunteerAvailability.Type.choices)
    is_available = forms.NullBooleanField(required=False)
    start_date = forms.DateField(required=False)
    end_date = forms.DateField(required=False)
    day_of_week = forms.IntegerField(required=False, min_value=0, max_value=6)
    start_time = forms.TimeField(required=False)
    end_time = forms.TimeField(required=False)
    recurrence_pattern = forms.ChoiceField(
        choices=VolunteerAvailability.Recurrence.choices,
        required=False,
    )
    reason = forms.CharField(required=False, max_length=255, strip=True)
    notes = forms.CharField(required=False, strip=True)

    control_fields = ("volunteer_id",)

    def changes(self) -> dict:
        changes = super().changes()
        # Blank means "leave as is" for these two, not "clear"
        if not changes.get("availability_type"):
            changes.pop("availability_type", None)
        if changes.get("is_available") is None:
            changes.pop("is_available", None)
        return changes


class AvailabilityUpdateForm(AvailabilityForm):
    volunteer_id = None
    availability_type = forms.ChoiceField(
        choices=VolunteerAvailability.Type.choices,
        required=False,
    )

    control_fields = ()


# =============================================================================
# Background checks
# =============================================================================


class BackgroundCheckReviewForm(forms.Form):
    status = forms.ChoiceField(
        choices=[
            (value, label)
            for value, label in BackgroundCheckStatus.choices
            if value in REVIEWABLE_STATUSES
        ],
    )
    expiry = forms.DateField(required=False)
