"""Views for django-volunteers.

Provides a JSON API over services.py:
- ShiftCreateAPIView / ShiftUpdateAPIView / ShiftStatusAPIView
- AvailabilityCreateAPIView / AvailabilityUpdateAPIView / AvailabilityDeleteAPIView
- VolunteerCreateAPIView / VolunteerUpdateAPIView / VolunteerStatusAPIView
- OpportunityCreateAPIView / OpportunityUpdateAPIView / OpportunityStatusAPIView /
  OpportunityDeleteAPIView
- VolunteerSkillAPIView / VolunteerSkillRemoveAPIView / VolunteerSkillUpdateAPIView /
  OpportunitySkillAPIView / OpportunitySkillRemoveAPIView
- BackgroundCheckReviewAPIView: staff decision on a background check
- BackgroundCheckConfirmAPIView: public token confirmation (no login, no CSRF)

Responses use one envelope:
    {"ok": true, "message": ..., "data": {...}}
    {"ok": false, "error": {"code": ..., "message": ...}}
"""

import json
import logging

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from . import services
from .context import require_manager, resolve_tenant
from .exceptions import (
    AvailabilityNotFound,
    DuplicateVolunteer,
    InvalidAvailability,
    InvalidConfirmationToken,
    InvalidShiftTransition,
    OpportunityNotFound,
    RateLimitExceeded,
    SchedulingConflict,
    SchedulingError,
    ShiftNotEditable,
    ShiftNotFound,
    SkillNotFound,
    StaleShiftError,
    TenantAccessDenied,
    VolunteerNotFound,
)
from .forms import (
    AvailabilityForm,
    AvailabilityUpdateForm,
    BackgroundCheckReviewForm,
    OpportunityForm,
    OpportunitySkillForm,
    OpportunityStatusForm,
    OpportunityUpdateForm,
    ShiftCreateForm,
    ShiftStatusForm,
    ShiftUpdateForm,
    SkillNameForm,
    VolunteerForm,
    VolunteerSkillForm,
    VolunteerSkillUpdateForm,
    VolunteerUpdateForm,
)
from .ratelimit import check_rate_limit
from .reasons import failure_message

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."
RATE_LIMIT_MESSAGE = "Too many requests. Please wait before trying again."
STALE_SHIFT_MESSAGE = "This shift was changed by someone else. Please refresh and try again."
SCHEDULING_CONFLICT_MESSAGE = "Someone else was scheduling this slot at the same time. Please refresh and try again."


class InvalidPayload(Exception):
    pass


def error_response(code: str, message: str, status: int, **extra) -> JsonResponse:
    body = {"ok": False, "error": {"code": code, "message": str(message)}}
    body.update(extra)
    return JsonResponse(body, status=status)


def ok_response(message: str, data: dict | None = None, status: int = 200) -> JsonResponse:
    return JsonResponse({"ok": True, "message": message, "data": data or {}}, status=status)


def form_error_response(form) -> JsonResponse:
    errors = form.errors.get_json_data()
    first = next(iter(errors.values()))[0]["message"] if errors else "Invalid input"
    return JsonResponse(
        {
            "ok": False,
            "error": {"code": "VALIDATION_ERROR", "message": first, "fields": errors},
        },
        status=400,
    )


# =============================================================================
# Serializers
# =============================================================================


def serialize_shift(shift) -> dict:
    return {
        "id": str(shift.pk),
        "volunteer_id": str(shift.volunteer_id),
        "opportunity_id": str(shift.opportunity_id),
        "location_id": str(shift.location_id) if shift.location_id else None,
        "shift_date": shift.shift_date.isoformat(),
        "start_time": shift.start_time.strftime("%H:%M"),
        "end_time": shift.end_time.strftime("%H:%M"),
        "status": shift.status,
        "version": shift.version,
        "notes": shift.notes,
        "checked_in_at": shift.checked_in_at.isoformat() if shift.checked_in_at else None,
        "checked_out_at": shift.checked_out_at.isoformat() if shift.checked_out_at else None,
        "cancelled_at": shift.cancelled_at.isoformat() if shift.cancelled_at else None,
        "cancellation_reason": shift.cancellation_reason,
    }


def serialize_availability(availability) -> dict:
    return {
        "id": str(availability.pk),
        "volunteer_id": str(availability.volunteer_id),
        "availability_type": availability.availability_type,
        "is_available": availability.is_available,
        "start_date": availability.start_date.isoformat() if availability.start_date else None,
        "end_date": availability.end_date.isoformat() if availability.end_date else None,
        "day_of_week": availability.day_of_week,
        "start_time": availability.start_time.strftime("%H:%M") if availability.start_time else None,
        "end_time": availability.end_time.strftime("%H:%M") if availability.end_time else None,
        "recurrence_pattern": availability.recurrence_pattern or None,
        "reason": availability.reason,
        "notes": availability.notes,
    }


def serialize_volunteer(volunteer) -> dict:
    # background_check_token is the confirmation secret; never serialize it
    return {
        "id": str(volunteer.pk),
        "name": volunteer.name,
        "email": volunteer.email,
        "phone": volunteer.phone,
        "is_active": volunteer.is_active,
        "background_check_status": volunteer.background_check_status,
    }


def serialize_opportunity(opportunity) -> dict:
    return {
        "id": str(opportunity.pk),
        "name": opportunity.name,
        "category": opportunity.category,
        "volunteers_needed": opportunity.volunteers_needed,
        "is_active": opportunity.is_active,
    }


def serialize_volunteer_skill(skill) -> dict:
    return {
        "id": str(skill.pk),
        "volunteer_id": str(skill.volunteer_id),
        "skill_name": skill.skill_name,
        "is_verified": skill.is_verified,
        "notes": skill.notes,
    }


def serialize_opportunity_skill(skill) -> dict:
    return {
        "id": str(skill.pk),
        "opportunity_id": str(skill.opportunity_id),
        "skill_name": skill.skill_name,
        "is_required": skill.is_required,
    }


def serialize_background_check(volunteer) -> dict:
    expiry = volunteer.background_check_expiry
    return {
        "volunteer_id": str(volunteer.pk),
        "status": volunteer.background_check_status,
        "expiry": expiry.isoformat() if expiry else None,
    }


# =============================================================================
# Base view
# =============================================================================


class VolunteerAPIView(View):
    """
    Base for tenant-scoped JSON endpoints.

    Request pipeline: authentication, tenant membership, manager permission,
    rate limit, then handle(). Known service errors become envelope
    responses; anything else is logged and reported generically.
    """

    http_method_names = ["post"]
    rate_limit_action = None
    manager_only = True

    def post(self, request, slug, **kwargs):
        if not request.user.is_authenticated:
            return error_response("AUTH_REQUIRED", "Authentication required", 401)

        payload = self.parse_payload(request)
        ctx = resolve_tenant(request.user, slug)
        if self.manager_only:
            require_manager(ctx)
        if self.rate_limit_action:
            check_rate_limit(self.rate_limit_action, f"{request.user.pk}_{ctx.organization.pk}")
        return self.handle(request, ctx, payload, **kwargs)

    def handle(self, request, ctx, payload, **kwargs):
        raise NotImplementedError

    def parse_payload(self, request) -> dict:
        if not request.body:
            return {}
        try:
            payload = json.loads(request.body)
        except (ValueError, UnicodeDecodeError):
            raise InvalidPayload("Request body must be valid JSON")
        if not isinstance(payload, dict):
            raise InvalidPayload("Request body must be a JSON object")
        return payload

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except InvalidPayload as exc:
            return error_response("INVALID_JSON", str(exc), 400)
        except TenantAccessDenied as exc:
            return error_response("ACCESS_DENIED", exc.reason, 403)
        except RateLimitExceeded as exc:
            response = error_response("RATE_LIMITED", RATE_LIMIT_MESSAGE, 429)
            response["Retry-After"] = str(exc.retry_after)
            return response
        except SchedulingError as exc:
            return error_response(exc.reason.value, failure_message(exc.reason), 400)
        except SchedulingConflict:
            return error_response("SCHEDULING_CONFLICT", SCHEDULING_CONFLICT_MESSAGE, 409, should_refresh=True)
        except StaleShiftError:
            return error_response("STALE_SHIFT", STALE_SHIFT_MESSAGE, 409, should_refresh=True)
        except ShiftNotEditable as exc:
            status = exc.status.lower().replace("_", "-")
            return error_response("SHIFT_NOT_EDITABLE", f"A {status} shift cannot be rescheduled", 400)
        except ShiftNotFound:
            return error_response("SHIFT_NOT_FOUND", "Shift not found", 404)
        except InvalidShiftTransition as exc:
            return error_response("INVALID_TRANSITION", str(exc), 400)
        except VolunteerNotFound:
            return error_response("VOLUNTEER_NOT_FOUND", "Volunteer not found", 404)
        except DuplicateVolunteer:
            return error_response("DUPLICATE_VOLUNTEER", "A volunteer with this email already exists", 409)
        except OpportunityNotFound:
            return error_response("OPPORTUNITY_NOT_FOUND", "Serving opportunity not found", 404)
        except SkillNotFound:
            return error_response("SKILL_NOT_FOUND", "Skill not found", 404)
        except AvailabilityNotFound:
            return error_response("AVAILABILITY_NOT_FOUND", "Availability not found", 404)
        except InvalidAvailability as exc:
            return error_response("INVALID_AVAILABILITY", str(exc), 400)
        except InvalidConfirmationToken as exc:
            return error_response("INVALID_TOKEN", str(exc), 404)
        except Exception:
            logger.exception("Unexpected error in %s", type(self).__name__)
            return error_response("SERVER_ERROR", GENERIC_ERROR_MESSAGE, 500)


# =============================================================================
# Shifts
# =============================================================================


class ShiftCreateAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/shifts/"""

    rate_limit_action = "create_shift"

    def handle(self, request, ctx, payload):
        form = ShiftCreateForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        shift = services.create_shift(ctx, **form.cleaned_data)
        return ok_response("Shift scheduled", {"shift": serialize_shift(shift)}, status=201)


class ShiftUpdateAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/shifts/<shift_id>/ with the last-seen version."""

    rate_limit_action = "update_shift"

    def handle(self, request, ctx, payload, shift_id):
        form = ShiftUpdateForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        shift = services.update_shift(
            ctx, shift_id, form.cleaned_data["version"], **form.changes(),
        )
        return ok_response("Shift updated", {"shift": serialize_shift(shift)})


class ShiftStatusAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/shifts/<shift_id>/<action>/"""

    rate_limit_action = "shift_status"

    actions = {
        "confirm": ("Shift confirmed", services.confirm_shift),
        "cancel": ("Shift cancelled", services.cancel_shift),
        "check-in": ("Volunteer checked in", services.check_in_shift),
        "check-out": ("Volunteer checked out", services.check_out_shift),
        "no-show": ("Shift marked as no-show", services.mark_no_show),
    }

    def handle(self, request, ctx, payload, shift_id, action):
        if action not in self.actions:
            return error_response("UNKNOWN_ACTION", f"Unknown shift action '{action}'", 404)
        form = ShiftStatusForm(payload)
        if not form.is_valid():
            return form_error_response(form)

        message, operation = self.actions[action]
        version = form.cleaned_data["version"]
        if action == "cancel":
            shift = operation(ctx, shift_id, version, reason=form.cleaned_data["reason"])
        else:
            shift = operation(ctx, shift_id, version)
        return ok_response(message, {"shift": serialize_shift(shift)})


# =============================================================================
# Availability
# =============================================================================


class AvailabilityCreateAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/availability/"""

    rate_limit_action = "add_availability"

    def handle(self, request, ctx, payload):
        form = AvailabilityForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        availability = services.add_availability(
            ctx, form.cleaned_data["volunteer_id"], **form.changes(),
        )
        return ok_response(
            "Availability added",
            {"availability": serialize_availability(availability)},
            status=201,
        )


class AvailabilityUpdateAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/availability/<availability_id>/"""

    rate_limit_action = "update_availability"

    def handle(self, request, ctx, payload, availability_id):
        form = AvailabilityUpdateForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        availability = services.update_availability(ctx, availability_id, **form.changes())
        return ok_response(
            "Availability updated",
            {"availability": serialize_availability(availability)},
        )


class AvailabilityDeleteAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/availability/<availability_id>/delete/"""

    rate_limit_action = "delete_availability"

    def handle(self, request, ctx, payload, availability_id):
        services.delete_availability(ctx, availability_id)
        return ok_response("Availability removed", {"id": str(availability_id)})


# =============================================================================
# Volunteers
# =============================================================================


class VolunteerCreateAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/volunteers/"""

    rate_limit_action = "create_volunteer"

    def handle(self, request, ctx, payload):
        form = VolunteerForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        volunteer = services.create_volunteer(ctx, **form.cleaned_data)
        return ok_response("Volunteer added", {"volunteer": serialize_volunteer(volunteer)}, status=201)


class VolunteerUpdateAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/volunteers/<volunteer_id>/"""

    rate_limit_action = "update_volunteer"

    def handle(self, request, ctx, payload, volunteer_id):
        form = VolunteerUpdateForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        volunteer = services.update_volunteer(ctx, volunteer_id, **form.changes())
        return ok_response("Volunteer updated", {"volunteer": serialize_volunteer(volunteer)})


class VolunteerStatusAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/volunteers/<volunteer_id>/deactivate/ (or reactivate/)"""

    rate_limit_action = "volunteer_status"
    activate = True

    def handle(self, request, ctx, payload, volunteer_id):
        if self.activate:
            volunteer = services.reactivate_volunteer(ctx, volunteer_id)
            message = f"{volunteer.name} has been reactivated"
        else:
            volunteer = services.deactivate_volunteer(ctx, volunteer_id)
            message = f"{volunteer.name} has been marked as inactive"
        return ok_response(message, {"volunteer": serialize_volunteer(volunteer)})


# =============================================================================
# Serving opportunities
# =============================================================================


class OpportunityCreateAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/opportunities/"""

    rate_limit_action = "create_opportunity"

    def handle(self, request, ctx, payload):
        form = OpportunityForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        opportunity = services.create_opportunity(ctx, **form.cleaned_data)
        return ok_response(
            "Serving opportunity created",
            {"opportunity": serialize_opportunity(opportunity)},
            status=201,
        )


class OpportunityUpdateAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/opportunities/<opportunity_id>/"""

    rate_limit_action = "update_opportunity"

    def handle(self, request, ctx, payload, opportunity_id):
        form = OpportunityUpdateForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        opportunity = services.update_opportunity(ctx, opportunity_id, **form.changes())
        return ok_response(
            "Serving opportunity updated",
            {"opportunity": serialize_opportunity(opportunity)},
        )


class OpportunityStatusAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/opportunities/<opportunity_id>/status/ with is_active"""

    rate_limit_action = "opportunity_status"

    def handle(self, request, ctx, payload, opportunity_id):
        form = OpportunityStatusForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        is_active = form.cleaned_data["is_active"]
        opportunity = services.toggle_opportunity_status(ctx, opportunity_id, is_active)
        state = "activated" if is_active else "deactivated"
        return ok_response(
            f'"{opportunity.name}" has been {state}',
            {"opportunity": serialize_opportunity(opportunity)},
        )


class OpportunityDeleteAPIView(VolunteerAPIView):
    """
    POST <slug>/volunteers/opportunities/<opportunity_id>/delete/

    Answers with deleted=false when shifts kept the opportunity and it was
    deactivated instead.
    """

    rate_limit_action = "delete_opportunity"

    def handle(self, request, ctx, payload, opportunity_id):
        deleted = services.delete_opportunity(ctx, opportunity_id)
        message = "Serving opportunity deleted" if deleted else "Serving opportunity has shifts and was deactivated"
        return ok_response(message, {"id": str(opportunity_id), "deleted": deleted})


# =============================================================================
# Skills
# =============================================================================


class VolunteerSkillAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/volunteers/<volunteer_id>/skills/"""

    rate_limit_action = "volunteer_skill"

    def handle(self, request, ctx, payload, volunteer_id):
        form = VolunteerSkillForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        skill, created = services.add_volunteer_skill(ctx, volunteer_id, **form.cleaned_data)
        return ok_response(
            f'Skill "{skill.skill_name}" added' if created else "Volunteer already has this skill",
            {"skill": serialize_volunteer_skill(skill), "created": created},
            status=201 if created else 200,
        )


class VolunteerSkillRemoveAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/volunteers/<volunteer_id>/skills/remove/ with skill_name"""

    rate_limit_action = "volunteer_skill"

    def handle(self, request, ctx, payload, volunteer_id):
        form = SkillNameForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        skill_name = form.cleaned_data["skill_name"]
        if not services.remove_volunteer_skill(ctx, volunteer_id, skill_name):
            return error_response("SKILL_NOT_FOUND", "Skill not found", 404)
        return ok_response(f'Skill "{skill_name}" removed', {"skill_name": skill_name})


class VolunteerSkillUpdateAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/skills/<skill_id>/"""

    rate_limit_action = "volunteer_skill"

    def handle(self, request, ctx, payload, skill_id):
        form = VolunteerSkillUpdateForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        skill = services.update_volunteer_skill(ctx, skill_id, **form.changes())
        return ok_response("Skill updated", {"skill": serialize_volunteer_skill(skill)})


class OpportunitySkillAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/opportunities/<opportunity_id>/skills/"""

    rate_limit_action = "opportunity_skill"

    def handle(self, request, ctx, payload, opportunity_id):
        form = OpportunitySkillForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        skill = services.set_opportunity_skill(ctx, opportunity_id, **form.cleaned_data)
        return ok_response("Skill requirement saved", {"skill": serialize_opportunity_skill(skill)})


class OpportunitySkillRemoveAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/opportunities/<opportunity_id>/skills/remove/ with skill_name"""

    rate_limit_action = "opportunity_skill"

    def handle(self, request, ctx, payload, opportunity_id):
        form = SkillNameForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        skill_name = form.cleaned_data["skill_name"]
        if not services.remove_opportunity_skill(ctx, opportunity_id, skill_name):
            return error_response("SKILL_NOT_FOUND", "Skill requirement not found", 404)
        return ok_response(f'Required skill "{skill_name}" removed', {"skill_name": skill_name})


# =============================================================================
# Background checks
# =============================================================================


class BackgroundCheckReviewAPIView(VolunteerAPIView):
    """POST <slug>/volunteers/volunteers/<volunteer_id>/background-check/"""

    rate_limit_action = "review_background_check"

    def handle(self, request, ctx, payload, volunteer_id):
        form = BackgroundCheckReviewForm(payload)
        if not form.is_valid():
            return form_error_response(form)
        volunteer = services.review_background_check(
            ctx,
            volunteer_id,
            form.cleaned_data["status"],
            form.cleaned_data.get("expiry"),
        )
        return ok_response(
            "Background check updated",
            {"background_check": serialize_background_check(volunteer)},
        )


@method_decorator(csrf_exempt, name="dispatch")
class BackgroundCheckConfirmAPIView(VolunteerAPIView):
    """
    POST background-check/confirm/<token>/

    Public: the token in the emailed link is the only credential, so the
    view is CSRF exempt and works without a session cookie. Rate limited
    per token prefix so one link cannot be hammered.
    """

    rate_limit_action = "confirm_background_check"

    def post(self, request, token):
        check_rate_limit(self.rate_limit_action, f"bgcheck_confirm_{str(token)[:8]}")
        volunteer, already_confirmed = services.confirm_background_check(token)
        message = (
            "Background check already confirmed"
            if already_confirmed
            else "Background check confirmed. Staff will review it shortly."
        )
        return ok_response(
            message,
            {
                "volunteer_name": volunteer.name or "Volunteer",
                "organization_name": volunteer.organization.name,
                "already_confirmed": already_confirmed,
            },
        )
