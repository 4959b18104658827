"""Tests for create_shift() and update_shift()."""

import logging
import uuid
from datetime import date, time

import pytest
from django.db import OperationalError
from django.db.models import F
from django.test import override_settings
from freezegun import freeze_time

from django_volunteers.exceptions import (
    SchedulingConflict,
    SchedulingError,
    ShiftNotEditable,
    ShiftNotFound,
    StaleShiftError,
)
from django_volunteers.models import (
    BackgroundCheckStatus,
    OpportunitySkill,
    ShiftStatus,
    Volunteer,
    VolunteerShift,
    VolunteerSkill,
)
from django_volunteers.reasons import SchedulingFailure, failure_message
from django_volunteers.services import (
    add_blackout_date,
    cancel_shift,
    create_shift,
    mark_no_show,
    update_shift,
)

from .conftest import SHIFT_DATE, abort_inserts, serialization_failure, stale_first_read


def assert_rejected(excinfo, reason):
    assert excinfo.value.reason == reason


@pytest.mark.django_db
class TestCreateShift:
    """Happy path and record shape."""

    def test_creates_scheduled_shift_at_version_one(self, ctx, volunteer, opportunity, location, schedule):
        """A valid request persists a SCHEDULED shift with version 1."""
        shift = schedule(volunteer, opportunity, location_id=location.pk, notes="Front door")

        assert shift.status == ShiftStatus.SCHEDULED
        assert shift.version == 1
        assert shift.organization == ctx.organization
        assert shift.location == location
        assert shift.notes == "Front door"
        assert shift.scheduled_by == ctx.user
        assert VolunteerShift.objects.count() == 1

    def test_location_is_optional(self, volunteer, opportunity, schedule):
        shift = schedule(volunteer, opportunity)
        assert shift.location is None

    def test_success_is_logged(self, volunteer, opportunity, schedule, caplog):
        with caplog.at_level(logging.INFO, logger="django_volunteers.services"):
            shift = schedule(volunteer, opportunity)
        assert f"Shift scheduled: shift={shift.pk}" in caplog.text


@pytest.mark.django_db
class TestOwnershipChecks:
    """Rows of other organizations look exactly like missing rows."""

    def test_volunteer_of_other_org(self, volunteer, other_volunteer, opportunity, schedule):
        with pytest.raises(SchedulingError) as excinfo:
            schedule(other_volunteer, opportunity)
        assert_rejected(excinfo, SchedulingFailure.VOLUNTEER_NOT_FOUND)

    def test_unknown_volunteer(self, ctx, opportunity):
        with pytest.raises(SchedulingError) as excinfo:
            create_shift(
                ctx, volunteer_id=uuid.uuid4(), opportunity_id=opportunity.pk,
                shift_date=SHIFT_DATE, start_time=time(9), end_time=time(10),
            )
        assert_rejected(excinfo, SchedulingFailure.VOLUNTEER_NOT_FOUND)

    def test_malformed_volunteer_id(self, ctx, opportunity):
        with pytest.raises(SchedulingError) as excinfo:
            create_shift(
                ctx, volunteer_id="not-a-uuid", opportunity_id=opportunity.pk,
                shift_date=SHIFT_DATE, start_time=time(9), end_time=time(10),
            )
        assert_rejected(excinfo, SchedulingFailure.VOLUNTEER_NOT_FOUND)

    def test_opportunity_of_other_org(self, other_ctx, other_volunteer, opportunity, schedule):
        with pytest.raises(SchedulingError) as excinfo:
            schedule(other_volunteer, opportunity, ctx=other_ctx)
        assert_rejected(excinfo, SchedulingFailure.OPPORTUNITY_NOT_FOUND)

    def test_inactive_opportunity(self, volunteer, opportunity, schedule):
        opportunity.is_active = False
        opportunity.save()
        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity)
        assert_rejected(excinfo, SchedulingFailure.OPPORTUNITY_NOT_FOUND)

    def test_inactive_volunteer(self, volunteer, opportunity, schedule):
        """Deactivated volunteers are refused like unknown ones."""
        volunteer.is_active = False
        volunteer.save()
        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity)
        assert_rejected(excinfo, SchedulingFailure.VOLUNTEER_NOT_FOUND)

    def test_location_of_other_org(self, volunteer, opportunity, other_location, schedule):
        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity, location_id=other_location.pk)
        assert_rejected(excinfo, SchedulingFailure.INVALID_LOCATION)

    def test_inactive_location(self, volunteer, opportunity, location, schedule):
        location.is_active = False
        location.save()
        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity, location_id=location.pk)
        assert_rejected(excinfo, SchedulingFailure.INVALID_LOCATION)

    def test_lookup_failures_share_one_message(self):
        """A client cannot tell which id belonged to another organization."""
        messages = {
            failure_message(SchedulingFailure.VOLUNTEER_NOT_FOUND),
            failure_message(SchedulingFailure.OPPORTUNITY_NOT_FOUND),
            failure_message(SchedulingFailure.INVALID_LOCATION),
        }
        assert len(messages) == 1

    def test_failed_request_creates_nothing(self, other_volunteer, opportunity, schedule):
        with pytest.raises(SchedulingError):
            schedule(other_volunteer, opportunity)
        assert VolunteerShift.objects.count() == 0


@pytest.mark.django_db
class TestTimeChecks:

    def test_end_before_start(self, volunteer, opportunity, schedule):
        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity, start=time(10, 0), end=time(9, 0))
        assert_rejected(excinfo, SchedulingFailure.INVALID_TIME_RANGE)

    def test_zero_length(self, volunteer, opportunity, schedule):
        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity, start=time(9, 0), end=time(9, 0))
        assert_rejected(excinfo, SchedulingFailure.INVALID_TIME_RANGE)

    def test_overlap_is_conflict_and_adjacent_is_not(self, volunteer, opportunity, kids_opportunity, schedule):
        """09:00-10:00 booked: 09:30-10:30 conflicts, 10:00-11:00 is accepted."""
        opportunity.volunteers_needed = 5
        opportunity.save()
        schedule(volunteer, opportunity, start=time(9, 0), end=time(10, 0))

        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity, start=time(9, 30), end=time(10, 30))
        assert_rejected(excinfo, SchedulingFailure.TIME_CONFLICT)

        shift = schedule(volunteer, opportunity, start=time(10, 0), end=time(11, 0))
        assert shift.start_time == time(10, 0)

    def test_conflict_spans_opportunities(self, volunteer, opportunity, org, schedule):
        """A volunteer cannot be in two roles at once."""
        from django_volunteers.models import ServingOpportunity
        ushers = ServingOpportunity.objects.create(organization=org, name="Usher", volunteers_needed=4)
        schedule(volunteer, opportunity, start=time(9, 0), end=time(10, 0))

        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, ushers, start=time(9, 15), end=time(9, 45))
        assert_rejected(excinfo, SchedulingFailure.TIME_CONFLICT)

    def test_other_date_does_not_conflict(self, volunteer, opportunity, schedule):
        schedule(volunteer, opportunity)
        shift = schedule(volunteer, opportunity, shift_date=date(2025, 6, 8))
        assert shift.shift_date == date(2025, 6, 8)

    def test_cancelled_shift_frees_the_slot(self, ctx, volunteer, opportunity, schedule):
        first = schedule(volunteer, opportunity)
        cancel_shift(ctx, first.pk, first.version, reason="Sick")

        second = schedule(volunteer, opportunity)
        assert second.pk != first.pk

    def test_no_show_frees_the_slot(self, ctx, volunteer, opportunity, schedule):
        first = schedule(volunteer, opportunity)
        mark_no_show(ctx, first.pk, first.version)

        assert schedule(volunteer, opportunity).status == ShiftStatus.SCHEDULED


@pytest.mark.django_db
class TestBlackoutCheck:

    def test_date_inside_blackout(self, ctx, volunteer, opportunity, schedule):
        add_blackout_date(ctx, volunteer.pk, date(2025, 5, 30), date(2025, 6, 2), reason="Vacation")

        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity)
        assert_rejected(excinfo, SchedulingFailure.VOLUNTEER_UNAVAILABLE)

    def test_end_date_is_inclusive(self, ctx, volunteer, opportunity, schedule):
        add_blackout_date(ctx, volunteer.pk, date(2025, 5, 25), SHIFT_DATE)

        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity)
        assert_rejected(excinfo, SchedulingFailure.VOLUNTEER_UNAVAILABLE)

    def test_open_ended_blackout_rejects_later_dates(self, ctx, volunteer, opportunity, schedule):
        """end_date None blocks every date on or after the start."""
        add_blackout_date(ctx, volunteer.pk, SHIFT_DATE)

        for shift_date in (SHIFT_DATE, date(2025, 12, 25), date(2030, 1, 1)):
            with pytest.raises(SchedulingError) as excinfo:
                schedule(volunteer, opportunity, shift_date=shift_date)
            assert_rejected(excinfo, SchedulingFailure.VOLUNTEER_UNAVAILABLE)

    def test_date_before_blackout_is_fine(self, ctx, volunteer, opportunity, schedule):
        add_blackout_date(ctx, volunteer.pk, date(2025, 6, 2))
        assert schedule(volunteer, opportunity).shift_date == SHIFT_DATE

    def test_other_volunteers_blackout_is_ignored(self, ctx, volunteer, second_volunteer, opportunity, schedule):
        add_blackout_date(ctx, second_volunteer.pk, SHIFT_DATE)
        assert schedule(volunteer, opportunity).volunteer == volunteer

    def test_conflict_is_reported_before_blackout(self, ctx, volunteer, opportunity, schedule):
        opportunity.volunteers_needed = 5
        opportunity.save()
        schedule(volunteer, opportunity)
        add_blackout_date(ctx, volunteer.pk, SHIFT_DATE)

        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity, start=time(9, 30), end=time(10, 30))
        assert_rejected(excinfo, SchedulingFailure.TIME_CONFLICT)


@pytest.mark.django_db
class TestBackgroundCheckGate:

    @freeze_time("2025-05-20")
    def test_expired_check_reported_regardless_of_skills(self, volunteer, kids_opportunity, schedule):
        """Kids Ministry role, EXPIRED status with past expiry, and a skill gap: EXPIRED wins."""
        OpportunitySkill.objects.create(opportunity=kids_opportunity, skill_name="CPR", is_required=True)
        volunteer.background_check_status = BackgroundCheckStatus.EXPIRED
        volunteer.background_check_expiry = date(2025, 1, 31)
        volunteer.save()

        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, kids_opportunity)
        assert_rejected(excinfo, SchedulingFailure.BACKGROUND_CHECK_EXPIRED)

    @freeze_time("2025-05-20")
    def test_cleared_but_lapsed(self, volunteer, kids_opportunity, schedule):
        volunteer.background_check_status = BackgroundCheckStatus.CLEARED
        volunteer.background_check_expiry = date(2025, 5, 19)
        volunteer.save()

        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, kids_opportunity)
        assert_rejected(excinfo, SchedulingFailure.BACKGROUND_CHECK_EXPIRED)

    def test_not_started_requires_check(self, volunteer, kids_opportunity, schedule):
        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, kids_opportunity)
        assert_rejected(excinfo, SchedulingFailure.BACKGROUND_CHECK_REQUIRED)

    def test_pending_review_requires_check(self, volunteer, kids_opportunity, schedule):
        volunteer.background_check_status = BackgroundCheckStatus.PENDING_REVIEW
        volunteer.save()

        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, kids_opportunity)
        assert_rejected(excinfo, SchedulingFailure.BACKGROUND_CHECK_REQUIRED)

    @freeze_time("2025-05-20")
    def test_cleared_and_current_passes(self, volunteer, kids_opportunity, schedule):
        volunteer.background_check_status = BackgroundCheckStatus.CLEARED
        volunteer.background_check_expiry = date(2026, 5, 1)
        volunteer.save()

        assert schedule(volunteer, kids_opportunity).opportunity == kids_opportunity

    def test_non_sensitive_category_ignores_status(self, volunteer, opportunity, schedule):
        assert volunteer.background_check_status == BackgroundCheckStatus.NOT_STARTED
        assert schedule(volunteer, opportunity).opportunity == opportunity

    @override_settings(VOLUNTEERS_SENSITIVE_CATEGORIES=["Hospitality"])
    def test_sensitive_categories_are_configurable(self, volunteer, opportunity, kids_opportunity, schedule):
        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity)
        assert_rejected(excinfo, SchedulingFailure.BACKGROUND_CHECK_REQUIRED)

        assert schedule(volunteer, kids_opportunity, start=time(11), end=time(12)).pk


@pytest.mark.django_db
class TestSkillCheck:

    def test_missing_required_skill(self, volunteer, opportunity, schedule):
        OpportunitySkill.objects.create(opportunity=opportunity, skill_name="Sound Board", is_required=True)

        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity)
        assert_rejected(excinfo, SchedulingFailure.MISSING_REQUIRED_SKILLS)
        assert "Sound Board" in str(excinfo.value)

    def test_declared_skill_passes(self, volunteer, opportunity, schedule):
        OpportunitySkill.objects.create(opportunity=opportunity, skill_name="Sound Board", is_required=True)
        VolunteerSkill.objects.create(volunteer=volunteer, skill_name="Sound Board")

        assert schedule(volunteer, opportunity).pk

    def test_preferred_skill_is_not_enforced(self, volunteer, opportunity, schedule):
        OpportunitySkill.objects.create(opportunity=opportunity, skill_name="Spanish", is_required=False)
        assert schedule(volunteer, opportunity).pk


@pytest.mark.django_db
class TestCapacityCheck:

    def test_n_plus_one_is_full(self, org, opportunity, schedule):
        """volunteers_needed=2: the third active shift on the date is rejected."""
        people = [Volunteer.objects.create(organization=org, name=f"V{i}") for i in range(3)]
        schedule(people[0], opportunity)
        schedule(people[1], opportunity)

        with pytest.raises(SchedulingError) as excinfo:
            schedule(people[2], opportunity)
        assert_rejected(excinfo, SchedulingFailure.OPPORTUNITY_FULL)
        assert VolunteerShift.objects.filter(opportunity=opportunity).count() == 2

    def test_cancellation_frees_capacity(self, ctx, org, opportunity, schedule):
        people = [Volunteer.objects.create(organization=org, name=f"V{i}") for i in range(3)]
        first = schedule(people[0], opportunity)
        schedule(people[1], opportunity)
        cancel_shift(ctx, first.pk, first.version)

        assert schedule(people[2], opportunity).status == ShiftStatus.SCHEDULED

    def test_capacity_is_per_date(self, org, opportunity, schedule):
        people = [Volunteer.objects.create(organization=org, name=f"V{i}") for i in range(3)]
        schedule(people[0], opportunity)
        schedule(people[1], opportunity)

        assert schedule(people[2], opportunity, shift_date=date(2025, 6, 8)).pk

    def test_rejection_is_logged_without_personal_data(self, org, volunteer, opportunity, schedule, caplog):
        opportunity.volunteers_needed = 0
        opportunity.save()

        with caplog.at_level(logging.WARNING, logger="django_volunteers.services"):
            with pytest.raises(SchedulingError):
                schedule(volunteer, opportunity)

        assert "reason=OPPORTUNITY_FULL" in caplog.text
        assert "org=grace" in caplog.text
        assert volunteer.name not in caplog.text


@pytest.mark.django_db
class TestUpdateShift:

    def test_notes_only_bumps_version(self, ctx, volunteer, opportunity, schedule):
        shift = schedule(volunteer, opportunity)

        updated = update_shift(ctx, shift.pk, 1, notes="Bring badge")

        assert updated.notes == "Bring badge"
        assert updated.version == 2

    def test_version_increments_by_exactly_one(self, ctx, volunteer, opportunity, schedule):
        shift = schedule(volunteer, opportunity)
        for expected in range(1, 5):
            shift = update_shift(ctx, shift.pk, expected, notes=f"edit {expected}")
            assert shift.version == expected + 1

    def test_stale_version(self, ctx, volunteer, opportunity, schedule):
        shift = schedule(volunteer, opportunity)
        update_shift(ctx, shift.pk, 1, notes="first writer")

        with pytest.raises(StaleShiftError) as excinfo:
            update_shift(ctx, shift.pk, 1, notes="second writer")

        assert excinfo.value.expected_version == 1
        assert excinfo.value.current_version == 2
        shift.refresh_from_db()
        assert shift.notes == "first writer"

    def test_bump_by_another_writer(self, ctx, volunteer, opportunity, schedule):
        """A version bump made outside the service makes the caller's version stale."""
        shift = schedule(volunteer, opportunity)
        VolunteerShift.objects.filter(pk=shift.pk).update(version=F("version") + 1)

        with pytest.raises(StaleShiftError):
            update_shift(ctx, shift.pk, 1, notes="late")

    def test_conditional_write_detects_race(self, ctx, volunteer, opportunity, schedule, monkeypatch):
        """A writer that commits between our read and our write leaves zero rows updated."""
        shift = schedule(volunteer, opportunity)
        snapshot = VolunteerShift.objects.get(pk=shift.pk)
        VolunteerShift.objects.filter(pk=shift.pk).update(version=2)
        monkeypatch.setattr("django_volunteers.services.selectors.get_shift", lambda org, pk: snapshot)

        with pytest.raises(StaleShiftError) as excinfo:
            update_shift(ctx, shift.pk, 1, notes="late")
        assert excinfo.value.current_version == 2

    def test_conditional_write_on_vanished_shift(self, ctx, volunteer, opportunity, schedule, monkeypatch):
        shift = schedule(volunteer, opportunity)
        snapshot = VolunteerShift.objects.get(pk=shift.pk)
        VolunteerShift.objects.filter(pk=shift.pk).delete()
        monkeypatch.setattr("django_volunteers.services.selectors.get_shift", lambda org, pk: snapshot)

        with pytest.raises(ShiftNotFound):
            update_shift(ctx, shift.pk, 1, notes="gone")

    def test_unknown_shift_is_not_stale(self, ctx):
        """Missing id raises ShiftNotFound, distinct from StaleShiftError."""
        with pytest.raises(ShiftNotFound):
            update_shift(ctx, uuid.uuid4(), 1, notes="x")

    def test_other_orgs_shift_is_not_found(self, ctx, other_ctx, volunteer, opportunity, schedule):
        shift = schedule(volunteer, opportunity)
        with pytest.raises(ShiftNotFound):
            update_shift(other_ctx, shift.pk, 1, notes="x")

    def test_unknown_field_rejected(self, ctx, volunteer, opportunity, schedule):
        shift = schedule(volunteer, opportunity)
        with pytest.raises(ValueError):
            update_shift(ctx, shift.pk, 1, status=ShiftStatus.COMPLETED)

    def test_extend_own_slot_does_not_conflict_with_itself(self, ctx, volunteer, opportunity, schedule):
        shift = schedule(volunteer, opportunity, start=time(9), end=time(10))

        updated = update_shift(ctx, shift.pk, 1, end_time=time(11, 0))

        assert updated.end_time == time(11, 0)
        assert updated.version == 2

    def test_reschedule_into_conflict(self, ctx, volunteer, opportunity, schedule):
        opportunity.volunteers_needed = 5
        opportunity.save()
        schedule(volunteer, opportunity, start=time(9), end=time(10))
        later = schedule(volunteer, opportunity, start=time(11), end=time(12))

        with pytest.raises(SchedulingError) as excinfo:
            update_shift(ctx, later.pk, 1, start_time=time(9, 30), end_time=time(10, 30))
        assert_rejected(excinfo, SchedulingFailure.TIME_CONFLICT)

        later.refresh_from_db()
        assert later.version == 1

    def test_reschedule_onto_blackout(self, ctx, volunteer, opportunity, schedule):
        shift = schedule(volunteer, opportunity)
        add_blackout_date(ctx, volunteer.pk, date(2025, 6, 8), date(2025, 6, 8))

        with pytest.raises(SchedulingError) as excinfo:
            update_shift(ctx, shift.pk, 1, shift_date=date(2025, 6, 8))
        assert_rejected(excinfo, SchedulingFailure.VOLUNTEER_UNAVAILABLE)

    def test_reschedule_onto_full_date(self, ctx, org, opportunity, schedule):
        people = [Volunteer.objects.create(organization=org, name=f"V{i}") for i in range(3)]
        schedule(people[0], opportunity, shift_date=date(2025, 6, 8))
        schedule(people[1], opportunity, shift_date=date(2025, 6, 8))
        moving = schedule(people[2], opportunity)

        with pytest.raises(SchedulingError) as excinfo:
            update_shift(ctx, moving.pk, 1, shift_date=date(2025, 6, 8))
        assert_rejected(excinfo, SchedulingFailure.OPPORTUNITY_FULL)

    def test_time_change_on_full_date_counts_itself_once(self, ctx, org, opportunity, schedule):
        people = [Volunteer.objects.create(organization=org, name=f"V{i}") for i in range(2)]
        schedule(people[0], opportunity)
        shift = schedule(people[1], opportunity)

        updated = update_shift(ctx, shift.pk, 1, start_time=time(8, 30))
        assert updated.start_time == time(8, 30)

    def test_invalid_time_range(self, ctx, volunteer, opportunity, schedule):
        shift = schedule(volunteer, opportunity)
        with pytest.raises(SchedulingError) as excinfo:
            update_shift(ctx, shift.pk, 1, end_time=time(8, 0))
        assert_rejected(excinfo, SchedulingFailure.INVALID_TIME_RANGE)

    def test_set_and_clear_location(self, ctx, volunteer, opportunity, location, schedule):
        shift = schedule(volunteer, opportunity)

        shift = update_shift(ctx, shift.pk, 1, location=location.pk)
        assert shift.location == location

        shift = update_shift(ctx, shift.pk, 2, location=None)
        assert shift.location is None
        assert shift.version == 3

    def test_foreign_location(self, ctx, volunteer, opportunity, other_location, schedule):
        shift = schedule(volunteer, opportunity)
        with pytest.raises(SchedulingError) as excinfo:
            update_shift(ctx, shift.pk, 1, location=other_location.pk)
        assert_rejected(excinfo, SchedulingFailure.INVALID_LOCATION)

    @pytest.mark.parametrize(
        "status",
        [ShiftStatus.COMPLETED, ShiftStatus.CANCELLED, ShiftStatus.NO_SHOW],
    )
    def test_finished_shift_cannot_be_rescheduled(self, ctx, volunteer, opportunity, schedule, status):
        shift = schedule(volunteer, opportunity)
        VolunteerShift.objects.filter(pk=shift.pk).update(status=status)

        with pytest.raises(ShiftNotEditable) as excinfo:
            update_shift(ctx, shift.pk, 1, shift_date=date(2025, 6, 8))
        assert excinfo.value.status == status

        shift.refresh_from_db()
        assert shift.shift_date == SHIFT_DATE
        assert shift.version == 1

    def test_finished_shift_cannot_move_location(self, ctx, volunteer, opportunity, location, schedule):
        shift = schedule(volunteer, opportunity)
        cancel_shift(ctx, shift.pk, 1)

        with pytest.raises(ShiftNotEditable):
            update_shift(ctx, shift.pk, 2, location=location.pk)

    def test_finished_shift_notes_can_change(self, ctx, volunteer, opportunity, schedule):
        shift = schedule(volunteer, opportunity)
        mark_no_show(ctx, shift.pk, 1)

        updated = update_shift(ctx, shift.pk, 2, notes="Called in sick afterwards")

        assert updated.notes == "Called in sick afterwards"
        assert updated.status == ShiftStatus.NO_SHOW
        assert updated.version == 3

    def test_finished_shift_unchanged_slot_is_not_a_reschedule(self, ctx, volunteer, opportunity, schedule):
        """Sending back the same date and times is a notes-only edit."""
        shift = schedule(volunteer, opportunity)
        cancel_shift(ctx, shift.pk, 1)

        updated = update_shift(
            ctx, shift.pk, 2,
            shift_date=SHIFT_DATE, start_time=time(9), end_time=time(10), notes="Rained out",
        )
        assert updated.notes == "Rained out"


@pytest.mark.django_db
class TestSerializationFailure:
    """A request aborted by SERIALIZABLE isolation is judged again after rollback."""

    def test_lost_race_for_last_seat_is_opportunity_full(
        self, ctx, volunteer, second_volunteer, opportunity, schedule, monkeypatch,
    ):
        opportunity.volunteers_needed = 1
        opportunity.save()
        schedule(volunteer, opportunity)
        calls = stale_first_read(monkeypatch, "active_shift_count", 0)
        abort_inserts(monkeypatch)

        with pytest.raises(SchedulingError) as excinfo:
            schedule(second_volunteer, opportunity)

        assert_rejected(excinfo, SchedulingFailure.OPPORTUNITY_FULL)
        assert len(calls) == 2
        assert VolunteerShift.objects.filter(volunteer=second_volunteer).count() == 0

    def test_lost_race_for_same_time_is_time_conflict(
        self, ctx, volunteer, opportunity, schedule, monkeypatch,
    ):
        opportunity.volunteers_needed = 5
        opportunity.save()
        schedule(volunteer, opportunity)
        stale_first_read(monkeypatch, "active_shifts_for_volunteer", VolunteerShift.objects.none())
        abort_inserts(monkeypatch)

        with pytest.raises(SchedulingError) as excinfo:
            schedule(volunteer, opportunity, start=time(9, 30), end=time(10, 30))

        assert_rejected(excinfo, SchedulingFailure.TIME_CONFLICT)

    def test_abort_with_slot_still_open_is_conflict(
        self, volunteer, opportunity, schedule, monkeypatch, caplog,
    ):
        abort_inserts(monkeypatch)
        with caplog.at_level(logging.WARNING, logger="django_volunteers.services"):
            with pytest.raises(SchedulingConflict) as excinfo:
                schedule(volunteer, opportunity)

        assert excinfo.value.volunteer_id == volunteer.pk
        assert "Shift scheduling conflict" in caplog.text
        assert VolunteerShift.objects.count() == 0

    def test_other_operational_errors_propagate(self, volunteer, opportunity, schedule, monkeypatch):
        def create(**kwargs):
            raise OperationalError("canceling statement due to lock timeout")

        monkeypatch.setattr(VolunteerShift.objects, "create", create)

        with pytest.raises(OperationalError):
            schedule(volunteer, opportunity)

    def test_update_lost_race_for_full_date(self, ctx, org, opportunity, schedule, monkeypatch):
        opportunity.volunteers_needed = 1
        opportunity.save()
        first, second = (Volunteer.objects.create(organization=org, name=f"V{i}") for i in range(2))
        schedule(first, opportunity, shift_date=date(2025, 6, 8))
        moving = schedule(second, opportunity)
        stale_first_read(monkeypatch, "active_shift_count", 0)

        def write(*args, **kwargs):
            raise serialization_failure()

        monkeypatch.setattr("django_volunteers.services._apply_versioned_update", write)

        with pytest.raises(SchedulingError) as excinfo:
            update_shift(ctx, moving.pk, 1, shift_date=date(2025, 6, 8))

        assert_rejected(excinfo, SchedulingFailure.OPPORTUNITY_FULL)
        moving.refresh_from_db()
        assert moving.shift_date == SHIFT_DATE

    def test_update_abort_with_slot_still_open_is_conflict(self, ctx, volunteer, opportunity, schedule, monkeypatch):
        shift = schedule(volunteer, opportunity)

        def write(*args, **kwargs):
            raise serialization_failure()

        monkeypatch.setattr("django_volunteers.services._apply_versioned_update", write)

        with pytest.raises(SchedulingConflict):
            update_shift(ctx, shift.pk, 1, start_time=time(8, 30))
