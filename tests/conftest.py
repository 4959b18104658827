"""Shared fixtures for django-volunteers tests."""

from datetime import date, time

import pytest


SHIFT_DATE = date(2025, 6, 1)


@pytest.fixture(autouse=True)
def clear_cache():
    """Rate-limit counters live in the cache; start every test empty."""
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def org(db):
    from django_volunteers.models import Organization
    return Organization.objects.create(name="Grace Community", slug="grace")


@pytest.fixture
def other_org(db):
    from django_volunteers.models import Organization
    return Organization.objects.create(name="Hope Chapel", slug="hope")


def _user_with_role(username, organization, role):
    from django.contrib.auth import get_user_model
    from django_volunteers.models import OrganizationMembership

    User = get_user_model()
    user = User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass123",
    )
    OrganizationMembership.objects.create(organization=organization, user=user, role=role)
    return user


@pytest.fixture
def admin_user(org):
    """Org admin; may manage volunteers."""
    return _user_with_role("admin", org, "ADMIN")


@pytest.fixture
def member_user(org):
    """Plain member; may not manage volunteers."""
    return _user_with_role("member", org, "MEMBER")


@pytest.fixture
def other_admin(other_org):
    return _user_with_role("otheradmin", other_org, "ADMIN")


@pytest.fixture
def ctx(org, admin_user):
    from django_volunteers.context import TenantContext
    return TenantContext(organization=org, user=admin_user, role="ADMIN")


@pytest.fixture
def other_ctx(other_org, other_admin):
    from django_volunteers.context import TenantContext
    return TenantContext(organization=other_org, user=other_admin, role="ADMIN")


@pytest.fixture
def volunteer(org):
    from django_volunteers.models import Volunteer
    return Volunteer.objects.create(organization=org, name="Ruth Miller", email="ruth@example.com")


@pytest.fixture
def second_volunteer(org):
    from django_volunteers.models import Volunteer
    return Volunteer.objects.create(organization=org, name="Boaz Turner")


@pytest.fixture
def other_volunteer(other_org):
    from django_volunteers.models import Volunteer
    return Volunteer.objects.create(organization=other_org, name="Naomi Price")


@pytest.fixture
def opportunity(org):
    from django_volunteers.models import ServingOpportunity
    return ServingOpportunity.objects.create(
        organization=org,
        name="Greeter",
        category="Hospitality",
        volunteers_needed=2,
    )


@pytest.fixture
def kids_opportunity(org):
    from django_volunteers.models import ServingOpportunity
    return ServingOpportunity.objects.create(
        organization=org,
        name="Nursery Helper",
        category="Kids Ministry - Nursery",
        volunteers_needed=3,
    )


@pytest.fixture
def location(org):
    from django_volunteers.models import Location
    return Location.objects.create(organization=org, name="Main Campus")


@pytest.fixture
def other_location(other_org):
    from django_volunteers.models import Location
    return Location.objects.create(organization=other_org, name="Hope Campus")


@pytest.fixture
def schedule(ctx):
    """Factory: schedule a shift through the service with sensible defaults."""
    from django_volunteers.services import create_shift

    def _schedule(volunteer, opportunity, start=time(9, 0), end=time(10, 0), shift_date=SHIFT_DATE, **kwargs):
        return create_shift(
            kwargs.pop("ctx", ctx),
            volunteer_id=volunteer.pk,
            opportunity_id=opportunity.pk,
            shift_date=shift_date,
            start_time=start,
            end_time=end,
            **kwargs,
        )

    return _schedule


class SerializationFailure(Exception):
    """Stands in for the driver error PostgreSQL raises under SERIALIZABLE."""

    sqlstate = "40001"


def serialization_failure():
    from django.db import OperationalError

    exc = OperationalError("could not serialize access due to concurrent update")
    exc.__cause__ = SerializationFailure()
    return exc


def abort_inserts(monkeypatch):
    """Make shift inserts fail the way a lost SERIALIZABLE race does."""
    from django_volunteers.models import VolunteerShift

    def create(**kwargs):
        raise serialization_failure()

    monkeypatch.setattr(VolunteerShift.objects, "create", create)


def stale_first_read(monkeypatch, name, stale_value):
    """
    Replace a selector so its first call returns what a transaction saw
    before the competing request committed; later calls read the database.
    """
    from django_volunteers import selectors

    real = getattr(selectors, name)
    calls = []

    def read(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return stale_value
        return real(*args, **kwargs)

    monkeypatch.setattr(selectors, name, read)
    return calls
