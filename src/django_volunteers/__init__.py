"""
django-volunteers: Multi-tenant volunteer scheduling for Django.

Provides:
- Organization, Volunteer, ServingOpportunity and VolunteerShift models
- A shift scheduling validator (conflicts, blackouts, background checks,
  skills, capacity) that runs inside a single locked transaction
- Optimistic-locked shift updates and status transitions
- Volunteer availability, skills and background-check services
- JSON API views with per-tenant permission checks and rate limiting
"""

__version__ = "0.1.0"

__all__ = [
    # Context
    "TenantContext",
    "resolve_tenant",
    # Exceptions
    "VolunteersError",
    "SchedulingError",
    "SchedulingConflict",
    "StaleShiftError",
    "ShiftNotFound",
    # Reasons
    "SchedulingFailure",
    "failure_message",
]


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in ("TenantContext", "resolve_tenant"):
        from django_volunteers import context
        return getattr(context, name)
    if name in (
        "VolunteersError",
        "SchedulingError",
        "SchedulingConflict",
        "StaleShiftError",
        "ShiftNotFound",
    ):
        from django_volunteers import exceptions
        return getattr(exceptions, name)
    if name in ("SchedulingFailure", "failure_message"):
        from django_volunteers import reasons
        return getattr(reasons, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
