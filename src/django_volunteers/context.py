"""Tenant context for volunteer services.

Every service takes an explicit TenantContext instead of reading the
organization from a request or thread-local. Views build one with
resolve_tenant().

Usage:
    ctx = resolve_tenant(request.user, slug)
    require_manager(ctx)
    shift = create_shift(ctx, volunteer_id=..., opportunity_id=..., ...)
"""

from dataclasses import dataclass

from .exceptions import TenantAccessDenied
from .models import Organization, OrganizationMembership


@dataclass(frozen=True)
class TenantContext:
    """The organization a user is acting within, and their role there."""

    organization: Organization
    user: object = None
    role: str = OrganizationMembership.Role.MEMBER

    @property
    def slug(self) -> str:
        return self.organization.slug

    @property
    def is_superuser(self) -> bool:
        return bool(getattr(self.user, "is_superuser", False))

    @property
    def can_manage_volunteers(self) -> bool:
        return self.is_superuser or self.role in OrganizationMembership.MANAGER_ROLES


def resolve_tenant(user, slug: str) -> TenantContext:
    """Build a TenantContext for a user acting within the organization `slug`.

    Superusers act as OWNER in every active organization.

    Raises:
        TenantAccessDenied: If the user is anonymous, the organization is
            unknown or inactive, or the user has no membership in it.
    """
    if user is None or not user.is_authenticated:
        raise TenantAccessDenied("Authentication required")

    try:
        organization = Organization.objects.get(slug=slug, is_active=True)
    except Organization.DoesNotExist:
        raise TenantAccessDenied("Organization not found")

    if user.is_superuser:
        return TenantContext(
            organization=organization,
            user=user,
            role=OrganizationMembership.Role.OWNER,
        )

    membership = (
        OrganizationMembership.objects
        .filter(organization=organization, user=user)
        .only("role")
        .first()
    )
    if membership is None:
        raise TenantAccessDenied("Not a member of this organization")

    return TenantContext(organization=organization, user=user, role=membership.role)


def require_manager(ctx: TenantContext) -> TenantContext:
    """Raise TenantAccessDenied unless the context may manage volunteers."""
    if not ctx.can_manage_volunteers:
        raise TenantAccessDenied("Volunteer management permission required")
    return ctx
