"""
Explicit tenant context for ledger calls.

The REST layer authenticates the caller and resolves the organization, then
builds a TenantContext and passes it as the first argument of every service
function. Nothing in the core reads the tenant from ambient state.

    ctx = TenantContext(organization=request.organization, user=request.user)
    invoice = create_invoice(ctx, ...)
"""
from typing import NamedTuple, Optional


class TenantContext(NamedTuple):
    """Immutable tenant context for one core call."""

    organization: "Organization"  # noqa: F821
    user: Optional["User"] = None  # noqa: F821

    @property
    def organization_id(self) -> int:
        return self.organization.pk

    @classmethod
    def for_ids(cls, organization_id: int, user_id: Optional[int] = None) -> "TenantContext":
        """Rebuild a context from primary keys (Celery task arguments)."""
        from django.contrib.auth import get_user_model

        from .models import Organization

        organization = Organization.objects.get(pk=organization_id)
        user = None
        if user_id is not None:
            user = get_user_model().objects.get(pk=user_id)
        return cls(organization=organization, user=user)
