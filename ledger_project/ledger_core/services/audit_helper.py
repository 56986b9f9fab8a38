import logging
from typing import Optional

from ..models import AuditLog

logger = logging.getLogger(__name__)


def log_action(
    *,
    action: str,
    instance,
    ctx=None,
    user=None,
    organization=None,
    changes: Optional[dict] = None,
):
    """
    Central audit logger.
    Writes inside the caller's transaction, so a rolled back
    operation leaves no audit row behind.
    """
    if ctx is not None:
        organization = organization or ctx.organization
        user = user or ctx.user

    if organization is None:
        organization = getattr(instance, "organization", None)

    entry = AuditLog.objects.create(
        organization=organization,
        user=user,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=changes,
    )
    logger.debug(
        "audit org=%s action=%s %s(%s)",
        getattr(organization, "pk", None), action, entry.object_type, entry.object_id,
    )
    return entry
