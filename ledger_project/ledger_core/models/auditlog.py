from django.conf import settings  # To access global project settings
from django.db import models

from ..managers import TenantManager
from .organization import Organization


# ---------- Audit / Event log ----------
class AuditLog(models.Model):  # accountability and traceability across the ledger
    # Associate log entry with a tenant
    organization = models.ForeignKey(
        Organization,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    # Which user performed the action
    # (Nullable in case the action was automated, e.g. a Celery retry)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    # Type of event being logged
    action = models.CharField(
        max_length=50
    )  # create, update, delete, post, approve, reverse, allocate, cancel
    # What kind of object was affected
    object_type = models.CharField(
        max_length=100
    )  # (e.g., "Invoice", "JournalEntry", "Payment")
    object_id = models.CharField(max_length=100)
    # before/after details of what changed, in JSON format
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ["-created_at", "-id"]
        # Filter logs quickly
        indexes = [
            models.Index(fields=["organization", "created_at"], name="auditlog_org_created_idx"),
            models.Index(fields=["organization", "object_type", "object_id"], name="auditlog_org_object_idx"),
        ]

    def __str__(self):
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {self.user} {self.action} {self.object_type}({self.object_id})"
