from django.db import models

# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to an organization
# -----------------------------------------
# Define subclass of Django's QuerySet
class TenantQuerySet(models.QuerySet):
    def for_organization(self, organization):       # Add queryset helper
        return self.filter(organization=organization)  # Apply filter

    def active(self, organization):
        return self.filter(
                            organization=organization,  # enforce tenant scoping
                            is_active=True              # only fetch active records
                        )
    # Enables query:
    # GLAccount.objects.active(ctx.organization)


# Attach TenantQuerySet to .objects
class TenantManager(models.Manager):

    def get_queryset(self):  # every model gets TenantQuerySet (.for_organization() always available)
        return TenantQuerySet(self.model, using=self._db)

    def for_organization(self, organization):  # call for_organization() directly on objects
        return self.get_queryset().for_organization(organization)

    def active(self, organization):
        return self.get_queryset().active(organization)


# ---------- Invoice specific helpers ----------
# Statuses an invoice can be "overdue" from (read-time only, never stored)
OVERDUE_CANDIDATE_STATUSES = ("sent", "approved", "partial")


class InvoiceQuerySet(TenantQuerySet):
    def overdue(self, now):
        # Compare due_date against the caller's "now"; no sweeping job
        return self.filter(
            status__in=OVERDUE_CANDIDATE_STATUSES,
            due_date__lt=now,
        )

    def unpaid(self):
        return self.exclude(payment_status="paid").exclude(status="cancelled")


class InvoiceManager(TenantManager):
    def get_queryset(self):
        return InvoiceQuerySet(self.model, using=self._db)
