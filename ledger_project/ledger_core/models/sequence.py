from django.db import models

from .organization import Organization


# ---------- Per-organization document counters ----------
class OrganizationSequence(models.Model):
    """
    Monotonic counter per (organization, name).
    - name is the document family ("journal_entry", "payment")
    - rows are only ever read under select_for_update()
      (see services.numbering.next_number)
    """

    organization = models.ForeignKey(
        Organization, on_delete=models.CASCADE, related_name="sequences"
    )
    name = models.CharField(max_length=50)
    last_value = models.PositiveBigIntegerField(default=0)

    class Meta:
        constraints = [
            # one counter per document family per tenant
            models.UniqueConstraint(
                fields=["organization", "name"], name="uq_org_sequence_name"
            )
        ]

    def __str__(self):
        return f"{self.organization_id}:{self.name}={self.last_value}"
