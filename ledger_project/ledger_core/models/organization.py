from django.db import models


# ---------- Tenant / Organization ----------
class Organization(models.Model):

    """Tenant. Every ledger row is partitioned by organization."""
    # Store organization's full display name
    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two organizations can share a slug
    )

    # ISO 4217 code used when an invoice/payment does not name one
    default_currency = models.CharField(max_length=3, default="USD")

    # Store timestamp when the record is first created
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
