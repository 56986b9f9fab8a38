from django.db import models

from ..managers import TenantManager
from .organization import Organization


# ---------- Customer ----------
# Counterparty of receivable invoices and received payments
class Customer(models.Model):
    # Multi-tenant: every customer belongs to a single organization
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE)

    # The customer's legal or trade name
    name = models.CharField(max_length=200)

    # Optional contact for billing/communication
    contact_email = models.EmailField(null=True, blank=True)

    # Standard credit terms
    payment_terms_days = models.IntegerField(default=30)
    """ Example: If terms = 30 → invoice due 30 days after issue. """

    # Receivable control account used by the accrual hook for this customer
    default_ar_account = models.ForeignKey(
        "GLAccount",
        null=True,
        blank=True,
        # customer record survives, it just loses its default AR link
        on_delete=models.SET_NULL,
        related_name="customers_default_ar",
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["organization", "name"], name="customer_org_name_idx"),
        ]
        # Enforce uniqueness per tenant
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "name"], name="uq_org_customer_name"
            ),
        ]

    def __str__(self):
        return self.name


# ---------- Supplier ----------
# Counterparty of payable invoices and sent payments
class Supplier(models.Model):
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    contact_email = models.EmailField(null=True, blank=True)
    payment_terms_days = models.IntegerField(default=30)

    # Payable control account used by the accrual hook for this supplier
    default_ap_account = models.ForeignKey(
        "GLAccount",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="suppliers_default_ap",
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["organization", "name"], name="supplier_org_name_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "name"], name="uq_org_supplier_name"
            ),
        ]

    def __str__(self):
        return self.name
