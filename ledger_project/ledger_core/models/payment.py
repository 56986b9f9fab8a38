from decimal import Decimal

from django.conf import settings
from django.db import models

from ..exceptions import InvalidStateError
from ..managers import TenantManager
from ..references import party_from_columns
from .banking import BankAccount
from .invoice import PARTY_TYPES, Invoice
from .organization import Organization
from .party import Customer, Supplier

PAYMENT_TYPES = [
    ("received", "Received"),  # from a customer
    ("sent", "Sent"),          # to a supplier
]

# customer → received, supplier → sent
PAYMENT_TYPE_FOR_PARTY_TYPE = {
    "customer": "received",
    "supplier": "sent",
}

PAYMENT_METHODS = [
    # Keeps payment method standardized across records
    ("bank_transfer", "Bank Transfer"),
    ("check", "Check"),
    ("cash", "Cash"),
    ("card", "Card"),
    ("online", "Online"),
]

PAYMENT_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("cleared", "Cleared"),
    ("bounced", "Bounced"),
    ("cancelled", "Cancelled"),
]


class Payment(models.Model):  # Money in (received) or out (sent)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE)
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPES)

    # Same party encoding as Invoice
    party_type = models.CharField(max_length=20, choices=PARTY_TYPES)
    customer = models.ForeignKey(
        Customer, null=True, blank=True,
        on_delete=models.PROTECT, related_name="payments",
    )
    supplier = models.ForeignKey(
        Supplier, null=True, blank=True,
        on_delete=models.PROTECT, related_name="payments",
    )

    payment_number = models.CharField(max_length=50)  # PAY-000001
    payment_date = models.DateTimeField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHODS)
    reference_number = models.CharField(max_length=100, null=True, blank=True)

    # Where the money moved (optional)
    bank_account = models.ForeignKey(
        BankAccount,
        null=True,
        blank=True,
        on_delete=models.PROTECT,  # prevent BankAccount deletion if payments exist
        related_name="payments",
    )
    status = models.CharField(
        max_length=20, choices=PAYMENT_STATUS_CHOICES, default="pending"
    )
    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ["-payment_date", "-id"]
        indexes = [
            models.Index(fields=["organization", "payment_type"], name="payment_org_type_idx"),
            models.Index(fields=["organization", "payment_date"], name="payment_org_date_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "payment_number"],
                name="uq_payment_org_number",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="payment_amount_positive"
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(party_type="customer", customer__isnull=False, supplier__isnull=True) |
                    models.Q(party_type="supplier", supplier__isnull=False, customer__isnull=True)
                ),
                name="payment_party_matches_type",
            ),
        ]

    def __str__(self):
        return f"{self.payment_number} {self.amount} [{self.status}]"

    @property
    def party(self):
        return party_from_columns(self.party_type, self.customer_id, self.supplier_id)

    def allocated_total(self):
        aggs = self.allocations.aggregate(total=models.Sum("allocated_amount"))
        return aggs["total"] or Decimal("0.00")


class PaymentAllocation(models.Model):
    """
    Join row: part of a payment applied to one invoice.
    Append-only: once written, an allocation is never edited.
    """

    payment = models.ForeignKey(
        Payment, on_delete=models.CASCADE, related_name="allocations"
    )
    invoice = models.ForeignKey(
        Invoice, on_delete=models.PROTECT, related_name="allocations"
    )
    allocated_amount = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["invoice"], name="allocation_invoice_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(allocated_amount__gt=0),
                name="allocation_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.payment_id} → {self.invoice_id}: {self.allocated_amount}"

    def save(self, *args, **kwargs):
        if self.pk and not kwargs.get("force_insert"):
            raise InvalidStateError("Payment allocations are append-only.")
        return super().save(*args, **kwargs)
