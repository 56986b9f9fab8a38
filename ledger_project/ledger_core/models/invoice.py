from decimal import Decimal

from django.conf import settings
from django.db import models

from ..managers import OVERDUE_CANDIDATE_STATUSES, InvoiceManager
from ..references import party_from_columns
from .account import GLAccount
from .organization import Organization
from .party import Customer, Supplier

INVOICE_TYPES = [
    ("receivable", "Receivable"),  # we bill a customer
    ("payable", "Payable"),        # a supplier bills us
]

PARTY_TYPES = [
    ("customer", "Customer"),
    ("supplier", "Supplier"),
]

# receivable ⇔ customer, payable ⇔ supplier
PARTY_TYPE_FOR_INVOICE_TYPE = {
    "receivable": "customer",
    "payable": "supplier",
}

INVOICE_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("sent", "Sent"),
    ("approved", "Approved"),
    ("partial", "Partially paid"),
    ("paid", "Paid"),
    ("overdue", "Overdue"),
    ("cancelled", "Cancelled"),
]
""" Workflow:
    draft      = editable, deletable.
    sent       = receivable issued to the customer.
    approved   = payable accepted for payment.
    partial    = only set when the ledger is configured to track it.
    paid       = fully settled (entered only through payment allocation).
    overdue    = kept for data compatibility; computed at read time instead.
    cancelled  = void, no allocations. """

PAYMENT_STATUS_CHOICES = [
    ("unpaid", "Unpaid"),
    ("partially_paid", "Partially paid"),
    ("paid", "Paid"),
]


class Invoice(models.Model):  # Unified receivable/payable invoice

    # Invoice belongs to one organization (multi-tenant)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE)

    invoice_type = models.CharField(max_length=20, choices=INVOICE_TYPES)

    # Polymorphic party: exactly one of customer/supplier, keyed by party_type.
    # Services read/write it through references.Party only.
    party_type = models.CharField(max_length=20, choices=PARTY_TYPES)
    customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        # prevent deleting a customer who has an invoice
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    supplier = models.ForeignKey(
        Supplier,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    # Identifiers and key dates
    invoice_number = models.CharField(max_length=50)  # "INV-2025-001"
    invoice_date = models.DateTimeField()
    due_date = models.DateTimeField()
    currency = models.CharField(max_length=3, default="USD")

    # Computed from the lines, never caller-supplied
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    tax_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    # total_amount - discount_amount
    net_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    status = models.CharField(
        max_length=20, choices=INVOICE_STATUS_CHOICES, default="draft"
    )
    payment_status = models.CharField(
        max_length=20, choices=PAYMENT_STATUS_CHOICES, default="unpaid"
    )

    sent_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping (+ .overdue(now))
    objects = InvoiceManager()

    class Meta:
        ordering = ["-invoice_date", "-id"]
        indexes = [
            models.Index(fields=["organization", "invoice_type", "status"], name="invoice_org_type_status_idx"),
            models.Index(fields=["organization", "customer"], name="invoice_org_customer_idx"),
            models.Index(fields=["organization", "supplier"], name="invoice_org_supplier_idx"),
            models.Index(fields=["organization", "due_date"], name="invoice_org_due_idx"),
        ]
        constraints = [
            # Within one organization, an invoice number is unique per type.
            # Across organizations, duplicates are allowed
            models.UniqueConstraint(
                fields=["organization", "invoice_type", "invoice_number"],
                name="uq_invoice_org_type_number",
            ),
            # exactly one party column set, matching party_type
            models.CheckConstraint(
                condition=(
                    models.Q(party_type="customer", customer__isnull=False, supplier__isnull=True) |
                    models.Q(party_type="supplier", supplier__isnull=False, customer__isnull=True)
                ),
                name="invoice_party_matches_type",
            ),
            models.CheckConstraint(
                condition=models.Q(discount_amount__gte=0) & models.Q(total_amount__gte=0),
                name="invoice_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return f"{self.get_invoice_type_display()} {self.invoice_number} [{self.status}]"

    @property
    def party(self):
        """Tagged Party variant for this invoice"""
        return party_from_columns(self.party_type, self.customer_id, self.supplier_id)

    def is_overdue(self, now):
        """Read-time predicate; nothing persists "overdue"."""
        return self.status in OVERDUE_CANDIDATE_STATUSES and self.due_date < now

    def allocated_total(self):
        aggs = self.allocations.aggregate(total=models.Sum("allocated_amount"))
        return aggs["total"] or Decimal("0.00")


class InvoiceLine(models.Model):  # One priced line on an invoice

    invoice = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="lines")
    # caller-supplied order, 1-based
    line_number = models.PositiveIntegerField()

    # Revenue (receivable) or expense (payable) account for this line
    account = models.ForeignKey(
        GLAccount,
        # You can't delete an account if lines still point to it
        on_delete=models.PROTECT,
        related_name="invoice_lines",
    )
    description = models.TextField(blank=True, default="")

    # Core pricing logic: quantity × unit_price (+ tax) = total_amount
    quantity = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("1")
    )
    unit_price = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0.00")
    )
    tax_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00")
    )
    tax_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    class Meta:
        ordering = ["line_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["invoice", "line_number"], name="uq_invoiceline_number"
            ),
            # Ensure quantity & unit_price are never negative
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0) & models.Q(unit_price__gte=0),
                name="invl_non_negative_amounts",
            ),
            models.CheckConstraint(
                condition=models.Q(tax_rate__gte=0) & models.Q(tax_rate__lte=100),
                name="invl_tax_rate_range",
            ),
        ]

    def __str__(self):
        return f"{self.invoice.invoice_number} #{self.line_number}: {self.total_amount}"

    @property
    def subtotal(self):
        """Line amount before tax"""
        return self.total_amount - self.tax_amount
