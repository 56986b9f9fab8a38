from decimal import Decimal

from django.conf import settings
from django.db import models, transaction
from django.utils import timezone

from ..exceptions import EntryPostedError, UnbalancedEntryError
from ..managers import TenantManager
from ..references import reference_from_columns
from .account import GLAccount
from .organization import Organization

ENTRY_TYPES = [
    ("manual", "Manual"),          # keyed in by a user
    ("automatic", "Automatic"),    # produced by invoice/payment postings
    ("adjustment", "Adjustment"),  # reversals and corrections
]

ENTRY_STATUS = [
    ("draft", "Draft"),    # still editable/deletable
    ("posted", "Posted"),  # finalized, immutable
]

REFERENCE_TYPES = [
    ("invoice", "Invoice"),
    ("payment", "Payment"),
    ("payroll", "Payroll"),
    ("journal_entry", "Journal entry"),
]


def balance_tolerance():
    return settings.LEDGER["BALANCE_TOLERANCE"]


def is_balanced(total_debit, total_credit):
    return abs(total_debit - total_credit) <= balance_tolerance()


# ---------- Journal (Header) & JournalEntryLine ----------
class JournalEntry(models.Model):  # Represents one accounting transaction
    # Multi-tenant: every entry belongs to an organization
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE)
    entry_number = models.CharField(max_length=50)  # JE-000001

    # Business metadata
    entry_date = models.DateTimeField()
    posting_date = models.DateTimeField(null=True, blank=True)
    entry_type = models.CharField(max_length=20, choices=ENTRY_TYPES, default="manual")

    # optional polymorphic source info, read through references.Reference
    reference_type = models.CharField(
        max_length=20, choices=REFERENCE_TYPES, null=True, blank=True
    )  # Helps trace back where the JE originated
    reference_id = models.BigIntegerField(null=True, blank=True)

    description = models.TextField()
    status = models.CharField(max_length=10, choices=ENTRY_STATUS, default="draft")

    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    # Set on the original when a reversing entry is posted against it
    reversed_by = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reverses",
    )

    # Track user who created it
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ["-entry_date", "-id"]
        # Speed up listing & filtering
        # (e.g. show all posted entries this month)
        indexes = [
            models.Index(fields=["organization", "entry_date"], name="je_org_date_idx"),
            models.Index(fields=["organization", "status"], name="je_org_status_idx"),
            models.Index(fields=["organization", "reference_type", "reference_id"], name="je_org_reference_idx"),
        ]
        constraints = [
            # Within one organization, each entry number is unique
            models.UniqueConstraint(
                fields=["organization", "entry_number"], name="uq_je_org_number"
            )
        ]

    def __str__(self):
        return f"{self.entry_number} {self.entry_date:%Y-%m-%d} [{self.status}]"

    @property
    def reference(self):
        return reference_from_columns(self.reference_type, self.reference_id)

    # Aggregate all debit and credit amounts across entry's lines
    def compute_totals(self):
        """Return debits, credits sums for lines"""
        aggs = self.lines.aggregate(
            total_debit=models.Sum("debit_amount"),
            total_credit=models.Sum("credit_amount"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    # True if double-entry rule holds: total debits = total credits
    def is_balanced(self):
        return is_balanced(*self.compute_totals())

    # Post the entry safely inside a database transaction
    @transaction.atomic
    def post(self, user=None):
        """
        draft → posted, re-validating balance from the stored lines.
        """
        # Lock row so two posters can't race
        je = JournalEntry.objects.select_for_update().get(pk=self.pk)

        if je.status == "posted":
            raise EntryPostedError(f"{je.entry_number} is already posted.")

        # Recompute totals fresh from DB & ignore any stale cached values
        total_debit, total_credit = je.compute_totals()
        if not is_balanced(total_debit, total_credit):
            raise UnbalancedEntryError(total_debit, total_credit)

        """ Update state """
        now = timezone.now()
        je.status = "posted"
        je.posting_date = now
        je.approved_at = now
        if user is not None:
            je.approved_by = user
        # _posting lets save() through the immutability guard exactly once
        je._posting = True
        je.save(update_fields=["status", "posting_date", "approved_at", "approved_by"])

        # reflect onto caller's instance
        self.status = je.status
        self.posting_date = je.posting_date
        self.approved_at = je.approved_at
        self.approved_by = je.approved_by
        return self

    def save(self, *args, **kwargs):
        if self.pk and not getattr(self, "_posting", False):  # Does this row already exist in DB?
            orig = JournalEntry.objects.filter(pk=self.pk).only("status").first()
            # Posted entries only ever gain a reversed_by link
            if orig and orig.status == "posted":
                update_fields = kwargs.get("update_fields")
                if update_fields is None or set(update_fields) - {"reversed_by"}:
                    raise EntryPostedError(
                        "Cannot modify a posted JournalEntry. Reverse it instead."
                    )
        self._posting = False
        super().save(*args, **kwargs)


class JournalEntryLine(models.Model):  # Stores Lines ( credits / debits )
    """
    Each line belongs to a journal entry and to a GL account.
    Exactly one of debit_amount / credit_amount is > 0.
    """

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    # caller-supplied order, 1-based
    line_number = models.PositiveIntegerField()

    # Must point to one Account (can't delete account if lines exist → PROTECT)
    account = models.ForeignKey(
        GLAccount, on_delete=models.PROTECT, related_name="journal_lines"
    )

    debit_amount = models.DecimalField(
        max_digits=19, decimal_places=4, default=Decimal("0"))
    credit_amount = models.DecimalField(
        max_digits=19, decimal_places=4, default=Decimal("0"))
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["line_number"]
        indexes = [
            models.Index(fields=["account"], name="jel_account_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["entry", "line_number"], name="uq_jel_entry_line_number"
            ),
            # one side positive, the other exactly zero
            models.CheckConstraint(
                condition=(
                    (models.Q(debit_amount__gt=0) & models.Q(credit_amount=0)) |
                    (models.Q(credit_amount__gt=0) & models.Q(debit_amount=0))
                ),
                name="check_debit_or_credit",
            ),
        ]

    def __str__(self):
        return f"{self.entry_id} #{self.line_number} | {self.account_id} | D:{self.debit_amount} C:{self.credit_amount}"

    def save(self, *args, **kwargs):
        # lines of a posted entry are frozen
        if self.entry_id and JournalEntry.objects.filter(pk=self.entry_id, status="posted").exists():
            raise EntryPostedError("Cannot modify lines of a posted JournalEntry.")
        super().save(*args, **kwargs)
