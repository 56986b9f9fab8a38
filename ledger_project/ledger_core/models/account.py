from django.conf import settings
from django.db import models

from ..exceptions import AccountInUseError
from ..managers import TenantManager
from .organization import Organization

# Choice Lists
ACCOUNT_TYPES = [
    # Used in GLAccount model to classify general ledger accounts
    ("asset", "Asset"),
    ("liability", "Liability"),
    ("equity", "Equity"),
    ("revenue", "Revenue"),
    ("expense", "Expense"),
]

# Define whether the account normally increases
# on the debit side or credit side
NORMAL_BALANCE = [
    ("debit", "Debit"),
    ("credit", "Credit"),
]

# Assets/Expenses → Debit, Liabilities/Equity/Revenue → Credit
NORMAL_BALANCE_BY_TYPE = {
    "asset": "debit",
    "expense": "debit",
    "liability": "credit",
    "equity": "credit",
    "revenue": "credit",
}


class GLAccount(models.Model):
    """
    Ledger account in the Chart of Accounts.
    - code is unique per organization
    - account_type: determines reporting (balance sheet vs P&L)
    - normal_balance: derived from account_type, enforced by a check constraint
    - never hard-deleted once referenced; deactivate instead
    """

    organization = models.ForeignKey(  # Each account belongs to one organization
        Organization,  # All reports must filter by organization to prevent data leaks
        on_delete=models.CASCADE,
        related_name="accounts",
    )
    # sort/group accounts consistently in reports
    code = models.CharField(max_length=20)
    name = models.CharField(max_length=255)  # "Cash on Hand", "Accounts Payable"
    description = models.TextField(blank=True, default="")

    account_type = models.CharField(max_length=20, choices=ACCOUNT_TYPES)
    normal_balance = models.CharField(max_length=6, choices=NORMAL_BALANCE)

    # Optional hierarchy (1000 Cash → 1001 Petty Cash)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,  # can't delete a parent if children exist
        related_name="children",
    )

    # "soft deactivate": stop new postings without deleting history
    is_active = models.BooleanField(default=True)
    # False for control accounts only the automatic postings may touch
    allow_manual_entries = models.BooleanField(default=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ["code"]
        indexes = [
            # For reports grouped by account_type (trial balance, P&L)
            models.Index(fields=["organization", "account_type"], name="glacct_org_type_idx"),
            models.Index(fields=["organization", "parent"], name="glacct_org_parent_idx"),
        ]
        constraints = [
            # Codes repeat across organizations but are unique within one
            models.UniqueConstraint(
                fields=["organization", "code"], name="uq_org_account_code"
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(account_type__in=["asset", "expense"], normal_balance="debit") |
                    models.Q(account_type__in=["liability", "equity", "revenue"], normal_balance="credit")
                ),
                name="glaccount_normal_balance_matches_type",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    def has_journal_lines(self):
        from .journal import JournalEntryLine

        return JournalEntryLine.objects.filter(account=self).exists()

    def save(self, *args, **kwargs):
        """account_type is frozen once journal lines reference the account"""
        if self.pk:
            old = GLAccount.objects.filter(pk=self.pk).only("account_type").first()
            if old and old.account_type != self.account_type and self.has_journal_lines():
                raise AccountInUseError(
                    f"Account {self.code} has journal lines; its type cannot change."
                )
        return super().save(*args, **kwargs)

    """ Referenced accounts are deactivated, never deleted """

    def delete(self, *args, **kwargs):
        if (
            self.has_journal_lines()
            or self.invoice_lines.exists()
            or self.bank_accounts.exists()
        ):
            raise AccountInUseError(
                f"Account {self.code} is referenced; deactivate it instead."
            )
        return super().delete(*args, **kwargs)
