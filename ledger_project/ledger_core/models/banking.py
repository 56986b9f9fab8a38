from decimal import Decimal

from django.db import models

from ..managers import TenantManager
from .account import GLAccount
from .organization import Organization


# ---------- Banking ----------
class BankAccount(models.Model):  # Bank account the organization maintains
    # Belongs to an Organization (multi-tenant)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE)
    name = models.CharField(max_length=200)  # "Operating Account"
    bank_name = models.CharField(max_length=200, blank=True, default="")
    # Partial account number for display/security
    account_number = models.CharField(max_length=50, blank=True, default="")
    currency = models.CharField(max_length=3, default="USD")

    # Cash account the clearing postings hit
    gl_account = models.ForeignKey(
        GLAccount,
        on_delete=models.PROTECT,  # account referenced by a bank can't vanish
        related_name="bank_accounts",
    )
    opening_balance = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # An organization cannot have two accounts with the same name
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "name"], name="uq_org_bankaccount_name"
            ),
        ]

    def __str__(self):
        if self.account_number:
            return f"{self.name} ({self.account_number[-4:]})"
        return self.name
