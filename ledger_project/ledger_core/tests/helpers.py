import datetime
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.test import override_settings

from ..context import TenantContext
from ..models import BankAccount, Customer, Organization, Supplier
from ..references import CustomerParty, SupplierParty
from ..services import create_account, create_invoice

# fixed "now" so overdue/aging assertions don't depend on the clock
NOW = datetime.datetime(2025, 9, 17, 12, 0, 0)


def ledger_settings(**overrides):
    """override_settings for single keys of the LEDGER dict"""
    return override_settings(LEDGER={**settings.LEDGER, **overrides})


class LedgerFixtureMixin:
    """
    One organization with a small chart of accounts, a customer,
    a supplier and a bank account. Call self.setup_ledger() from setUp;
    make_ledger() builds further organizations.
    """

    def make_ledger(self, slug="acme", username="alice"):
        org = Organization.objects.create(name=slug.title(), slug=slug)
        user = get_user_model().objects.create_user(username=username, password="pw")
        ctx = TenantContext(organization=org, user=user)

        accounts = {
            "cash": create_account(ctx, "1000", "Cash at Bank", "asset"),
            "ar": create_account(ctx, "1200", "Accounts Receivable", "asset",
                                 allow_manual_entries=False),
            "input_tax": create_account(ctx, "1300", "Input Tax", "asset"),
            "ap": create_account(ctx, "2000", "Accounts Payable", "liability",
                                 allow_manual_entries=False),
            "sales_tax": create_account(ctx, "2100", "Sales Tax Payable", "liability"),
            "equity": create_account(ctx, "3000", "Owner's Equity", "equity"),
            "revenue": create_account(ctx, "4000", "Sales Revenue", "revenue"),
            "sales_discount": create_account(ctx, "4900", "Sales Discounts", "revenue"),
            "expense": create_account(ctx, "5000", "Operating Expenses", "expense"),
            "purchase_discount": create_account(ctx, "5900", "Purchase Discounts", "expense"),
        }
        customer = Customer.objects.create(organization=org, name=f"{slug} customer")
        supplier = Supplier.objects.create(organization=org, name=f"{slug} supplier")
        bank = BankAccount.objects.create(
            organization=org, name=f"{slug} bank", gl_account=accounts["cash"],
            opening_balance=Decimal("1000.00"),
        )
        return ctx, accounts, customer, supplier, bank

    def setup_ledger(self):
        (self.ctx, self.accounts, self.customer,
         self.supplier, self.bank) = self.make_ledger()
        self.org = self.ctx.organization
        self.user = self.ctx.user

    def receivable(self, number="INV-1", amount="100.00", *, ctx=None, customer=None,
                   tax_rate=0, due_in_days=30, discount_amount=0):
        ctx = ctx or self.ctx
        customer = customer or self.customer
        return create_invoice(
            ctx, "receivable", CustomerParty(customer.pk), number,
            NOW, NOW + datetime.timedelta(days=due_in_days), "USD",
            [{"account_id": ctx.organization.accounts.get(code="4000").pk,
              "description": "Services", "quantity": 1,
              "unit_price": amount, "tax_rate": tax_rate}],
            discount_amount=discount_amount,
        )

    def payable(self, number="BILL-1", amount="100.00", *, tax_rate=0, due_in_days=30):
        return create_invoice(
            self.ctx, "payable", SupplierParty(self.supplier.pk), number,
            NOW, NOW + datetime.timedelta(days=due_in_days), "USD",
            [{"account_id": self.accounts["expense"].pk, "description": "Supplies",
              "quantity": 1, "unit_price": amount, "tax_rate": tax_rate}],
        )
