import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone
from django.utils.text import slugify

from ledger_core.context import TenantContext
from ledger_core.models import BankAccount, Customer, Organization, Supplier
from ledger_core.references import CustomerParty, SupplierParty
from ledger_core.services import (approve_invoice, create_account,
                                  create_entry, create_invoice,
                                  record_payment)

User = get_user_model()

# code, name, account_type, allow_manual_entries
DEMO_CHART = [
    ("1000", "Cash at Bank", "asset", True),
    ("1200", "Accounts Receivable", "asset", False),
    ("1300", "Input Tax", "asset", False),
    ("2000", "Accounts Payable", "liability", False),
    ("2100", "Sales Tax Payable", "liability", False),
    ("3000", "Owner's Equity", "equity", True),
    ("4000", "Sales Revenue", "revenue", True),
    ("4900", "Sales Discounts", "revenue", True),
    ("5000", "Operating Expenses", "expense", True),
    ("5900", "Purchase Discounts", "expense", True),
]


class Command(BaseCommand):
    help = (
        "Create a demo organization, user, chart of accounts and sample invoices/payments."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--name",  # Define flag
            default="Demo Organization",
            help="Name of the demo organization to create.",
        )
        parser.add_argument(
            "--username", default="demo", help="Username for the demo user."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo user."
        )

    def unique_slug(self, name, max_tries=100):
        # "Test Ltd" → "test-ltd" → "test-ltd-1" → ...
        base = slugify(name) or "organization"
        slug = base
        for i in range(1, max_tries + 1):
            if not Organization.objects.filter(slug=slug).exists():
                return slug
            slug = f"{base}-{i}"
        raise CommandError("Couldn't generate unique slug")

    @transaction.atomic
    def handle(self, *args, **options):
        # 1. Organization + user
        organization = Organization.objects.create(
            name=options["name"], slug=self.unique_slug(options["name"])
        )
        user, created = User.objects.get_or_create(
            username=options["username"],
            defaults={"email": f"{options['username']}@example.com"},
        )
        if created:  # only set a password on a fresh user
            user.set_password(options["password"])
            user.save()
        ctx = TenantContext(organization=organization, user=user)
        self.stdout.write(self.style.SUCCESS(f"Created organization: {organization.slug}"))

        # 2. Chart of accounts
        accounts = {
            code: create_account(ctx, code, name, account_type,
                                 allow_manual_entries=manual)
            for code, name, account_type, manual in DEMO_CHART
        }
        self.stdout.write(self.style.SUCCESS(f"Created {len(accounts)} accounts"))

        # 3. Parties + bank account
        customer = Customer.objects.create(
            organization=organization, name="Acme Retail",
            default_ar_account=accounts["1200"],
        )
        supplier = Supplier.objects.create(
            organization=organization, name="Office Supplies Co",
            default_ap_account=accounts["2000"],
        )
        bank = BankAccount.objects.create(
            organization=organization, name="Operating Account",
            bank_name="Demo Bank", gl_account=accounts["1000"],
            opening_balance=Decimal("5000.00"),
        )

        # 4. Opening balance entry
        now = timezone.now()
        create_entry(
            ctx, now, "manual", "Opening balance",
            [
                {"account_id": accounts["1000"].pk, "debit": "5000.00", "credit": 0},
                {"account_id": accounts["3000"].pk, "debit": 0, "credit": "5000.00"},
            ],
            post=True,
        )

        # 5. One receivable, partly paid; one payable, approved
        sale = create_invoice(
            ctx, "receivable", CustomerParty(customer.pk), "INV-0001",
            now, now + datetime.timedelta(days=customer.payment_terms_days), "USD",
            [{"account_id": accounts["4000"].pk, "description": "Consulting",
              "quantity": 10, "unit_price": "100.00", "tax_rate": 0}],
        )
        approve_invoice(ctx, sale.pk)
        record_payment(
            ctx, CustomerParty(customer.pk), "600.00", now, "bank_transfer",
            [{"invoice_id": sale.pk, "amount": "600.00"}],
            bank_account_id=bank.pk,
        )

        bill = create_invoice(
            ctx, "payable", SupplierParty(supplier.pk), "BILL-0001",
            now, now + datetime.timedelta(days=supplier.payment_terms_days), "USD",
            [{"account_id": accounts["5000"].pk, "description": "Paper",
              "quantity": 5, "unit_price": "20.00", "tax_rate": 10}],
        )
        approve_invoice(ctx, bill.pk)

        self.stdout.write(self.style.SUCCESS(
            f"Created invoices {sale.invoice_number}, {bill.invoice_number} and one payment"
        ))
        self.stdout.write(self.style.SUCCESS("Demo organization setup complete!"))
