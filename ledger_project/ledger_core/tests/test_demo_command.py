from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from ..context import TenantContext
from ..models import GLAccount, Invoice, JournalEntry, Organization, Payment
from ..services import bank_balance_after, trial_balance


class CreateDemoOrganizationTests(TestCase):

    def run_command(self, *args):
        out = StringIO()
        call_command("create_demo_organization", *args, stdout=out)
        return out.getvalue()

    def test_builds_a_working_ledger(self):
        output = self.run_command("--name", "Demo Co", "--username", "demo")

        self.assertIn("Demo organization setup complete!", output)
        organization = Organization.objects.get(slug="demo-co")
        self.assertEqual(GLAccount.objects.for_organization(organization).count(), 10)

        sale = Invoice.objects.get(organization=organization, invoice_number="INV-0001")
        self.assertEqual(sale.status, "sent")
        self.assertEqual(sale.payment_status, "partially_paid")
        bill = Invoice.objects.get(organization=organization, invoice_number="BILL-0001")
        self.assertEqual(bill.status, "approved")
        self.assertEqual(bill.total_amount, Decimal("110.00"))

        payment = Payment.objects.get(organization=organization)
        ctx = TenantContext(organization=organization)
        self.assertEqual(bank_balance_after(ctx, payment.bank_account_id), Decimal("5600.00"))

        # the opening entry is posted and balanced
        self.assertTrue(JournalEntry.objects.for_organization(organization).filter(status="posted").exists())
        self.assertEqual(sum(row["net_balance"] for row in trial_balance(ctx, sale.invoice_date)), 0)

    def test_second_run_gets_a_fresh_slug(self):
        self.run_command("--name", "Demo Co")
        self.run_command("--name", "Demo Co")

        self.assertEqual(
            sorted(Organization.objects.values_list("slug", flat=True)), ["demo-co", "demo-co-1"]
        )
