from decimal import Decimal
from unittest import mock

from django.db import OperationalError
from django.test import TestCase

from ..exceptions import ConcurrencyError
from ..models import AuditLog, GLAccount, Invoice
from ..services import (approve_invoice, create_account, deactivate_account,
                        update_invoice)
from ..services.locking import atomic_write
from .helpers import LedgerFixtureMixin

LOCK_TIMEOUT = OperationalError("canceling statement due to lock timeout")


class AtomicWriteTests(LedgerFixtureMixin, TestCase):
    def setUp(self):
        self.setup_ledger()

    def test_lock_failure_becomes_concurrency_error_and_rolls_back(self):
        with self.assertRaises(ConcurrencyError) as caught:
            with atomic_write("rename_org"):
                self.org.name = "Renamed"
                self.org.save()
                raise LOCK_TIMEOUT

        self.assertTrue(caught.exception.retryable)
        self.assertIs(caught.exception.__cause__, LOCK_TIMEOUT)
        self.org.refresh_from_db()
        self.assertEqual(self.org.name, "Acme")

    def test_other_errors_pass_through(self):
        with self.assertRaises(ValueError):
            with atomic_write("noop"):
                raise ValueError("not a lock problem")


class ServiceLockFailureTests(LedgerFixtureMixin, TestCase):
    """A lock timeout in any write surfaces as ConcurrencyError with nothing kept."""

    def setUp(self):
        self.setup_ledger()
        self.invoice = self.receivable("INV-L", "100.00")

    def test_approve_invoice_lock_timeout(self):
        with mock.patch("ledger_core.services.invoices._lock_invoice", side_effect=LOCK_TIMEOUT):
            with self.assertRaises(ConcurrencyError):
                approve_invoice(self.ctx, self.invoice.pk)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "draft")
        self.assertFalse(AuditLog.objects.filter(action="approve").exists())

    def test_update_invoice_fails_after_lines_were_replaced(self):
        lines = [{"account_id": self.accounts["revenue"].pk, "quantity": 1, "unit_price": "40.00"}]
        with mock.patch.object(Invoice, "save", side_effect=LOCK_TIMEOUT):
            with self.assertRaises(ConcurrencyError):
                update_invoice(self.ctx, self.invoice.pk, lines=lines)

        # the replaced lines were rolled back with the header
        invoice = Invoice.objects.get(pk=self.invoice.pk)
        self.assertEqual(invoice.total_amount, Decimal("100.00"))
        self.assertEqual(invoice.lines.get().unit_price, Decimal("100.00"))

    def test_account_writes_lock_timeout(self):
        with mock.patch.object(GLAccount, "save", side_effect=LOCK_TIMEOUT):
            with self.assertRaises(ConcurrencyError):
                deactivate_account(self.ctx, self.accounts["expense"].pk)
            with self.assertRaises(ConcurrencyError):
                create_account(self.ctx, "6000", "Rent", "expense")

        self.assertTrue(GLAccount.objects.get(pk=self.accounts["expense"].pk).is_active)
        self.assertFalse(GLAccount.objects.filter(organization=self.org, code="6000").exists())
