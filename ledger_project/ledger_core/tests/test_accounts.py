from django.test import TestCase

from ..exceptions import (AccountInUseError, AccountNotFoundError,
                          DuplicateCodeError, LedgerValidationError,
                          NormalBalanceMismatchError)
from ..models import AuditLog, GLAccount
from ..services import (create_account, create_entry, deactivate_account,
                        get_account, get_chart_of_accounts, update_account)
from .helpers import NOW, LedgerFixtureMixin


class ChartOfAccountsTests(LedgerFixtureMixin, TestCase):
    def setUp(self):
        self.setup_ledger()

    def test_normal_balance_follows_type(self):
        expected = {
            "asset": "debit", "expense": "debit",
            "liability": "credit", "equity": "credit", "revenue": "credit",
        }
        for index, (account_type, balance) in enumerate(expected.items()):
            account = create_account(self.ctx, f"9{index}00", f"Test {account_type}", account_type)
            self.assertEqual(account.normal_balance, balance)

    def test_explicit_mismatched_normal_balance_raises(self):
        with self.assertRaises(NormalBalanceMismatchError):
            create_account(self.ctx, "1500", "Odd asset", "asset", "credit")
        self.assertFalse(GLAccount.objects.filter(code="1500").exists())

    def test_unknown_type_raises(self):
        with self.assertRaises(LedgerValidationError):
            create_account(self.ctx, "1500", "Mystery", "goodwill")

    def test_duplicate_code_in_same_organization(self):
        with self.assertRaises(DuplicateCodeError):
            create_account(self.ctx, "1000", "Second cash", "asset")

    def test_same_code_in_other_organization(self):
        other_ctx, other_accounts, *_ = self.make_ledger(slug="globex", username="bob")
        self.assertEqual(other_accounts["cash"].code, self.accounts["cash"].code)
        self.assertNotEqual(other_accounts["cash"].pk, self.accounts["cash"].pk)

    def test_parent_must_belong_to_organization(self):
        _, other_accounts, *_ = self.make_ledger(slug="globex", username="bob")
        child = create_account(self.ctx, "1010", "Petty cash", "asset", parent=self.accounts["cash"])
        self.assertEqual(child.parent, self.accounts["cash"])

        with self.assertRaises(AccountNotFoundError):
            create_account(self.ctx, "1020", "Foreign child", "asset", parent=other_accounts["cash"])

    def test_chart_lists_by_code(self):
        deactivate_account(self.ctx, self.accounts["purchase_discount"].pk)

        codes = [a.code for a in get_chart_of_accounts(self.ctx)]
        self.assertEqual(codes, sorted(codes))
        self.assertIn("5900", codes)
        self.assertNotIn("5900", [a.code for a in get_chart_of_accounts(self.ctx, include_inactive=False)])

    def test_update_name_and_flags(self):
        account = update_account(self.ctx, self.accounts["expense"].pk,
                                 name="Overheads", allow_manual_entries=False)
        account.refresh_from_db()
        self.assertEqual(account.name, "Overheads")
        self.assertFalse(account.allow_manual_entries)
        self.assertTrue(AuditLog.objects.filter(
            action="update", object_type="GLAccount", object_id=str(account.pk)).exists())

    def test_update_rejects_code_change(self):
        with self.assertRaises(LedgerValidationError):
            update_account(self.ctx, self.accounts["expense"].pk, code="5001")

    def test_type_change_without_lines_moves_normal_balance(self):
        account = update_account(self.ctx, self.accounts["expense"].pk, account_type="liability")
        account.refresh_from_db()
        self.assertEqual(account.account_type, "liability")
        self.assertEqual(account.normal_balance, "credit")

    def test_type_change_with_lines_raises(self):
        create_entry(self.ctx, NOW, "manual", "Rent", [
            {"account_id": self.accounts["expense"].pk, "debit": "50.00"},
            {"account_id": self.accounts["cash"].pk, "credit": "50.00"},
        ])
        with self.assertRaises(AccountInUseError):
            update_account(self.ctx, self.accounts["expense"].pk, account_type="asset")

        # the model guard also holds for direct saves
        account = GLAccount.objects.get(pk=self.accounts["expense"].pk)
        account.account_type = "asset"
        account.normal_balance = "debit"
        with self.assertRaises(AccountInUseError):
            account.save()

    def test_delete_used_account_raises(self):
        create_entry(self.ctx, NOW, "manual", "Rent", [
            {"account_id": self.accounts["expense"].pk, "debit": "50.00"},
            {"account_id": self.accounts["cash"].pk, "credit": "50.00"},
        ])
        with self.assertRaises(AccountInUseError):
            self.accounts["expense"].delete()
        # bank accounts point at cash too
        with self.assertRaises(AccountInUseError):
            self.accounts["cash"].delete()

    def test_unused_account_can_be_deleted(self):
        spare = create_account(self.ctx, "6000", "Spare", "expense")
        spare.delete()
        self.assertFalse(GLAccount.objects.filter(pk=spare.pk).exists())

    def test_deactivate_is_idempotent(self):
        deactivate_account(self.ctx, self.accounts["equity"].pk)
        account = deactivate_account(self.ctx, self.accounts["equity"].pk)

        self.assertFalse(account.is_active)
        self.assertEqual(
            AuditLog.objects.filter(action="deactivate", object_id=str(account.pk)).count(), 1
        )

    def test_foreign_account_is_not_found(self):
        _, other_accounts, *_ = self.make_ledger(slug="globex", username="bob")
        with self.assertRaises(AccountNotFoundError):
            get_account(self.ctx, other_accounts["cash"].pk)
        with self.assertRaises(AccountNotFoundError):
            deactivate_account(self.ctx, other_accounts["cash"].pk)
