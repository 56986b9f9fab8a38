import random
from decimal import Decimal

from django.db import transaction
from django.db.models.deletion import ProtectedError
from django.test import TestCase

from ..exceptions import (AccountInactiveError, AccountNotFoundError,
                          AlreadyReversedError, EmptyLinesError,
                          EntryNotFoundError, EntryPostedError,
                          InvalidLineError, InvalidStateError,
                          ManualEntryNotAllowedError, UnbalancedEntryError)
from ..models import AuditLog, JournalEntry, JournalEntryLine
from ..references import JournalEntryRef, PayrollRef
from ..services import (create_entry, deactivate_account, delete_entry,
                        get_entry, list_entries, post_entry, reverse_entry)
from .helpers import NOW, LedgerFixtureMixin

""" Success tests """
class JournalEntrySuccessTests(LedgerFixtureMixin, TestCase):

    def setUp(self):
        self.setup_ledger()
        self.cash = self.accounts["cash"]
        self.revenue = self.accounts["revenue"]
        self.equity = self.accounts["equity"]

    def balanced_lines(self, amount="100.00"):
        return [
            {"account_id": self.cash.pk, "debit": amount, "credit": 0},
            {"account_id": self.revenue.pk, "debit": 0, "credit": amount},
        ]

    """ Balanced three-line entry: 100 = 60 + 40 """
    def test_three_line_balanced_entry_succeeds(self):
        entry = create_entry(self.ctx, NOW, "manual", "Split sale", [
            {"account_id": self.cash.pk, "debit": "100.00", "credit": 0},
            {"account_id": self.revenue.pk, "debit": 0, "credit": "60.00"},
            {"account_id": self.equity.pk, "debit": 0, "credit": "40.00"},
        ])

        entry.refresh_from_db()
        self.assertEqual(entry.status, "draft")
        self.assertEqual(entry.lines.count(), 3)
        debit, credit = entry.compute_totals()
        self.assertEqual(debit, Decimal("100.00"))
        self.assertEqual(credit, Decimal("100.00"))

    def test_lines_keep_caller_order(self):
        entry = create_entry(self.ctx, NOW, "manual", "Ordered", [
            {"account_id": self.revenue.pk, "credit": "10.00"},
            {"account_id": self.equity.pk, "credit": "5.00"},
            {"account_id": self.cash.pk, "debit": "15.00"},
        ])
        self.assertListEqual(
            list(entry.lines.order_by("line_number").values_list("line_number", "account_id")),
            [(1, self.revenue.pk), (2, self.equity.pk), (3, self.cash.pk)],
        )

    def test_entries_are_numbered_per_organization(self):
        first = create_entry(self.ctx, NOW, "manual", "One", self.balanced_lines())
        second = create_entry(self.ctx, NOW, "manual", "Two", self.balanced_lines())

        self.assertEqual(first.entry_number, "JE-000001")
        self.assertEqual(second.entry_number, "JE-000002")

    def test_post_immediately(self):
        entry = create_entry(self.ctx, NOW, "manual", "Posted now",
                             self.balanced_lines(), post=True)
        entry.refresh_from_db()

        self.assertEqual(entry.status, "posted")
        self.assertIsNotNone(entry.posting_date)
        self.assertEqual(entry.approved_by, self.user)

    def test_post_draft_later(self):
        entry = create_entry(self.ctx, NOW, "manual", "Later", self.balanced_lines())
        post_entry(self.ctx, entry.pk)
        entry.refresh_from_db()
        self.assertEqual(entry.status, "posted")
        self.assertTrue(AuditLog.objects.filter(action="post", object_id=str(entry.pk)).exists())

    def test_reference_variant_round_trips(self):
        entry = create_entry(self.ctx, NOW, "automatic", "Payroll run",
                             self.balanced_lines(), reference=PayrollRef(42))
        entry.refresh_from_db()
        self.assertEqual(entry.reference_type, "payroll")
        self.assertEqual(entry.reference, PayrollRef(42))

    def test_amounts_within_tolerance_are_balanced(self):
        # both sides round to 100.00
        entry = create_entry(self.ctx, NOW, "manual", "Rounding", [
            {"account_id": self.cash.pk, "debit": "100.001"},
            {"account_id": self.revenue.pk, "credit": "99.999"},
        ])
        self.assertEqual(entry.lines.count(), 2)

    def test_list_entries_filters_by_status(self):
        create_entry(self.ctx, NOW, "manual", "Draft", self.balanced_lines())
        posted = create_entry(self.ctx, NOW, "manual", "Posted", self.balanced_lines(), post=True)

        self.assertEqual([e.pk for e in list_entries(self.ctx, status="posted")], [posted.pk])
        self.assertEqual(len(list_entries(self.ctx)), 2)


""" Balance property over random line sets """
class JournalBalancePropertyTests(LedgerFixtureMixin, TestCase):

    def setUp(self):
        self.setup_ledger()
        self.account_ids = [self.accounts[key].pk for key in ("cash", "revenue", "equity", "expense")]
        self.rng = random.Random(20250917)

    def random_lines(self, balanced):
        lines = []
        for _ in range(self.rng.randint(1, 4)):
            amount = Decimal(self.rng.randint(1, 100000)) / 100
            lines.append({"account_id": self.rng.choice(self.account_ids), "debit": amount})
            lines.append({"account_id": self.rng.choice(self.account_ids), "credit": amount})
        if not balanced:
            # off by at least one cent, well past the tolerance
            lines[-1]["credit"] += Decimal("0.01") * self.rng.randint(1, 500)
        self.rng.shuffle(lines)
        return lines

    def test_posted_entries_always_balance(self):
        for _ in range(25):
            create_entry(self.ctx, NOW, "manual", "Random", self.random_lines(True), post=True)

        for entry in JournalEntry.objects.for_organization(self.org).filter(status="posted"):
            debit, credit = entry.compute_totals()
            self.assertEqual(debit, credit)

    def test_unbalanced_sets_are_rejected_before_persistence(self):
        for _ in range(25):
            with self.assertRaises(UnbalancedEntryError):
                create_entry(self.ctx, NOW, "manual", "Random", self.random_lines(False))

        self.assertEqual(JournalEntry.objects.count(), 0)
        self.assertEqual(JournalEntryLine.objects.count(), 0)


""" Failure tests """
class JournalEntryFailureTests(LedgerFixtureMixin, TestCase):

    def setUp(self):
        self.setup_ledger()
        self.cash = self.accounts["cash"]
        self.revenue = self.accounts["revenue"]

    def test_unbalanced_entry_persists_nothing(self):
        with self.assertRaises(UnbalancedEntryError) as cm:
            create_entry(self.ctx, NOW, "manual", "Off by ten", [
                {"account_id": self.cash.pk, "debit": "100.00"},
                {"account_id": self.revenue.pk, "credit": "90.00"},
            ])

        self.assertEqual(cm.exception.total_debit, Decimal("100.00"))
        self.assertEqual(cm.exception.total_credit, Decimal("90.00"))
        # a subsequent query finds zero new rows
        self.assertEqual(JournalEntry.objects.for_organization(self.org).count(), 0)
        self.assertEqual(JournalEntryLine.objects.count(), 0)

    def test_single_line_is_rejected(self):
        with self.assertRaises(EmptyLinesError):
            create_entry(self.ctx, NOW, "manual", "Lonely",
                         [{"account_id": self.cash.pk, "debit": "10.00"}])

    def test_line_with_both_sides_is_rejected(self):
        with self.assertRaises(InvalidLineError):
            create_entry(self.ctx, NOW, "manual", "Both", [
                {"account_id": self.cash.pk, "debit": "10.00", "credit": "10.00"},
                {"account_id": self.revenue.pk, "credit": "0.00", "debit": "0.00"},
            ])
        self.assertEqual(JournalEntryLine.objects.count(), 0)

    def test_zero_and_negative_lines_are_rejected(self):
        for bad in ({"debit": 0, "credit": 0}, {"debit": "-5.00", "credit": 0}):
            with self.assertRaises(InvalidLineError):
                create_entry(self.ctx, NOW, "manual", "Bad", [
                    dict(account_id=self.cash.pk, **bad),
                    {"account_id": self.revenue.pk, "credit": "5.00"},
                ])
        self.assertEqual(JournalEntryLine.objects.count(), 0)

    def test_unknown_account(self):
        with self.assertRaises(AccountNotFoundError):
            create_entry(self.ctx, NOW, "manual", "Ghost", [
                {"account_id": 999999, "debit": "10.00"},
                {"account_id": self.revenue.pk, "credit": "10.00"},
            ])

    def test_inactive_account(self):
        deactivate_account(self.ctx, self.revenue.pk)
        with self.assertRaises(AccountInactiveError):
            create_entry(self.ctx, NOW, "manual", "Dormant", [
                {"account_id": self.cash.pk, "debit": "10.00"},
                {"account_id": self.revenue.pk, "credit": "10.00"},
            ])
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_manual_entry_on_control_account(self):
        with self.assertRaises(ManualEntryNotAllowedError):
            create_entry(self.ctx, NOW, "manual", "Sneaky AR", [
                {"account_id": self.accounts["ar"].pk, "debit": "10.00"},
                {"account_id": self.revenue.pk, "credit": "10.00"},
            ])

    def test_automatic_entry_may_use_control_account(self):
        entry = create_entry(self.ctx, NOW, "automatic", "AR accrual", [
            {"account_id": self.accounts["ar"].pk, "debit": "10.00"},
            {"account_id": self.revenue.pk, "credit": "10.00"},
        ])
        self.assertEqual(entry.lines.count(), 2)

    def test_posting_twice_raises(self):
        entry = create_entry(self.ctx, NOW, "manual", "Once", [
            {"account_id": self.cash.pk, "debit": "10.00"},
            {"account_id": self.revenue.pk, "credit": "10.00"},
        ], post=True)
        with self.assertRaises(EntryPostedError):
            post_entry(self.ctx, entry.pk)

    def test_post_rechecks_stored_lines(self):
        entry = create_entry(self.ctx, NOW, "manual", "Tampered", [
            {"account_id": self.cash.pk, "debit": "10.00"},
            {"account_id": self.revenue.pk, "credit": "10.00"},
        ])
        # DB-level update bypasses model validation
        entry.lines.filter(line_number=1).update(debit_amount=Decimal("15.00"))

        with self.assertRaises(UnbalancedEntryError):
            post_entry(self.ctx, entry.pk)
        entry.refresh_from_db()
        self.assertEqual(entry.status, "draft")

    def test_other_organization_entry_is_not_found(self):
        other_ctx, other_accounts, *_ = self.make_ledger(slug="globex", username="bob")
        foreign = create_entry(other_ctx, NOW, "manual", "Theirs", [
            {"account_id": other_accounts["cash"].pk, "debit": "10.00"},
            {"account_id": other_accounts["revenue"].pk, "credit": "10.00"},
        ])
        with self.assertRaises(EntryNotFoundError):
            get_entry(self.ctx, foreign.pk)
        with self.assertRaises(EntryNotFoundError):
            post_entry(self.ctx, foreign.pk)


""" Posted entries are frozen """
class JournalEntryFreezeTests(LedgerFixtureMixin, TestCase):

    def setUp(self):
        self.setup_ledger()
        self.entry = create_entry(self.ctx, NOW, "manual", "Frozen", [
            {"account_id": self.accounts["cash"].pk, "debit": "100.00"},
            {"account_id": self.accounts["revenue"].pk, "credit": "100.00"},
        ], post=True)

    def test_line_save_raises(self):
        line = self.entry.lines.order_by("line_number").first()
        original = line.debit_amount
        line.debit_amount = original + Decimal("50.00")

        with self.assertRaises(EntryPostedError):
            line.save()

        line.refresh_from_db()
        self.assertEqual(line.debit_amount, original)

    def test_line_delete_raises(self):
        line = self.entry.lines.first()
        with self.assertRaises(EntryPostedError):
            with transaction.atomic():
                line.delete()
        self.assertTrue(self.entry.lines.filter(pk=line.pk).exists())

    def test_header_save_raises(self):
        self.entry.description = "Rewritten"
        with self.assertRaises(EntryPostedError):
            self.entry.save()

    def test_delete_posted_entry_raises(self):
        with self.assertRaises(EntryPostedError):
            delete_entry(self.ctx, self.entry.pk)
        self.assertTrue(JournalEntry.objects.filter(pk=self.entry.pk).exists())

    def test_delete_draft_entry(self):
        draft = create_entry(self.ctx, NOW, "manual", "Scrap", [
            {"account_id": self.accounts["cash"].pk, "debit": "1.00"},
            {"account_id": self.accounts["revenue"].pk, "credit": "1.00"},
        ])
        delete_entry(self.ctx, draft.pk)
        self.assertFalse(JournalEntry.objects.filter(pk=draft.pk).exists())
        self.assertFalse(JournalEntryLine.objects.filter(entry_id=draft.pk).exists())


""" Reversal creates a new entry, never mutates the original """
class JournalEntryReversalTests(LedgerFixtureMixin, TestCase):

    def setUp(self):
        self.setup_ledger()
        self.original = create_entry(self.ctx, NOW, "manual", "Sale", [
            {"account_id": self.accounts["cash"].pk, "debit": "100.00"},
            {"account_id": self.accounts["revenue"].pk, "credit": "60.00"},
            {"account_id": self.accounts["equity"].pk, "credit": "40.00"},
        ], post=True)

    def test_reverse_swaps_every_line(self):
        original_lines = list(
            self.original.lines.order_by("line_number")
            .values_list("account_id", "debit_amount", "credit_amount")
        )

        reversal = reverse_entry(self.ctx, self.original.pk)

        self.assertEqual(reversal.status, "posted")
        self.assertEqual(reversal.entry_type, "adjustment")
        self.assertEqual(reversal.reference, JournalEntryRef(self.original.pk))
        self.assertListEqual(
            list(reversal.lines.order_by("line_number")
                 .values_list("account_id", "credit_amount", "debit_amount")),
            original_lines,
        )

        # original untouched apart from the link
        self.original.refresh_from_db()
        self.assertEqual(self.original.reversed_by_id, reversal.pk)
        self.assertEqual(self.original.status, "posted")
        self.assertListEqual(
            list(self.original.lines.order_by("line_number")
                 .values_list("account_id", "debit_amount", "credit_amount")),
            original_lines,
        )

    def test_reversing_twice_raises(self):
        reverse_entry(self.ctx, self.original.pk)
        with self.assertRaises(AlreadyReversedError):
            reverse_entry(self.ctx, self.original.pk)
        self.assertEqual(JournalEntry.objects.filter(entry_type="adjustment").count(), 1)

    def test_draft_cannot_be_reversed(self):
        draft = create_entry(self.ctx, NOW, "manual", "Draft", [
            {"account_id": self.accounts["cash"].pk, "debit": "5.00"},
            {"account_id": self.accounts["revenue"].pk, "credit": "5.00"},
        ])
        with self.assertRaises(InvalidStateError):
            reverse_entry(self.ctx, draft.pk)

    def test_reversal_cannot_be_deleted(self):
        reversal = reverse_entry(self.ctx, self.original.pk)
        with self.assertRaises((EntryPostedError, ProtectedError)):
            with transaction.atomic():
                reversal.delete()
