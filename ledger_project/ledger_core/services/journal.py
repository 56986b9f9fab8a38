import logging
from decimal import Decimal

from django.utils import timezone

from ..exceptions import (AccountInactiveError, AccountNotFoundError,
                          AlreadyReversedError, EmptyLinesError,
                          EntryNotFoundError, EntryPostedError,
                          InvalidLineError, InvalidStateError,
                          LedgerValidationError, ManualEntryNotAllowedError,
                          UnbalancedEntryError)
from ..models import GLAccount, JournalEntry, JournalEntryLine
from ..models.journal import ENTRY_STATUS, ENTRY_TYPES, is_balanced
from ..references import JournalEntryRef, reference_columns
from .audit_helper import log_action
from .locking import atomic_write
from .numbering import next_number
from .validation import get_scoped, to_money

logger = logging.getLogger(__name__)

ENTRY_TYPE_VALUES = {value for value, _ in ENTRY_TYPES}
ENTRY_STATUS_VALUES = {value for value, _ in ENTRY_STATUS}
ZERO = Decimal("0.00")


# ----------------------------
# Line validation (no writes)
# ----------------------------
def _normalize_lines(lines):
    """
    Check shape of each line and return
    [(account_id, debit, credit, description), ...] in caller order.
    """
    lines = list(lines or [])
    if len(lines) < 2:
        raise EmptyLinesError("A journal entry needs at least two lines")

    normalized = []
    for index, line in enumerate(lines, start=1):
        account_id = line.get("account_id")
        if account_id is None:
            raise InvalidLineError(f"Line {index}: account_id is required")
        debit = to_money(line.get("debit") or 0, f"line {index} debit")
        credit = to_money(line.get("credit") or 0, f"line {index} credit")

        if debit < 0 or credit < 0:
            raise InvalidLineError(f"Line {index}: amounts must be >= 0")
        # exactly one side > 0
        if (debit > 0) == (credit > 0):
            raise InvalidLineError(
                f"Line {index}: exactly one of debit/credit must be > 0"
            )
        normalized.append((account_id, debit, credit, line.get("description") or ""))
    return normalized


def _check_balance(normalized):
    total_debit = sum((debit for _, debit, _, _ in normalized), ZERO)
    total_credit = sum((credit for _, _, credit, _ in normalized), ZERO)
    if not is_balanced(total_debit, total_credit):
        raise UnbalancedEntryError(total_debit, total_credit)
    return total_debit, total_credit


def _load_accounts(ctx, normalized, entry_type):
    """Every account must exist in this organization, be active,
    and (for manual entries) accept manual postings."""
    wanted = {account_id for account_id, _, _, _ in normalized}
    accounts = GLAccount.objects.for_organization(ctx.organization).in_bulk(wanted)

    for account_id in wanted:
        account = accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        if not account.is_active:
            raise AccountInactiveError(f"Account {account.code} is inactive")
        if entry_type == "manual" and not account.allow_manual_entries:
            raise ManualEntryNotAllowedError(
                f"Account {account.code} does not accept manual entries"
            )
    return accounts


# ----------------------------
# Journal workflows
# ----------------------------
def create_entry(ctx, entry_date, entry_type, description, lines, *,
                 reference=None, post=False):
    """
    Validate, then persist header + lines in one transaction.
    Nothing is written unless every check passes.
    """
    if entry_type not in ENTRY_TYPE_VALUES:
        raise LedgerValidationError(f"Unknown entry_type {entry_type!r}")
    if not description:
        raise LedgerValidationError("A journal entry needs a description")

    normalized = _normalize_lines(lines)
    total_debit, _ = _check_balance(normalized)
    ref_columns = reference_columns(reference)

    with atomic_write("create_entry"):
        accounts = _load_accounts(ctx, normalized, entry_type)

        entry = JournalEntry.objects.create(
            organization=ctx.organization,
            entry_number=next_number(ctx.organization, "journal_entry"),
            entry_date=entry_date,
            entry_type=entry_type,
            description=description,
            created_by=ctx.user,
            **ref_columns,
        )
        # line_number keeps caller order
        JournalEntryLine.objects.bulk_create([
            JournalEntryLine(
                entry=entry,
                line_number=number,
                account=accounts[account_id],
                debit_amount=debit,
                credit_amount=credit,
                description=line_description,
            )
            for number, (account_id, debit, credit, line_description)
            in enumerate(normalized, start=1)
        ])

        log_action(action="create", instance=entry, ctx=ctx,
                   changes={"entry_number": entry.entry_number,
                            "total": str(total_debit),
                            "lines": len(normalized)})

        if post:
            entry.post(user=ctx.user)
            log_action(action="post", instance=entry, ctx=ctx)

    logger.info("journal entry %s created org=%s type=%s status=%s",
                entry.entry_number, ctx.organization_id, entry_type, entry.status)
    return entry


def post_entry(ctx, entry_id):
    with atomic_write("post_entry"):
        entry = get_scoped(JournalEntry, ctx, entry_id, EntryNotFoundError, label="Journal entry")
        # post() locks the row and re-validates from the stored lines
        entry.post(user=ctx.user)
        log_action(action="post", instance=entry, ctx=ctx)

    logger.info("journal entry %s posted org=%s", entry.entry_number, ctx.organization_id)
    return entry


def reverse_entry(ctx, entry_id, *, entry_date=None, description=None):
    """
    Post a new adjustment entry with every line's debit/credit swapped.
    The original keeps its lines untouched and only gains reversed_by.
    """
    with atomic_write("reverse_entry"):
        original = get_scoped(JournalEntry, ctx, entry_id, EntryNotFoundError,
                              lock=True, label="Journal entry")
        if original.status != "posted":
            raise InvalidStateError(
                f"{original.entry_number} is a draft; delete it instead of reversing"
            )
        if original.reversed_by_id is not None:
            raise AlreadyReversedError(f"{original.entry_number} is already reversed")

        swapped = [
            {
                "account_id": line.account_id,
                "debit": line.credit_amount,
                "credit": line.debit_amount,
                "description": line.description,
            }
            for line in original.lines.order_by("line_number")
        ]
        reversal = create_entry(
            ctx,
            entry_date or timezone.now(),
            "adjustment",
            description or f"Reversal of {original.entry_number}",
            swapped,
            reference=JournalEntryRef(original.pk),
            post=True,
        )

        original.reversed_by = reversal
        original.save(update_fields=["reversed_by"])
        log_action(action="reverse", instance=original, ctx=ctx,
                   changes={"reversed_by": reversal.entry_number})

    logger.info("journal entry %s reversed by %s org=%s",
                original.entry_number, reversal.entry_number, ctx.organization_id)
    return reversal


def delete_entry(ctx, entry_id):
    with atomic_write("delete_entry"):
        entry = get_scoped(JournalEntry, ctx, entry_id, EntryNotFoundError,
                           lock=True, label="Journal entry")
        if entry.status == "posted":
            raise EntryPostedError(f"{entry.entry_number} is posted; reverse it instead")
        log_action(action="delete", instance=entry, ctx=ctx,
                   changes={"entry_number": entry.entry_number})
        entry.delete()


def get_entry(ctx, entry_id):
    return get_scoped(JournalEntry, ctx, entry_id, EntryNotFoundError, label="Journal entry")


def list_entries(ctx, *, status=None):
    qs = JournalEntry.objects.for_organization(ctx.organization).prefetch_related("lines")
    if status is not None:
        if status not in ENTRY_STATUS_VALUES:
            raise LedgerValidationError(f"Unknown status {status!r}")
        qs = qs.filter(status=status)
    return list(qs)
