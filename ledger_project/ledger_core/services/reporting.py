"""
Read-only balance queries.

Nothing here is cached or stored: every call aggregates the
current rows of one organization.
"""
from decimal import Decimal

from django.db.models import DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..exceptions import BankAccountNotFoundError, LedgerValidationError
from ..models import BankAccount, Invoice, JournalEntryLine, Payment
from ..models.invoice import PARTY_TYPE_FOR_INVOICE_TYPE
from ..references import party_columns
from .validation import get_scoped

ZERO = Decimal("0.00")

# (label, lowest days past due, highest days past due or None)
AGING_BUCKETS = (
    ("1_30", 1, 30),
    ("31_60", 31, 60),
    ("61_90", 61, 90),
    ("over_90", 91, None),
)


def _money_sum(field, **kwargs):
    # Coalesce so an empty set sums to 0.00 instead of None
    return Coalesce(
        Sum(field, **kwargs),
        Value(ZERO),
        output_field=DecimalField(max_digits=19, decimal_places=4),
    )


def _open_invoices(ctx, invoice_type):
    if invoice_type not in PARTY_TYPE_FOR_INVOICE_TYPE:
        raise LedgerValidationError(f"Unknown invoice_type {invoice_type!r}")
    return (
        Invoice.objects.for_organization(ctx.organization)
        .filter(invoice_type=invoice_type)
        .exclude(status="cancelled")
        .annotate(paid=_money_sum("allocations__allocated_amount"))
    )


def party_balance(ctx, party):
    """Σ total_amount of the party's invoices that are not fully paid."""
    columns = party_columns(party)
    aggs = (
        Invoice.objects.for_organization(ctx.organization)
        .filter(**columns)
        .unpaid()
        .aggregate(balance=Sum("total_amount"))
    )
    return aggs["balance"] or ZERO


def invoice_aging(ctx, invoice_type, *, as_of=None):
    """
    Outstanding (total - allocated) of sent/approved/partial invoices,
    bucketed by days past due at `as_of`.
    """
    as_of = as_of or timezone.now()
    buckets = {"current": ZERO}
    buckets.update({label: ZERO for label, _, _ in AGING_BUCKETS})

    invoices = _open_invoices(ctx, invoice_type).filter(
        status__in=("sent", "approved", "partial")
    )
    for invoice in invoices:
        outstanding = max(invoice.total_amount - invoice.paid, ZERO)
        if not outstanding:
            continue
        days = (as_of - invoice.due_date).days
        if days < 1:
            buckets["current"] += outstanding
            continue
        for label, low, high in AGING_BUCKETS:
            if days >= low and (high is None or days <= high):
                buckets[label] += outstanding
                break

    buckets["total"] = sum(buckets.values(), ZERO)
    return buckets


def invoice_stats(ctx, invoice_type, *, now=None):
    """Counts and open amounts for one invoice type (cancelled excluded)."""
    now = now or timezone.now()
    invoices = list(_open_invoices(ctx, invoice_type))
    unpaid = [invoice for invoice in invoices if invoice.status != "paid"]
    overdue = [invoice for invoice in unpaid if invoice.is_overdue(now)]

    def outstanding(rows):
        return sum((max(row.total_amount - row.paid, ZERO) for row in rows), ZERO)

    return {
        "total_count": len(invoices),
        "draft_count": sum(1 for invoice in invoices if invoice.status == "draft"),
        "unpaid_count": len(unpaid),
        "total_unpaid_amount": outstanding(unpaid),
        "overdue_count": len(overdue),
        "total_overdue_amount": outstanding(overdue),
    }


def trial_balance(ctx, as_of):
    """
    Posted lines up to `as_of`, summed per account.
    net_balance = debits - credits (positive means a debit balance).
    """
    rows = (
        JournalEntryLine.objects.filter(
            entry__organization=ctx.organization,
            entry__status="posted",
            entry__entry_date__lte=as_of,
        )
        .values("account_id", "account__code", "account__name", "account__account_type")
        .annotate(
            total_debit=_money_sum("debit_amount"),
            total_credit=_money_sum("credit_amount"),
        )
        .order_by("account__code")
    )
    return [
        {
            "account_id": row["account_id"],
            "account_code": row["account__code"],
            "account_name": row["account__name"],
            "account_type": row["account__account_type"],
            "total_debit": row["total_debit"],
            "total_credit": row["total_credit"],
            "net_balance": row["total_debit"] - row["total_credit"],
        }
        for row in rows
    ]


def bank_balance_after(ctx, bank_account_id, *, as_of=None):
    """
    opening_balance + cleared received - cleared sent,
    counting payments dated up to `as_of`.
    """
    bank_account = get_scoped(BankAccount, ctx, bank_account_id,
                              BankAccountNotFoundError, label="Bank account")
    payments = Payment.objects.for_organization(ctx.organization).filter(
        bank_account=bank_account, status="cleared"
    )
    if as_of is not None:
        payments = payments.filter(payment_date__lte=as_of)
    aggs = payments.aggregate(
        received=_money_sum("amount", filter=Q(payment_type="received")),
        sent=_money_sum("amount", filter=Q(payment_type="sent")),
    )
    return bank_account.opening_balance + aggs["received"] - aggs["sent"]
