import logging
import re
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import (AccountInactiveError, AccountNotFoundError,
                          AlreadyApprovedError, DuplicateInvoiceNumberError,
                          EmptyLinesError, InvalidAmountError,
                          InvalidLineError, InvalidStateError,
                          InvoiceNotFoundError, LedgerValidationError,
                          OverAllocationError, PartyMismatchError,
                          PartyNotFoundError)
from ..models import Customer, GLAccount, Invoice, InvoiceLine, Supplier
from ..models.invoice import INVOICE_STATUS_CHOICES, PARTY_TYPE_FOR_INVOICE_TYPE
from ..references import CustomerParty, SupplierParty, party_columns
from .audit_helper import log_action
from .locking import atomic_write
from .payments import recompute_invoice_payment_state
from .validation import get_scoped, to_decimal, to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
INVOICE_STATUS_VALUES = {value for value, _ in INVOICE_STATUS_CHOICES}
EDITABLE_FIELDS = {
    "invoice_type", "party", "invoice_number", "invoice_date", "due_date",
    "currency", "lines", "discount_amount", "notes",
}
# Only these may still be cancelled, and only without allocations
CANCELLABLE_STATUSES = ("draft", "sent", "approved")
# InvoiceLine.quantity / unit_price precision
LINE_PLACES = 4


# ----------------------------
# Pure helpers (no writes)
# ----------------------------
def _check_party(ctx, invoice_type, party):
    """receivable ⇔ customer, payable ⇔ supplier; party must be ours"""
    if invoice_type not in PARTY_TYPE_FOR_INVOICE_TYPE:
        raise LedgerValidationError(f"Unknown invoice_type {invoice_type!r}")
    if not isinstance(party, (CustomerParty, SupplierParty)):
        raise PartyMismatchError(f"Not a party: {party!r}")
    expected = PARTY_TYPE_FOR_INVOICE_TYPE[invoice_type]
    if party.party_type != expected:
        raise PartyMismatchError(
            f"{invoice_type} invoices belong to a {expected}, not a {party.party_type}"
        )
    model = Customer if isinstance(party, CustomerParty) else Supplier
    if not model.objects.for_organization(ctx.organization).filter(pk=party.party_id).exists():
        raise PartyNotFoundError(f"{party.party_type} {party.party_id} not found")
    return party_columns(party)


def _check_currency(currency):
    if not isinstance(currency, str) or not CURRENCY_RE.match(currency):
        raise LedgerValidationError(f"Currency must be a 3-letter ISO code, got {currency!r}")
    return currency


def compute_line(quantity, unit_price, tax_rate):
    """
    subtotal = quantity × unit_price
    tax      = subtotal × tax_rate / 100
    total    = subtotal + tax
    each rounded half-up to cents
    """
    subtotal = to_money(quantity * unit_price)
    tax = to_money(subtotal * tax_rate / HUNDRED)
    return subtotal, tax, subtotal + tax


def _prepare_lines(lines):
    """Validate lines and compute their amounts, in caller order."""
    lines = list(lines or [])
    if not lines:
        raise EmptyLinesError("An invoice needs at least one line")

    prepared = []
    for index, line in enumerate(lines, start=1):
        account_id = line.get("account_id")
        if account_id is None:
            raise InvalidLineError(f"Line {index}: account_id is required")
        quantity = to_decimal(line.get("quantity", 1), f"line {index} quantity")
        unit_price = to_decimal(line.get("unit_price", 0), f"line {index} unit_price")
        tax_rate = to_decimal(line.get("tax_rate") or 0, f"line {index} tax_rate")

        if quantity <= 0:
            raise InvalidLineError(f"Line {index}: quantity must be > 0")
        if unit_price < 0:
            raise InvalidLineError(f"Line {index}: unit_price must be >= 0")
        if not ZERO <= tax_rate <= HUNDRED:
            raise InvalidLineError(f"Line {index}: tax_rate must be between 0 and 100")
        # the stored line must reproduce its own total
        for name, value in (("quantity", quantity), ("unit_price", unit_price)):
            if -value.normalize().as_tuple().exponent > LINE_PLACES:
                raise InvalidLineError(
                    f"Line {index}: {name} allows at most {LINE_PLACES} decimal places"
                )

        subtotal, tax, total = compute_line(quantity, unit_price, tax_rate)
        prepared.append({
            "line_number": index,
            "account_id": account_id,
            "description": line.get("description") or "",
            "quantity": quantity,
            "unit_price": unit_price,
            "tax_rate": tax_rate,
            "tax_amount": tax,
            "total_amount": total,
        })
    return prepared


def _totals(prepared, discount_amount):
    total = sum((line["total_amount"] for line in prepared), ZERO)
    tax = sum((line["tax_amount"] for line in prepared), ZERO)
    discount = to_money(discount_amount, "discount_amount")
    if discount < 0 or discount > total:
        raise InvalidAmountError(f"discount_amount must be between 0 and {total}")
    return {
        "total_amount": total,
        "tax_amount": tax,
        "discount_amount": discount,
        "net_amount": total - discount,
    }


def _check_line_accounts(ctx, prepared):
    wanted = {line["account_id"] for line in prepared}
    accounts = GLAccount.objects.for_organization(ctx.organization).in_bulk(wanted)
    for account_id in wanted:
        account = accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        if not account.is_active:
            raise AccountInactiveError(f"Account {account.code} is inactive")


def _write_lines(invoice, prepared):
    InvoiceLine.objects.bulk_create([InvoiceLine(invoice=invoice, **line) for line in prepared])


def _check_number_free(ctx, invoice_type, invoice_number, exclude_pk=None):
    qs = Invoice.objects.for_organization(ctx.organization).filter(
        invoice_type=invoice_type, invoice_number=invoice_number
    )
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    if qs.exists():
        raise DuplicateInvoiceNumberError(
            f"{invoice_type} invoice {invoice_number} already exists"
        )


def _lock_invoice(ctx, invoice_id):
    return get_scoped(Invoice, ctx, invoice_id, InvoiceNotFoundError, lock=True, label="Invoice")


# ----------------------------
# Invoice workflows
# ----------------------------
def create_invoice(ctx, invoice_type, party, invoice_number, invoice_date, due_date,
                   currency, lines, *, discount_amount=0, notes=""):
    """Header + lines in one transaction; status draft, payment_status unpaid."""
    if not invoice_number:
        raise LedgerValidationError("invoice_number is required")
    _check_currency(currency)
    prepared = _prepare_lines(lines)
    totals = _totals(prepared, discount_amount)

    with atomic_write("create_invoice"):
        columns = _check_party(ctx, invoice_type, party)
        _check_line_accounts(ctx, prepared)
        _check_number_free(ctx, invoice_type, invoice_number)

        try:
            with transaction.atomic():
                invoice = Invoice.objects.create(
                    organization=ctx.organization,
                    invoice_type=invoice_type,
                    invoice_number=invoice_number,
                    invoice_date=invoice_date,
                    due_date=due_date,
                    currency=currency,
                    notes=notes,
                    created_by=ctx.user,
                    **columns,
                    **totals,
                )
        except IntegrityError:
            raise DuplicateInvoiceNumberError(
                f"{invoice_type} invoice {invoice_number} already exists"
            )
        _write_lines(invoice, prepared)

        log_action(action="create", instance=invoice, ctx=ctx,
                   changes={"invoice_number": invoice_number,
                            "total_amount": str(totals["total_amount"])})

    logger.info("invoice %s created org=%s type=%s total=%s",
                invoice_number, ctx.organization_id, invoice_type, totals["total_amount"])
    return invoice


def update_invoice(ctx, invoice_id, **changes):
    """Draft-only edit; lines, when given, replace the old ones."""
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise LedgerValidationError(f"Fields not editable: {sorted(unknown)}")

    with atomic_write("update_invoice"):
        invoice = _lock_invoice(ctx, invoice_id)
        if invoice.status != "draft":
            raise InvalidStateError(
                f"Invoice {invoice.invoice_number} is {invoice.status}; only drafts can be edited"
            )

        has_allocations = invoice.allocations.exists()
        invoice_type = changes.get("invoice_type", invoice.invoice_type)
        if has_allocations and (invoice_type != invoice.invoice_type
                                or changes.get("party", invoice.party) != invoice.party):
            raise InvalidStateError(
                f"Invoice {invoice.invoice_number} has payments allocated; "
                "its type and party cannot change"
            )
        if "invoice_type" in changes or "party" in changes:
            party = changes.get("party", invoice.party)
            for field, value in _check_party(ctx, invoice_type, party).items():
                setattr(invoice, field, value)
            invoice.invoice_type = invoice_type

        if "invoice_number" in changes or "invoice_type" in changes:
            number = changes.get("invoice_number", invoice.invoice_number)
            if not number:
                raise LedgerValidationError("invoice_number is required")
            _check_number_free(ctx, invoice_type, number, exclude_pk=invoice.pk)
            invoice.invoice_number = number

        if "currency" in changes:
            invoice.currency = _check_currency(changes["currency"])
        for field in ("invoice_date", "due_date", "notes"):
            if field in changes:
                setattr(invoice, field, changes[field])

        # Recompute every total from the lines that will be stored
        if "lines" in changes:
            prepared = _prepare_lines(changes["lines"])
            _check_line_accounts(ctx, prepared)
        else:
            prepared = list(invoice.lines.values(
                "line_number", "account_id", "description", "quantity",
                "unit_price", "tax_rate", "tax_amount", "total_amount",
            ))
        totals = _totals(prepared, changes.get("discount_amount", invoice.discount_amount))
        if has_allocations:
            allocated = invoice.allocated_total()
            if totals["total_amount"] < allocated:
                raise OverAllocationError(
                    f"Invoice {invoice.invoice_number}: {allocated} already allocated, "
                    f"total cannot drop to {totals['total_amount']}"
                )
        for field, value in totals.items():
            setattr(invoice, field, value)

        if "lines" in changes:
            invoice.lines.all().delete()
            _write_lines(invoice, prepared)

        invoice.save()
        if has_allocations:
            recompute_invoice_payment_state(invoice)
        log_action(action="update", instance=invoice, ctx=ctx,
                   changes={"fields": sorted(changes),
                            "total_amount": str(invoice.total_amount)})
    return invoice


def approve_invoice(ctx, invoice_id):
    """
    draft → sent (receivable) or draft → approved (payable).
    Anything but draft fails and leaves the row untouched.
    """
    with atomic_write("approve_invoice"):
        invoice = _lock_invoice(ctx, invoice_id)
        if invoice.status != "draft":
            raise AlreadyApprovedError(
                f"Invoice {invoice.invoice_number} is already {invoice.status}"
            )

        now = timezone.now()
        previous = invoice.status
        if invoice.invoice_type == "receivable":
            invoice.status = "sent"
            invoice.sent_at = now
        else:
            invoice.status = "approved"
        invoice.approved_at = now
        invoice.approved_by = ctx.user
        invoice.save(update_fields=["status", "sent_at", "approved_at", "approved_by", "updated_at"])

        if settings.LEDGER["POST_ACCRUALS"]:
            # lazy import, posting depends on the journal service
            from .posting import post_invoice_accrual
            post_invoice_accrual(ctx, invoice)

        log_action(action="approve", instance=invoice, ctx=ctx,
                   changes={"status": {"from": previous, "to": invoice.status}})

    logger.info("invoice %s approved org=%s status=%s",
                invoice.invoice_number, ctx.organization_id, invoice.status)
    return invoice


def cancel_invoice(ctx, invoice_id):
    with atomic_write("cancel_invoice"):
        invoice = _lock_invoice(ctx, invoice_id)
        if invoice.status not in CANCELLABLE_STATUSES:
            raise InvalidStateError(
                f"Invoice {invoice.invoice_number} is {invoice.status}; it cannot be cancelled"
            )
        if invoice.allocations.exists():
            raise InvalidStateError(
                f"Invoice {invoice.invoice_number} has payments allocated"
            )
        previous = invoice.status
        invoice.status = "cancelled"
        invoice.cancelled_at = timezone.now()
        invoice.save(update_fields=["status", "cancelled_at", "updated_at"])
        log_action(action="cancel", instance=invoice, ctx=ctx,
                   changes={"status": {"from": previous, "to": "cancelled"}})
    return invoice


def delete_invoice(ctx, invoice_id):
    with atomic_write("delete_invoice"):
        invoice = _lock_invoice(ctx, invoice_id)
        if invoice.status != "draft":
            raise InvalidStateError(
                f"Invoice {invoice.invoice_number} is {invoice.status}; only drafts can be deleted"
            )
        log_action(action="delete", instance=invoice, ctx=ctx,
                   changes={"invoice_number": invoice.invoice_number})
        invoice.delete()
    logger.info("invoice %s deleted org=%s", invoice.invoice_number, ctx.organization_id)


def get_invoice(ctx, invoice_id):
    return get_scoped(Invoice, ctx, invoice_id, InvoiceNotFoundError, label="Invoice")


def list_invoices(ctx, *, invoice_type=None, status=None, date_from=None, date_to=None,
                  party=None, now=None):
    """
    status="overdue" is answered with the read-time predicate,
    every other status is matched as stored.
    """
    qs = Invoice.objects.for_organization(ctx.organization)
    if invoice_type is not None:
        qs = qs.filter(invoice_type=invoice_type)
    if status == "overdue":
        qs = qs.overdue(now or timezone.now())
    elif status is not None:
        if status not in INVOICE_STATUS_VALUES:
            raise LedgerValidationError(f"Unknown status {status!r}")
        qs = qs.filter(status=status)
    if date_from is not None:
        qs = qs.filter(invoice_date__gte=date_from)
    if date_to is not None:
        qs = qs.filter(invoice_date__lte=date_to)
    if party is not None:
        columns = party_columns(party)
        qs = qs.filter(party_type=columns["party_type"],
                       customer_id=columns["customer_id"],
                       supplier_id=columns["supplier_id"])
    return list(qs.prefetch_related("lines"))
