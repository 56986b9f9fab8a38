import logging
from decimal import Decimal

from django.conf import settings
from django.db import models

from ..exceptions import (BankAccountNotFoundError, InvalidStateError,
                          InvoiceNotFoundError, LedgerValidationError,
                          OverAllocationError, PartyMismatchError,
                          PartyNotFoundError, PaymentNotFoundError)
from ..models import (BankAccount, Customer, Invoice, Payment,
                      PaymentAllocation, Supplier)
from ..models.invoice import PARTY_TYPE_FOR_INVOICE_TYPE
from ..models.payment import (PAYMENT_METHODS, PAYMENT_TYPE_FOR_PARTY_TYPE,
                              PAYMENT_TYPES)
from ..references import CustomerParty, SupplierParty, party_columns
from .audit_helper import log_action
from .locking import atomic_write
from .numbering import next_number
from .validation import get_scoped, get_scoped_or_cross, positive_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
PAYMENT_METHOD_VALUES = {value for value, _ in PAYMENT_METHODS}
PAYMENT_TYPE_VALUES = {value for value, _ in PAYMENT_TYPES}
# Statuses that become "partial" when that option is on
PARTIAL_FROM_STATUSES = ("sent", "approved")


# ----------------------------
# Pure helpers (no writes)
# ----------------------------
def _check_party(ctx, party):
    if not isinstance(party, (CustomerParty, SupplierParty)):
        raise PartyMismatchError(f"Not a party: {party!r}")
    model = Customer if isinstance(party, CustomerParty) else Supplier
    if not model.objects.for_organization(ctx.organization).filter(pk=party.party_id).exists():
        raise PartyNotFoundError(f"{party.party_type} {party.party_id} not found")
    return party_columns(party)


def _normalize_allocations(amount, allocations):
    """[(invoice_id, amount), ...] in caller order; Σ must not exceed the payment."""
    normalized = []
    for index, allocation in enumerate(allocations or [], start=1):
        invoice_id = allocation.get("invoice_id")
        if invoice_id is None:
            raise LedgerValidationError(f"Allocation {index}: invoice_id is required")
        normalized.append(
            (invoice_id, positive_money(allocation.get("amount"), f"allocation {index} amount"))
        )

    allocated = sum((value for _, value in normalized), ZERO)
    if allocated > amount:
        raise OverAllocationError(
            f"Allocations total {allocated} exceeds payment amount {amount}"
        )
    return normalized


def _lock_invoices(ctx, invoice_ids):
    """
    SELECT ... FOR UPDATE every target invoice, lowest id first,
    so two payments touching the same invoices can't deadlock.
    """
    return {
        invoice_id: get_scoped_or_cross(Invoice, ctx, invoice_id, InvoiceNotFoundError, lock=True)
        for invoice_id in sorted(set(invoice_ids))
    }


def _check_invoice_accepts(invoice, payment):
    if invoice.status == "cancelled":
        raise InvalidStateError(f"Invoice {invoice.invoice_number} is cancelled")
    # received payments settle receivables, sent payments settle payables
    if PARTY_TYPE_FOR_INVOICE_TYPE[invoice.invoice_type] != payment.party_type:
        raise PartyMismatchError(
            f"A {payment.payment_type} payment cannot settle {invoice.invoice_type} "
            f"invoice {invoice.invoice_number}"
        )
    if invoice.party != payment.party:
        raise PartyMismatchError(
            f"Invoice {invoice.invoice_number} belongs to another {invoice.party_type}"
        )


def recompute_invoice_payment_state(invoice):
    """
    Re-read ALL allocations of a (locked) invoice and refresh its flags.

    payment_status: paid / partially_paid
    status:         paid once fully settled, otherwise left as it is
                    (a draft that receives money stays draft). With
                    PARTIAL_STATUS_ON_ALLOCATION on, sent/approved
                    invoices move to partial.
    """
    total_paid = invoice.allocations.aggregate(
        total=models.Sum("allocated_amount")
    )["total"] or ZERO
    is_paid = total_paid >= invoice.total_amount

    invoice.payment_status = "paid" if is_paid else "partially_paid"
    if is_paid:
        invoice.status = "paid"
    elif settings.LEDGER["PARTIAL_STATUS_ON_ALLOCATION"] and invoice.status in PARTIAL_FROM_STATUSES:
        invoice.status = "partial"
    invoice.save(update_fields=["payment_status", "status", "updated_at"])
    return total_paid


# ----------------------------
# Payment workflows
# ----------------------------
def record_payment(ctx, party, amount, payment_date, payment_method, allocations, *,
                   reference_number=None, bank_account_id=None, notes=""):
    """
    Record a payment and allocate it to invoices in one transaction.

    Each target invoice row stays locked from the first read of its
    allocations until commit, so concurrent payments against the same
    invoice are serialized and never double-count.
    """
    amount = positive_money(amount)
    if payment_method not in PAYMENT_METHOD_VALUES:
        raise LedgerValidationError(f"Unknown payment_method {payment_method!r}")
    normalized = _normalize_allocations(amount, allocations)

    with atomic_write("record_payment"):
        columns = _check_party(ctx, party)

        bank_account = None
        if bank_account_id is not None:
            bank_account = get_scoped(BankAccount, ctx, bank_account_id,
                                      BankAccountNotFoundError, label="Bank account")

        invoices = _lock_invoices(ctx, [invoice_id for invoice_id, _ in normalized])

        payment = Payment.objects.create(
            organization=ctx.organization,
            payment_type=PAYMENT_TYPE_FOR_PARTY_TYPE[columns["party_type"]],
            payment_number=next_number(ctx.organization, "payment"),
            payment_date=payment_date,
            amount=amount,
            payment_method=payment_method,
            reference_number=reference_number,
            bank_account=bank_account,
            status="cleared",
            notes=notes,
            created_by=ctx.user,
            **columns,
        )

        for invoice_id, allocated in normalized:
            invoice = invoices[invoice_id]
            _check_invoice_accepts(invoice, payment)

            # fresh sum under the row lock
            already = invoice.allocated_total()
            if already + allocated > invoice.total_amount:
                raise OverAllocationError(
                    f"Invoice {invoice.invoice_number}: {already} already allocated, "
                    f"{allocated} more exceeds total {invoice.total_amount}"
                )

            allocation = PaymentAllocation.objects.create(
                payment=payment, invoice=invoice, allocated_amount=allocated,
            )
            total_paid = recompute_invoice_payment_state(invoice)

            log_action(action="allocate", instance=allocation, ctx=ctx,
                       changes={"invoice_id": invoice.pk,
                                "payment_id": payment.pk,
                                "amount": str(allocated)})
            log_action(action="update", instance=invoice, ctx=ctx,
                       changes={"total_paid": str(total_paid),
                                "payment_status": invoice.payment_status,
                                "status": invoice.status})

        if settings.LEDGER["POST_ACCRUALS"] and bank_account is not None:
            # lazy import, posting depends on the journal service
            from .posting import post_payment_clearing
            post_payment_clearing(ctx, payment)

        log_action(action="create", instance=payment, ctx=ctx,
                   changes={"payment_number": payment.payment_number,
                            "amount": str(amount),
                            "allocations": len(normalized)})

    logger.info("payment %s recorded org=%s amount=%s allocations=%d",
                payment.payment_number, ctx.organization_id, amount, len(normalized))
    return payment


def get_payment(ctx, payment_id):
    return get_scoped(Payment, ctx, payment_id, PaymentNotFoundError, label="Payment")


def list_payments(ctx, *, payment_type=None, party=None):
    qs = Payment.objects.for_organization(ctx.organization)
    if payment_type is not None:
        if payment_type not in PAYMENT_TYPE_VALUES:
            raise LedgerValidationError(f"Unknown payment_type {payment_type!r}")
        qs = qs.filter(payment_type=payment_type)
    if party is not None:
        columns = party_columns(party)
        qs = qs.filter(party_type=columns["party_type"],
                       customer_id=columns["customer_id"],
                       supplier_id=columns["supplier_id"])
    return list(qs.prefetch_related("allocations"))
