import logging
from collections import OrderedDict
from decimal import Decimal

from django.conf import settings

from ..exceptions import AccountNotFoundError, LedgerValidationError
from ..models import GLAccount
from ..references import InvoiceRef, PaymentRef
from .journal import create_entry

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


# ----------------------------
# Automatic postings
# ----------------------------
def _account_by_role(ctx, role):
    """Configured control account, looked up by code within the organization"""
    code = settings.LEDGER["ACCOUNT_CODES"][role]
    account = GLAccount.objects.for_organization(ctx.organization).filter(code=code).first()
    if account is None:
        raise AccountNotFoundError(f"No {role} account (code {code}) configured")
    return account


def _receivable_account(ctx, invoice_or_payment):
    # Prefer the customer's default AR account, else the configured code
    account = invoice_or_payment.customer.default_ar_account
    return account or _account_by_role(ctx, "accounts_receivable")


def _payable_account(ctx, invoice_or_payment):
    account = invoice_or_payment.supplier.default_ap_account
    return account or _account_by_role(ctx, "accounts_payable")


def _line(account, debit=ZERO, credit=ZERO, description=""):
    return {"account_id": account.pk, "debit": debit, "credit": credit,
            "description": description}


def _subtotals_by_account(invoice):
    """Pre-tax line amounts grouped per account, first-seen order"""
    grouped = OrderedDict()
    for line in invoice.lines.select_related("account").order_by("line_number"):
        account, amount = grouped.get(line.account_id, (line.account, ZERO))
        grouped[line.account_id] = (account, amount + line.subtotal)
    return [(account, amount) for account, amount in grouped.values() if amount > 0]


def post_invoice_accrual(ctx, invoice):
    """
    Recognize an approved invoice in the general ledger.
      receivable:  Dr AR (net) + Dr sales discount / Cr revenue lines + Cr sales tax
      payable:     Dr expense lines + Dr input tax / Cr AP (net) + Cr purchase discount
    Returns the posted entry, or None for a zero-value invoice.
    """
    if invoice.total_amount <= 0:
        logger.info("invoice %s has no value; accrual skipped", invoice.invoice_number)
        return None

    label = f"Invoice {invoice.invoice_number}"
    subtotals = _subtotals_by_account(invoice)

    if invoice.invoice_type == "receivable":
        lines = []
        if invoice.net_amount > 0:
            lines.append(_line(_receivable_account(ctx, invoice), debit=invoice.net_amount, description=label))
        if invoice.discount_amount > 0:
            lines.append(_line(_account_by_role(ctx, "sales_discount"),
                               debit=invoice.discount_amount, description=f"{label} discount"))
        lines += [_line(account, credit=amount, description=label) for account, amount in subtotals]
        if invoice.tax_amount > 0:
            lines.append(_line(_account_by_role(ctx, "sales_tax"),
                               credit=invoice.tax_amount, description=f"{label} tax"))
    elif invoice.invoice_type == "payable":
        lines = [_line(account, debit=amount, description=label) for account, amount in subtotals]
        if invoice.tax_amount > 0:
            lines.append(_line(_account_by_role(ctx, "input_tax"),
                               debit=invoice.tax_amount, description=f"{label} tax"))
        if invoice.net_amount > 0:
            lines.append(_line(_payable_account(ctx, invoice), credit=invoice.net_amount, description=label))
        if invoice.discount_amount > 0:
            lines.append(_line(_account_by_role(ctx, "purchase_discount"),
                               credit=invoice.discount_amount, description=f"{label} discount"))
    else:
        raise LedgerValidationError(f"Unknown invoice_type {invoice.invoice_type!r}")

    entry = create_entry(
        ctx,
        invoice.approved_at or invoice.invoice_date,
        "automatic",
        f"Accrual for {label}",
        lines,
        reference=InvoiceRef(invoice.pk),
        post=True,
    )
    logger.info("accrual %s posted for invoice %s", entry.entry_number, invoice.invoice_number)
    return entry


def post_payment_clearing(ctx, payment):
    """
    Move a cleared payment through the bank account.
      received:  Dr bank / Cr AR
      sent:      Dr AP / Cr bank
    """
    if payment.bank_account is None:
        raise LedgerValidationError(f"Payment {payment.payment_number} has no bank account")

    bank = payment.bank_account.gl_account
    label = f"Payment {payment.payment_number}"
    if payment.payment_type == "received":
        lines = [
            _line(bank, debit=payment.amount, description=label),
            _line(_receivable_account(ctx, payment), credit=payment.amount, description=label),
        ]
    else:
        lines = [
            _line(_payable_account(ctx, payment), debit=payment.amount, description=label),
            _line(bank, credit=payment.amount, description=label),
        ]

    entry = create_entry(
        ctx,
        payment.payment_date,
        "automatic",
        f"Clearing for {label}",
        lines,
        reference=PaymentRef(payment.pk),
        post=True,
    )
    logger.info("clearing %s posted for payment %s", entry.entry_number, payment.payment_number)
    return entry
