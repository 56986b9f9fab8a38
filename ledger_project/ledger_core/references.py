"""
Tagged variants for the two polymorphic pointers in the ledger.

Party:      which counterparty an invoice/payment belongs to.
            Stored as party_type + customer_id/supplier_id columns.
Reference:  which source document produced a journal entry.
            Stored as reference_type + reference_id columns.

Services only ever see the variants; the column pairs are read and written
through the helpers below.
"""
from dataclasses import dataclass
from typing import Optional, Union


# ---------- Party ----------
@dataclass(frozen=True)
class CustomerParty:
    customer_id: int
    party_type = "customer"

    @property
    def party_id(self):
        return self.customer_id


@dataclass(frozen=True)
class SupplierParty:
    supplier_id: int
    party_type = "supplier"

    @property
    def party_id(self):
        return self.supplier_id


Party = Union[CustomerParty, SupplierParty]


def party_columns(party: Party) -> dict:
    """Translate a Party into the model's column values."""
    if isinstance(party, CustomerParty):
        return {"party_type": "customer", "customer_id": party.customer_id, "supplier_id": None}
    if isinstance(party, SupplierParty):
        return {"party_type": "supplier", "customer_id": None, "supplier_id": party.supplier_id}
    raise TypeError(f"Unknown party variant: {party!r}")


def party_from_columns(party_type: str, customer_id, supplier_id) -> Party:
    if party_type == "customer":
        return CustomerParty(customer_id)
    if party_type == "supplier":
        return SupplierParty(supplier_id)
    raise ValueError(f"Unknown party_type: {party_type!r}")


def make_party(party_type: str, party_id: int) -> Party:
    return party_from_columns(party_type, party_id, party_id)


# ---------- Reference ----------
@dataclass(frozen=True)
class InvoiceRef:
    invoice_id: int
    reference_type = "invoice"

    @property
    def reference_id(self):
        return self.invoice_id


@dataclass(frozen=True)
class PaymentRef:
    payment_id: int
    reference_type = "payment"

    @property
    def reference_id(self):
        return self.payment_id


@dataclass(frozen=True)
class PayrollRef:
    payroll_id: int
    reference_type = "payroll"

    @property
    def reference_id(self):
        return self.payroll_id


# reversing entries point back at the entry they reverse
@dataclass(frozen=True)
class JournalEntryRef:
    entry_id: int
    reference_type = "journal_entry"

    @property
    def reference_id(self):
        return self.entry_id


Reference = Union[InvoiceRef, PaymentRef, PayrollRef, JournalEntryRef]

_REFERENCE_TYPES = {
    "invoice": InvoiceRef,
    "payment": PaymentRef,
    "payroll": PayrollRef,
    "journal_entry": JournalEntryRef,
}


def reference_columns(reference: Optional[Reference]) -> dict:
    if reference is None:
        return {"reference_type": None, "reference_id": None}
    if not isinstance(reference, tuple(_REFERENCE_TYPES.values())):
        raise TypeError(f"Unknown reference variant: {reference!r}")
    return {
        "reference_type": reference.reference_type,
        "reference_id": reference.reference_id,
    }


def reference_from_columns(reference_type, reference_id) -> Optional[Reference]:
    if reference_type is None:
        return None
    try:
        return _REFERENCE_TYPES[reference_type](reference_id)
    except KeyError:
        raise ValueError(f"Unknown reference_type: {reference_type!r}")
