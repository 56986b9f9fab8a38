from .account import GLAccount
from .auditlog import AuditLog
from .banking import BankAccount
from .invoice import Invoice, InvoiceLine
from .journal import JournalEntry, JournalEntryLine
from .organization import Organization
from .party import Customer, Supplier
from .payment import Payment, PaymentAllocation
from .sequence import OrganizationSequence
