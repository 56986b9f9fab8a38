class LedgerError(Exception):
    """Base class for every error the ledger core raises on purpose."""

    # Callers retry (with backoff) only when this is True
    retryable = False


# ---------- ValidationError: malformed input, caught before any write ----------
class LedgerValidationError(LedgerError):
    pass


class EmptyLinesError(LedgerValidationError):
    """Raised when an entry or invoice is submitted without enough lines."""
    pass


class InvalidLineError(LedgerValidationError):
    """Raised when a journal/invoice line carries impossible amounts."""
    pass


class InvalidAmountError(LedgerValidationError):
    pass


class PartyMismatchError(LedgerValidationError):
    """Raised when party type does not match invoice/payment type."""
    pass


class NormalBalanceMismatchError(LedgerValidationError):
    pass


# ---------- StateError: not legal in the entity's current state ----------
class StateError(LedgerError):
    pass


class InvalidStateError(StateError):
    pass


class AlreadyApprovedError(StateError):
    pass


class EntryPostedError(StateError):
    """Raised on any attempt to mutate a posted JournalEntry."""
    pass


class AlreadyReversedError(StateError):
    pass


class AccountInactiveError(StateError):
    pass


class AccountInUseError(StateError):
    pass


class ManualEntryNotAllowedError(StateError):
    pass


# ---------- IntegrityError: would break a ledger invariant ----------
class LedgerIntegrityError(LedgerError):
    pass


class UnbalancedEntryError(LedgerIntegrityError):
    """Raised when a JournalEntry fails double-entry balance check."""

    def __init__(self, total_debit, total_credit):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Journal entry not balanced: debits={total_debit}, credits={total_credit}"
        )


class OverAllocationError(LedgerIntegrityError):
    pass


class DuplicateCodeError(LedgerIntegrityError):
    pass


class DuplicateInvoiceNumberError(LedgerIntegrityError):
    pass


# ---------- NotFoundError: absent, or belongs to another organization ----------
class NotFoundError(LedgerError):
    pass


class AccountNotFoundError(NotFoundError):
    pass


class InvoiceNotFoundError(NotFoundError):
    pass


class PaymentNotFoundError(NotFoundError):
    pass


class EntryNotFoundError(NotFoundError):
    pass


class PartyNotFoundError(NotFoundError):
    pass


class BankAccountNotFoundError(NotFoundError):
    pass


class CrossOrganizationError(NotFoundError):
    """Raised when a referenced row exists but is owned by another tenant."""
    pass


# ---------- ConcurrencyError: lock/serialization conflict ----------
class ConcurrencyError(LedgerError):
    """The enclosing transaction was rolled back; safe to retry."""

    retryable = True
