from .accounts import (create_account, deactivate_account, get_account,
                       get_chart_of_accounts, update_account)
from .audit_helper import log_action
from .invoices import (approve_invoice, cancel_invoice, create_invoice,
                       delete_invoice, get_invoice, list_invoices,
                       update_invoice)
from .journal import (create_entry, delete_entry, get_entry, list_entries,
                      post_entry, reverse_entry)
from .payments import get_payment, list_payments, record_payment
from .posting import post_invoice_accrual, post_payment_clearing
from .reporting import (bank_balance_after, invoice_aging, invoice_stats,
                        party_balance, trial_balance)
