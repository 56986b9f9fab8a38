from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .exceptions import EntryPostedError, InvalidStateError
from .models import Invoice, JournalEntry, JournalEntryLine, PaymentAllocation

""" Only draft invoices may be deleted (cancel the others)."""


# pre_delete signal auto-fires just before Django deletes a model instance
@receiver(pre_delete, sender=Invoice)
def prevent_delete_issued_invoice(sender, instance, **kwargs):
    if instance.status != "draft":
        raise InvalidStateError(
            f"Cannot delete invoice {instance.invoice_number} in status {instance.status}."
        )


"""Posted journal entries are reversed, never deleted."""


@receiver(pre_delete, sender=JournalEntry)
def prevent_delete_posted_entry(sender, instance, **kwargs):
    if instance.status == "posted":
        raise EntryPostedError(
            f"Cannot delete posted journal entry {instance.entry_number}."
        )


@receiver(pre_delete, sender=JournalEntryLine)
def prevent_delete_posted_line(sender, instance, **kwargs):
    if JournalEntry.objects.filter(pk=instance.entry_id, status="posted").exists():
        raise EntryPostedError("Cannot delete a line of a posted journal entry.")


"""Allocations are append-only."""


@receiver(pre_delete, sender=PaymentAllocation)
def prevent_delete_allocation(sender, instance, **kwargs):
    raise InvalidStateError("Payment allocations cannot be deleted.")
