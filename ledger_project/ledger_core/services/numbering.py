from django.db import transaction

from ..models import OrganizationSequence

# Document family → printed prefix
PREFIXES = {
    "journal_entry": "JE",
    "payment": "PAY",
}


def next_value(organization, name: str) -> int:
    """
    Allocate the next value for an organization/name counter.
    The counter row is locked until the caller's transaction ends,
    so concurrent writers never draw the same number.
    """
    with transaction.atomic():
        # make sure the row exists (get_or_create retries on the unique race)
        OrganizationSequence.objects.get_or_create(organization=organization, name=name)
        seq = OrganizationSequence.objects.select_for_update().get(
            organization=organization, name=name
        )
        seq.last_value += 1
        seq.save(update_fields=["last_value"])
        return seq.last_value


def next_number(organization, name: str) -> str:
    """JE-000001, PAY-000042, ..."""
    return f"{PREFIXES[name]}-{next_value(organization, name):06d}"
