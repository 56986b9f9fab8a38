import logging

from celery import shared_task
from django.utils.dateparse import parse_datetime

from .exceptions import ConcurrencyError

logger = logging.getLogger(__name__)


@shared_task(  # register this function as a Celery task
    bind=True,
    # lock conflicts roll back cleanly, so the whole call is retried
    autoretry_for=(ConcurrencyError,),
    retry_backoff=True,      # 1s, 2s, 4s, ...
    retry_backoff_max=60,
    retry_jitter=True,
    max_retries=5,
)
def record_payment_task(self, organization_id, party_type, party_id, amount,
                        payment_date, payment_method, allocations,
                        user_id=None, reference_number=None,
                        bank_account_id=None, notes=""):
    """
    JSON-friendly wrapper around services.record_payment.
    amount/allocation amounts travel as strings, payment_date as ISO 8601.
    Returns the new payment's id.
    """
    # import lazily to avoid circular imports at module import time
    from .context import TenantContext
    from .references import make_party
    from .services import record_payment

    ctx = TenantContext.for_ids(organization_id, user_id)
    when = parse_datetime(payment_date) if isinstance(payment_date, str) else payment_date

    logger.info("record_payment_task org=%s attempt=%d",
                organization_id, self.request.retries + 1)
    payment = record_payment(
        ctx,
        make_party(party_type, party_id),
        amount,
        when,
        payment_method,
        allocations,
        reference_number=reference_number,
        bank_account_id=bank_account_id,
        notes=notes,
    )
    return payment.pk
