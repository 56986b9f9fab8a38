import logging
from contextlib import contextmanager

from django.db import OperationalError, transaction

from ..exceptions import ConcurrencyError

logger = logging.getLogger(__name__)


@contextmanager
def atomic_write(operation: str):
    """
    transaction.atomic() that reports lock failures as ConcurrencyError.

    Deadlocks, lock timeouts and serialization failures surface from the
    driver as OperationalError. The atomic block has already rolled back
    by the time the error reaches the except clause, so nothing partial
    is ever committed and the caller may retry.
    """
    try:
        with transaction.atomic():
            yield
    except OperationalError as exc:
        logger.warning("%s rolled back on lock conflict: %s", operation, exc)
        raise ConcurrencyError(f"{operation} conflicted with a concurrent write; retry") from exc
