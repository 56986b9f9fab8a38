# The Celery app lives in ledger_project/celery.py and reads its
# configuration from Django settings (CELERY_ prefix).
# Importing it here makes sure it is loaded when Django starts,
# so @shared_task in ledger_core.tasks binds to this app.
from .celery import celery_app

__all__ = ("celery_app",)

""" Workers are started with "celery -A ledger_project worker -l info".
    -A ledger_project imports this package and picks up celery_app. """
