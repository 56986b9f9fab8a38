import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ledger_project.settings")

celery_app = Celery("ledger_project")

# broker, serializers and eager mode come from the CELERY_* settings
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# ack after the task body returns; record_payment commits all-or-nothing,
# so a task lost with its worker is simply run again
celery_app.conf.task_acks_late = True
celery_app.conf.task_reject_on_worker_lost = True

celery_app.autodiscover_tasks(["ledger_core"])
