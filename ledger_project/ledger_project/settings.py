import os
import sys
from decimal import Decimal
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "changeme")
DEBUG = os.getenv("DJANGO_DEBUG", "False") == "True"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost").split(",")

TESTING = "PYTEST_CURRENT_TEST" in os.environ or "pytest" in sys.modules or "test" in sys.argv

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "ledger_core.apps.LedgerCoreConfig",
]

# =============================================================================
# Database
# =============================================================================
# The ledger relies on row locks (SELECT ... FOR UPDATE); use PostgreSQL in
# production. SQLite is accepted for local work and the test-suite.
DATABASES = {
    "default": dj_database_url.config(
        env="DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
# invoice/payment/entry timestamps are stored naive
USE_TZ = False

# =============================================================================
# Ledger options
# =============================================================================
LEDGER = {
    # Post AR/AP accrual entries on invoice approval and clearing entries
    # on payments. Off in the current business model.
    "POST_ACCRUALS": os.getenv("LEDGER_POST_ACCRUALS", "False") == "True",
    # Move sent/approved invoices to "partial" when an allocation does not
    # settle them. Off: only payment_status moves, status stays.
    "PARTIAL_STATUS_ON_ALLOCATION": os.getenv("LEDGER_PARTIAL_STATUS", "False") == "True",
    # Largest |debits - credits| still treated as balanced
    "BALANCE_TOLERANCE": Decimal(os.getenv("LEDGER_BALANCE_TOLERANCE", "0.005")),
    # Fallback control accounts (by code) used by the accrual hook
    "ACCOUNT_CODES": {
        "accounts_receivable": os.getenv("LEDGER_AR_CODE", "1200"),
        "accounts_payable": os.getenv("LEDGER_AP_CODE", "2000"),
        "sales_tax": os.getenv("LEDGER_SALES_TAX_CODE", "2100"),
        "input_tax": os.getenv("LEDGER_INPUT_TAX_CODE", "1300"),
        "sales_discount": os.getenv("LEDGER_SALES_DISCOUNT_CODE", "4900"),
        "purchase_discount": os.getenv("LEDGER_PURCHASE_DISCOUNT_CODE", "5900"),
        "cash": os.getenv("LEDGER_CASH_CODE", "1000"),
    },
}

# =============================================================================
# Celery
# =============================================================================
CELERY_BROKER_URL = os.getenv("REDIS_URL", "memory://")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TIME_LIMIT = 5 * 60
# run tasks inline while testing
CELERY_TASK_ALWAYS_EAGER = TESTING or os.getenv("CELERY_TASK_ALWAYS_EAGER", "False") == "True"
CELERY_TASK_EAGER_PROPAGATES = True

# =============================================================================
# Logging
# =============================================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "[{asctime}] {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "ledger_core": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}
