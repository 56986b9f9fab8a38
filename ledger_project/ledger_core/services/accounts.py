import logging

from django.db import IntegrityError, transaction

from ..exceptions import (AccountInUseError, AccountNotFoundError,
                          DuplicateCodeError, LedgerValidationError,
                          NormalBalanceMismatchError)
from ..models import GLAccount
from ..models.account import ACCOUNT_TYPES, NORMAL_BALANCE_BY_TYPE
from .audit_helper import log_action
from .locking import atomic_write
from .validation import get_scoped

logger = logging.getLogger(__name__)

ACCOUNT_TYPE_VALUES = {value for value, _ in ACCOUNT_TYPES}
# Fields update_account() lets through
EDITABLE_FIELDS = {"name", "description", "allow_manual_entries", "parent", "account_type"}


# ----------------------------
# Chart of accounts workflows
# ----------------------------
def _resolve_normal_balance(account_type, normal_balance):
    if account_type not in ACCOUNT_TYPE_VALUES:
        raise LedgerValidationError(f"Unknown account_type {account_type!r}")
    expected = NORMAL_BALANCE_BY_TYPE[account_type]
    if normal_balance is None:
        return expected
    if normal_balance != expected:
        raise NormalBalanceMismatchError(
            f"{account_type} accounts carry a {expected} balance, not {normal_balance}"
        )
    return normal_balance


def _resolve_parent(ctx, parent):
    if parent is None:
        return None
    parent_id = parent.pk if isinstance(parent, GLAccount) else parent
    return get_scoped(GLAccount, ctx, parent_id, AccountNotFoundError, label="Parent account")


def create_account(ctx, code, name, account_type, normal_balance=None, *,
                   description="", parent=None, allow_manual_entries=True):
    normal_balance = _resolve_normal_balance(account_type, normal_balance)
    if not code or not name:
        raise LedgerValidationError("Account code and name are required")

    with atomic_write("create_account"):
        parent_account = _resolve_parent(ctx, parent)

        if GLAccount.objects.for_organization(ctx.organization).filter(code=code).exists():
            raise DuplicateCodeError(f"Account code {code} already exists")

        try:
            # savepoint so a lost unique race doesn't poison the outer transaction
            with transaction.atomic():
                account = GLAccount.objects.create(
                    organization=ctx.organization,
                    code=code,
                    name=name,
                    description=description,
                    account_type=account_type,
                    normal_balance=normal_balance,
                    parent=parent_account,
                    allow_manual_entries=allow_manual_entries,
                    created_by=ctx.user,
                )
        except IntegrityError:
            raise DuplicateCodeError(f"Account code {code} already exists")

        log_action(action="create", instance=account, ctx=ctx,
                   changes={"code": code, "account_type": account_type})

    logger.info("account created org=%s code=%s type=%s",
                ctx.organization_id, code, account_type)
    return account


def get_account(ctx, account_id):
    return get_scoped(GLAccount, ctx, account_id, AccountNotFoundError, label="Account")


def get_chart_of_accounts(ctx, *, include_inactive=True):
    qs = GLAccount.objects.for_organization(ctx.organization)
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return list(qs.order_by("code"))


def update_account(ctx, account_id, **changes):
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise LedgerValidationError(f"Fields not editable: {sorted(unknown)}")

    with atomic_write("update_account"):
        account = get_scoped(GLAccount, ctx, account_id, AccountNotFoundError,
                             lock=True, label="Account")
        before = {}

        if "account_type" in changes and changes["account_type"] != account.account_type:
            if account.has_journal_lines():
                raise AccountInUseError(
                    f"Account {account.code} has journal lines; its type cannot change."
                )
            account.normal_balance = _resolve_normal_balance(changes["account_type"], None)

        if "parent" in changes:
            parent = _resolve_parent(ctx, changes["parent"])
            if parent is not None and parent.pk == account.pk:
                raise LedgerValidationError("An account cannot be its own parent")
            changes["parent"] = parent

        for field, value in changes.items():
            before[field] = str(getattr(account, field))
            setattr(account, field, value)
        account.save()

        log_action(action="update", instance=account, ctx=ctx,
                   changes={f: {"from": before[f], "to": str(v)} for f, v in changes.items()})
    return account


def deactivate_account(ctx, account_id):
    """Soft-deactivate; history stays. Calling twice is a no-op."""
    with atomic_write("deactivate_account"):
        account = get_scoped(GLAccount, ctx, account_id, AccountNotFoundError,
                             lock=True, label="Account")
        if not account.is_active:
            return account
        account.is_active = False
        account.save(update_fields=["is_active"])
        log_action(action="deactivate", instance=account, ctx=ctx)

    logger.info("account deactivated org=%s code=%s", ctx.organization_id, account.code)
    return account
