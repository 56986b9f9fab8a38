from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..exceptions import CrossOrganizationError, InvalidAmountError

CENTS = Decimal("0.01")


# ------------------------------------
# Shared input validation helpers
# ------------------------------------
def to_decimal(value, field="amount") -> Decimal:
    """Accept Decimal/int/str; floats go through str() to avoid binary noise."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidAmountError(f"{field} is not a number: {value!r}")
    if not result.is_finite():
        raise InvalidAmountError(f"{field} is not a finite number: {value!r}")
    return result


def to_money(value, field="amount") -> Decimal:
    """Round half-up to cents"""
    return to_decimal(value, field).quantize(CENTS, rounding=ROUND_HALF_UP)


def positive_money(value, field="amount") -> Decimal:
    amount = to_money(value, field)
    if amount <= 0:
        raise InvalidAmountError(f"{field} must be > 0, got {amount}")
    return amount


def get_scoped(model, ctx, pk, not_found, *, lock=False, label=None):
    """
    Fetch a tenant-owned row by primary key.
    Absent rows and rows of other organizations both raise `not_found`.
    """
    qs = model.objects.for_organization(ctx.organization)
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=pk)
    except model.DoesNotExist:
        raise not_found(f"{label or model.__name__} {pk} not found")


def get_scoped_or_cross(model, ctx, pk, not_found, *, lock=False):
    """
    Like get_scoped, but tells "absent" and "owned by another
    organization" apart (CrossOrganizationError).
    """
    qs = model.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        obj = qs.get(pk=pk)
    except model.DoesNotExist:
        raise not_found(f"{model.__name__} {pk} not found")
    if obj.organization_id != ctx.organization_id:
        raise CrossOrganizationError(
            f"{model.__name__} {pk} belongs to another organization"
        )
    return obj
