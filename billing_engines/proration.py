"""
First-Invoice Proration Engine.

Pure functions with deterministic behavior. No I/O.

This engine computes the first charge of a monthly enrollment: when it is
due, how many days remain until then, the gross amount (full month or
prorated over the remaining days), the discount that applies, and the
final amount to invoice.

Proration follows the 30-day commercial month convention: the daily rate
is always price / 30, whatever the length of the calendar month.  A fixed
monthly discount on a prorated charge is prorated by the same factor, so a
flat "50 off" never wipes out a disproportionate share of a short first
period.  Percentage discounts are proportional already and are applied to
the gross amount as-is.

All arithmetic is exact (integer minor units, Decimal intermediates) and
rounds half away from zero to whole minor units.

Usage:
    from billing_engines.proration import compute_charge
    from billing_kernel.domain.values import BillingContext, DiscountSpec

    context = BillingContext(
        monthly_price_minor_units=30000,
        due_day_of_month=10,
        reference_date=date(2025, 11, 15),
    )
    result = compute_charge(context, "prorated", DiscountSpec.fixed(6000))
    # result.due_date == date(2025, 12, 10), result.final_amount_minor_units == 20000
"""

from __future__ import annotations

import time
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from billing_engines.tracer import traced_engine
from billing_kernel.domain.values import (
    BillingContext,
    ChargeMode,
    ChargeResult,
    DiscountKind,
    DiscountSpec,
    as_calendar_date,
    validate_due_day,
    validate_minor_units,
)
from billing_kernel.exceptions import InvalidConfigurationError, InvalidIntervalError
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.proration")


# ============================================================================
# Constants
# ============================================================================

COMMERCIAL_MONTH_DAYS = 30

_ONE = Decimal("1")
_HUNDRED = Decimal("100")


# ============================================================================
# Rounding
# ============================================================================


def round_half_up(value: Decimal) -> int:
    """Round to the nearest whole minor unit, halves away from zero."""
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


def prorate(amount_minor_units: int, days: int) -> int:
    """
    Scale a monthly amount to ``days`` of a 30-day commercial month.

    Computed as (amount * days) / 30 so no precision is lost before the
    single rounding step.

    Raises:
        InvalidIntervalError: negative ``days``.
    """
    _require_days(days)
    exact = Decimal(amount_minor_units * days) / COMMERCIAL_MONTH_DAYS
    return round_half_up(exact)


# ============================================================================
# Core Operations
# ============================================================================


def resolve_next_due_date(due_day_of_month: int, reference_date: date) -> date:
    """
    Resolve the next due date on or after ``reference_date``.

    If the billing day has not passed yet this month (including when it is
    today) the charge is due this month; otherwise next month, rolling
    over the year in December.

    Raises:
        InvalidConfigurationError: due day outside 1..28, checked before any
            date arithmetic.
    """
    validate_due_day(due_day_of_month)
    today = as_calendar_date(reference_date)

    if today.day <= due_day_of_month:
        return date(today.year, today.month, due_day_of_month)
    if today.month == 12:
        return date(today.year + 1, 1, due_day_of_month)
    return date(today.year, today.month + 1, due_day_of_month)


def days_until_due(reference_date: date | datetime, due_date: date | datetime) -> int:
    """
    Whole days from ``reference_date`` to ``due_date``.

    Both are treated as calendar dates; time of day is dropped.

    Raises:
        InvalidIntervalError: ``due_date`` precedes ``reference_date``.
    """
    start = as_calendar_date(reference_date)
    end = as_calendar_date(due_date)
    days = (end - start).days
    if days < 0:
        error = InvalidIntervalError(start, end, days)
        logger.warning("due_date_before_reference_date", extra={"error": error})
        raise error
    return days


def compute_gross_amount(
    monthly_price_minor_units: int,
    mode: ChargeMode | str,
    days_until_due: int,
) -> int:
    """
    Charge before discount.

    FULL returns the monthly price unchanged.  PRORATED returns
    price / 30 * days, rounded half up; zero days yields zero.

    Raises:
        InvalidConfigurationError: negative price or unknown mode.
        InvalidIntervalError: negative ``days_until_due`` in prorated mode.
    """
    validate_minor_units("monthly_price_minor_units", monthly_price_minor_units)
    mode = ChargeMode.parse(mode)

    if mode is ChargeMode.FULL:
        return monthly_price_minor_units

    _require_days(days_until_due)
    return prorate(monthly_price_minor_units, days_until_due)


def compute_discount(
    gross_amount_minor_units: int,
    spec: DiscountSpec | None,
    reference_date: date,
    mode: ChargeMode | str = ChargeMode.FULL,
    days_until_due: int | None = None,
) -> int:
    """
    Minor units to deduct from ``gross_amount_minor_units``.

    An absent, NONE or expired discount yields 0.  A fixed discount is
    applied as-is against a full charge and prorated over
    ``days_until_due`` against a prorated one; ``days_until_due`` is
    rejected in full mode, where it would be silently ignored.  A percentage is taken of
    the gross amount.  The result never exceeds the gross amount.

    Raises:
        InvalidConfigurationError: negative gross, unknown mode,
            ``days_until_due`` given for a full charge, or a prorated fixed
            discount without ``days_until_due``.
        InvalidIntervalError: negative ``days_until_due``.
    """
    validate_minor_units("gross_amount_minor_units", gross_amount_minor_units)
    mode = ChargeMode.parse(mode)
    if mode is ChargeMode.FULL and days_until_due is not None:
        raise InvalidConfigurationError(
            "days_until_due", days_until_due, "only applies to prorated charges"
        )

    if spec is None or not spec.is_active_on(reference_date):
        return 0

    if spec.kind is DiscountKind.FIXED:
        if mode is ChargeMode.PRORATED:
            if days_until_due is None:
                raise InvalidConfigurationError(
                    "days_until_due", None, "required to prorate a fixed discount"
                )
            _require_days(days_until_due)
            discount = prorate(spec.value, days_until_due)
        else:
            discount = spec.value
    elif spec.kind is DiscountKind.PERCENTAGE:
        discount = round_half_up(Decimal(gross_amount_minor_units) * spec.value / _HUNDRED)
    else:
        discount = 0

    return min(discount, gross_amount_minor_units)


@traced_engine("proration", "1.0", fingerprint_fields=("context", "mode", "discount"))
def compute_charge(
    context: BillingContext,
    mode: ChargeMode | str,
    discount: DiscountSpec | None = None,
) -> ChargeResult:
    """
    Compute the first-invoice charge for an enrollment.

    Pure function - no side effects, no I/O, deterministic output.

    This is the entry point callers depend on; the operations above are
    its building blocks.

    Args:
        context: Plan price, due day and reference date
        mode: ``full`` or ``prorated`` (``proportional`` is accepted)
        discount: Optional enrollment discount

    Returns:
        ChargeResult with due date, days until due and all amounts
    """
    t0 = time.monotonic()
    mode = ChargeMode.parse(mode)

    due_date = resolve_next_due_date(context.due_day_of_month, context.reference_date)
    days = days_until_due(context.reference_date, due_date)
    gross = compute_gross_amount(context.monthly_price_minor_units, mode, days)
    applied = compute_discount(
        gross, discount, context.reference_date, mode=mode,
        days_until_due=days if mode is ChargeMode.PRORATED else None,
    )

    result = ChargeResult(
        mode=mode,
        reference_date=context.reference_date,
        due_date=due_date,
        days_until_due=days,
        gross_amount_minor_units=gross,
        discount_applied_minor_units=applied,
        final_amount_minor_units=max(0, gross - applied),
    )

    logger.info("charge_calculation_completed", extra={
        "mode": mode.value,
        "due_date": due_date.isoformat(),
        "days_until_due": days,
        "gross_amount_minor_units": gross,
        "discount_kind": (discount.kind.value if discount else DiscountKind.NONE.value),
        "discount_applied_minor_units": applied,
        "final_amount_minor_units": result.final_amount_minor_units,
        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
    })
    return result


def quote_first_invoice(
    context: BillingContext,
    discount: DiscountSpec | None = None,
) -> tuple[ChargeResult, ChargeResult]:
    """Full and prorated charges for the same context, in that order."""
    return (
        compute_charge(context, ChargeMode.FULL, discount),
        compute_charge(context, ChargeMode.PRORATED, discount),
    )


# ============================================================================
# Helpers
# ============================================================================


def _require_days(days: int) -> None:
    if isinstance(days, bool) or not isinstance(days, int):
        raise InvalidConfigurationError("days_until_due", days, "must be an integer")
    if days < 0:
        error = InvalidIntervalError(None, None, days)
        logger.warning("negative_days_until_due", extra={"error": error})
        raise error
