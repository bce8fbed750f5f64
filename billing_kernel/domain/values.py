"""
Values -- Immutable, self-validating billing value objects.

Responsibility:
    Provides the value types exchanged with the proration calculator:
    ChargeMode, DiscountKind, DiscountSpec, BillingContext and ChargeResult.
    Money is carried as integer minor units (cents) throughout; Decimal is
    only used transiently for percentages and proration.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by billing_engines and billing_services.

Invariants enforced:
    - Monthly prices and fixed discounts are integers >= 0.
    - The due day of month lies in 1..MAX_DUE_DAY (valid in every month).
    - Percentages lie in 0..100 and are held as Decimal, never float.
    - ChargeResult.final == max(0, gross - discount) and discount <= gross.

Failure modes:
    - InvalidConfigurationError on construction with out-of-range inputs.
    - ValueError when a ChargeResult is built with inconsistent amounts
      (a programming error in the calculator, never an input error).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from billing_kernel.exceptions import InvalidConfigurationError
from billing_kernel.logging_config import get_logger

logger = get_logger("domain.values")

MIN_DUE_DAY = 1
MAX_DUE_DAY = 28

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def as_calendar_date(value: date | datetime) -> date:
    """Truncate a datetime to its calendar date; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def validate_minor_units(field: str, value: Any) -> int:
    """Return ``value`` if it is an integer amount >= 0."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise _rejected(field, value, "must be an integer number of minor units")
    if value < 0:
        raise _rejected(field, value, "must be >= 0")
    return value


def validate_due_day(value: Any) -> int:
    """Return ``value`` if it is a due day valid in every month."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise _rejected("due_day_of_month", value, "must be an integer")
    if not MIN_DUE_DAY <= value <= MAX_DUE_DAY:
        raise _rejected(
            "due_day_of_month", value, f"must be between {MIN_DUE_DAY} and {MAX_DUE_DAY}"
        )
    return value


class ChargeMode(str, Enum):
    """Which first-invoice charge to compute."""

    FULL = "full"
    PRORATED = "prorated"

    @classmethod
    def parse(cls, value: ChargeMode | str) -> ChargeMode:
        """Accept an enum member, its value, or the API alias ``proportional``."""
        if isinstance(value, ChargeMode):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "proportional":
                return cls.PRORATED
            try:
                return cls(normalized)
            except ValueError:
                pass
        raise _rejected("mode", value, "must be 'full' or 'prorated'")

    @property
    def api_value(self) -> str:
        """Invoice type understood by the issuance service."""
        return "proportional" if self is ChargeMode.PRORATED else "full"


class DiscountKind(str, Enum):
    """Discount types an enrollment can carry."""

    NONE = "none"
    FIXED = "fixed"
    PERCENTAGE = "percentage"


@dataclass(frozen=True, slots=True)
class DiscountSpec:
    """
    An enrollment discount: none, a flat monthly amount, or a percentage.

    ``value`` is minor units for FIXED, a Decimal 0..100 for PERCENTAGE and
    0 for NONE.  When ``valid_until`` is set the discount stops applying on
    the day after it.
    """

    kind: DiscountKind = DiscountKind.NONE
    value: int | Decimal = 0
    valid_until: date | None = None

    def __post_init__(self) -> None:
        kind = self.kind
        if not isinstance(kind, DiscountKind):
            try:
                kind = DiscountKind(kind)
            except ValueError:
                raise _rejected(
                    "discount_type", self.kind, "must be 'none', 'fixed' or 'percentage'"
                ) from None
            object.__setattr__(self, "kind", kind)

        if kind is DiscountKind.FIXED:
            validate_minor_units("discount_fixed_minor_units", self.value)
        elif kind is DiscountKind.PERCENTAGE:
            object.__setattr__(self, "value", _to_percentage(self.value))
        else:
            object.__setattr__(self, "value", 0)

        if self.valid_until is not None:
            object.__setattr__(self, "valid_until", as_calendar_date(self.valid_until))

    @classmethod
    def none(cls) -> DiscountSpec:
        return cls()

    @classmethod
    def fixed(cls, minor_units: int, valid_until: date | None = None) -> DiscountSpec:
        return cls(DiscountKind.FIXED, minor_units, valid_until)

    @classmethod
    def percentage(
        cls, percentage: Decimal | int | str, valid_until: date | None = None
    ) -> DiscountSpec:
        return cls(DiscountKind.PERCENTAGE, percentage, valid_until)

    def is_active_on(self, reference_date: date) -> bool:
        """False once ``reference_date`` is past ``valid_until``."""
        if self.kind is DiscountKind.NONE:
            return False
        if self.valid_until is None:
            return True
        return as_calendar_date(reference_date) <= self.valid_until


def _to_percentage(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise _rejected("discount_percentage", value, "must be a number")
    try:
        pct = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise _rejected("discount_percentage", value, "must be a number") from None
    if not pct.is_finite() or not _ZERO <= pct <= _HUNDRED:
        raise _rejected("discount_percentage", value, "must be between 0 and 100")
    return pct


@dataclass(frozen=True, slots=True)
class BillingContext:
    """
    Inputs to a charge calculation.

    Attributes:
        monthly_price_minor_units: Full monthly plan price in cents
        due_day_of_month: Day each month the recurring charge is due (1..28)
        reference_date: The date the calculation is anchored to ("today")
    """

    monthly_price_minor_units: int
    due_day_of_month: int
    reference_date: date

    def __post_init__(self) -> None:
        validate_minor_units("monthly_price_minor_units", self.monthly_price_minor_units)
        validate_due_day(self.due_day_of_month)
        object.__setattr__(self, "reference_date", as_calendar_date(self.reference_date))


@dataclass(frozen=True, slots=True)
class ChargeResult:
    """
    Output of one charge computation.

    Immutable; the issuance service persists it as an invoice.
    """

    mode: ChargeMode
    reference_date: date
    due_date: date
    days_until_due: int
    gross_amount_minor_units: int
    discount_applied_minor_units: int
    final_amount_minor_units: int

    def __post_init__(self) -> None:
        gross = self.gross_amount_minor_units
        discount = self.discount_applied_minor_units
        if self.days_until_due < 0 or gross < 0 or discount < 0:
            raise ValueError("ChargeResult fields must be non-negative")
        if discount > gross:
            raise ValueError(f"discount {discount} exceeds gross amount {gross}")
        if self.final_amount_minor_units != max(0, gross - discount):
            raise ValueError(
                f"final amount {self.final_amount_minor_units} != gross - discount"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "reference_date": self.reference_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "days_until_due": self.days_until_due,
            "gross_amount_minor_units": self.gross_amount_minor_units,
            "discount_applied_minor_units": self.discount_applied_minor_units,
            "final_amount_minor_units": self.final_amount_minor_units,
        }


def _rejected(field: str, value: Any, reason: str) -> InvalidConfigurationError:
    error = InvalidConfigurationError(field, value, reason)
    logger.warning("billing_input_rejected", extra={"error": error})
    return error
