"""
FirstInvoiceService -- Quotes the first invoice of a new enrollment.

Responsibility:
    Turns an enrollment record (plan price, due day, discount fields) into
    calculator inputs, anchors them to today's date from the injected Clock,
    and returns both first-invoice options side by side so the operator can
    pick one.  Also computes the amount registered when an enrollment is
    paid at signup.

Architecture position:
    Services -- stateless orchestration over billing_engines.proration.
    Persisting the chosen charge belongs to the external invoice issuance
    service; ``FirstInvoiceQuote.issue_request`` builds the payload it
    accepts.

Failure modes:
    - InvalidConfigurationError for malformed enrollment fields.
    - InvalidIntervalError cannot occur here: due dates are always resolved
      on or after the reference date.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from billing_config.schema import BillingSettings
from billing_engines.proration import compute_charge, quote_first_invoice, round_half_up
from billing_kernel.domain.clock import Clock
from billing_kernel.domain.values import (
    BillingContext,
    ChargeMode,
    ChargeResult,
    DiscountKind,
    DiscountSpec,
)
from billing_kernel.exceptions import InvalidConfigurationError
from billing_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.first_invoice")


def to_minor_units(amount: Decimal | int | str, exponent: int = 2) -> int:
    """
    Convert a major-unit amount typed into a form ("50.00") to minor units.

    Rounds half up to the nearest minor unit.
    """
    try:
        major = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidConfigurationError("amount", amount, "must be a number") from None
    if not major.is_finite() or major < 0:
        raise InvalidConfigurationError("amount", amount, "must be a non-negative number")
    return round_half_up(major.scaleb(exponent))


@dataclass(frozen=True)
class EnrollmentTerms:
    """The billing-relevant fields of an enrollment record."""

    enrollment_id: int
    plan_price_cents: int
    due_day: int
    discount_type: DiscountKind = DiscountKind.NONE
    discount_value: int | Decimal = 0
    discount_until: date | None = None

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        default_due_day: int = 10,
    ) -> EnrollmentTerms:
        """
        Build terms from an enrollment JSON record.

        ``discount_until`` may be an ISO date string; an empty string means
        no end date.  A missing ``due_day`` falls back to ``default_due_day``.
        """
        try:
            enrollment_id = record["id"]
        except KeyError:
            raise InvalidConfigurationError("id", None, "enrollment record has no id") from None

        price = record.get("plan_price_cents")
        if price is None:
            raise InvalidConfigurationError(
                "plan_price_cents", None, "enrollment record has no plan price"
            )

        discount_type = record.get("discount_type") or DiscountKind.NONE.value
        try:
            kind = DiscountKind(discount_type)
        except ValueError:
            raise InvalidConfigurationError(
                "discount_type", discount_type, "must be 'none', 'fixed' or 'percentage'"
            ) from None

        until = record.get("discount_until") or None
        if isinstance(until, str):
            try:
                until = date.fromisoformat(until[:10])
            except ValueError:
                raise InvalidConfigurationError(
                    "discount_until", until, "must be an ISO date"
                ) from None

        due_day = record.get("due_day")
        return cls(
            enrollment_id=enrollment_id,
            plan_price_cents=price,
            due_day=default_due_day if due_day is None else due_day,
            discount_type=kind,
            discount_value=record.get("discount_value") or 0,
            discount_until=until,
        )

    def to_discount_spec(self) -> DiscountSpec:
        if self.discount_type is DiscountKind.NONE:
            return DiscountSpec.none()
        return DiscountSpec(self.discount_type, self.discount_value, self.discount_until)

    def to_context(self, reference_date: date) -> BillingContext:
        return BillingContext(
            monthly_price_minor_units=self.plan_price_cents,
            due_day_of_month=self.due_day,
            reference_date=reference_date,
        )


@dataclass(frozen=True)
class FirstInvoiceQuote:
    """Both first-invoice options for one enrollment."""

    enrollment_id: int
    currency: str
    full: ChargeResult
    prorated: ChargeResult

    def charge_for(self, mode: ChargeMode | str) -> ChargeResult:
        if ChargeMode.parse(mode) is ChargeMode.FULL:
            return self.full
        return self.prorated

    def issue_request(self, mode: ChargeMode | str) -> dict[str, Any]:
        """Payload for the invoice issuance service."""
        mode = ChargeMode.parse(mode)
        charge = self.charge_for(mode)
        return {
            "enrollment_id": self.enrollment_id,
            "invoice_type": mode.api_value,
            "currency": self.currency,
            **{k: v for k, v in charge.to_dict().items() if k != "mode"},
        }


class FirstInvoiceService:
    """
    Quotes first invoices against the clock's current date.

    Stateless apart from its collaborators; safe to share across threads.
    """

    def __init__(self, clock: Clock, settings: BillingSettings):
        self._clock = clock
        self._settings = settings

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def settings(self) -> BillingSettings:
        return self._settings

    def terms_from_record(self, record: Mapping[str, Any]) -> EnrollmentTerms:
        return EnrollmentTerms.from_record(
            record, default_due_day=self._settings.default_due_day,
        )

    def quote(self, terms: EnrollmentTerms) -> FirstInvoiceQuote:
        """Full and prorated first-invoice charges as of today."""
        today = self._clock.today()
        with LogContext.bind(enrollment_id=terms.enrollment_id):
            full, prorated = quote_first_invoice(
                terms.to_context(today), terms.to_discount_spec(),
            )
            quote = FirstInvoiceQuote(
                enrollment_id=terms.enrollment_id,
                currency=self._settings.currency,
                full=full,
                prorated=prorated,
            )
            logger.info("first_invoice_quoted", extra={
                "reference_date": today.isoformat(),
                "due_date": quote.full.due_date.isoformat(),
                "full_final_minor_units": quote.full.final_amount_minor_units,
                "prorated_final_minor_units": quote.prorated.final_amount_minor_units,
            })
        return quote

    def upfront_payment_amount(self, terms: EnrollmentTerms) -> int:
        """
        Amount registered when the enrollment is paid at signup: full price
        less any active discount, floored at zero.
        """
        context = terms.to_context(self._clock.today())
        with LogContext.bind(enrollment_id=terms.enrollment_id):
            charge = compute_charge(context, ChargeMode.FULL, terms.to_discount_spec())
        return charge.final_amount_minor_units

    def parse_amount(self, amount: Decimal | int | str) -> int:
        """Form amount in major units to minor units of the configured currency."""
        return to_minor_units(amount, self._settings.minor_unit_exponent)
