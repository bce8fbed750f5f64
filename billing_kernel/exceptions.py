"""
Typed Exception Hierarchy for the Billing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Billing inputs arrive from enrollment forms and records. When one of them is
structurally wrong the caller has to turn the failure into a form-validation
message, which means it must know WHICH input failed and WHY without parsing
message strings.

Every error therefore:
  1. Has its own class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, API-safe)
  3. Carries structured DATA (field name, offending value, dates)

Example - WRONG way to handle errors:
    try:
        compute_charge(context, "prorated", discount)
    except Exception as e:
        if "due day" in str(e):  # FRAGILE - message might change
            highlight_due_day_field()

Example - RIGHT way:
    try:
        compute_charge(context, "prorated", discount)
    except InvalidConfigurationError as e:
        form.add_error(e.field, e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BillingKernelError (base)
    |
    +-- BillingInputError
        +-- InvalidConfigurationError
        +-- InvalidIntervalError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Input           | INVALID_CONFIGURATION       | Due day outside 1..28, negative price,
                |                             | negative fixed discount, percentage
                |                             | outside 0..100, unknown charge mode
                | INVALID_INTERVAL            | Due date precedes the reference date

===============================================================================
HANDLING PATTERNS
===============================================================================

All of these errors are deterministic: retrying with the same inputs raises
the same error. Treat them as validation failures to fix upstream.

    except InvalidIntervalError as e:
        return {"error": e.code, "days": e.days}

Exceptions inherit from Exception (not ValueError) so that domain errors can
be caught as a group without also catching programming errors.
"""

from datetime import date
from typing import Any


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"

    def details(self) -> dict[str, Any]:
        """Structured fields rendered next to ``error_code`` in log lines."""
        return {}


class BillingInputError(BillingKernelError):
    """Base exception for invalid calculator inputs."""

    code: str = "BILLING_INPUT_ERROR"


class InvalidConfigurationError(BillingInputError):
    """A structurally invalid input: out-of-range value or unknown option."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")

    def details(self) -> dict[str, Any]:
        return {"field": self.field, "value": repr(self.value), "reason": self.reason}


class InvalidIntervalError(BillingInputError):
    """The due date precedes the reference date."""

    code: str = "INVALID_INTERVAL"

    def __init__(
        self,
        reference_date: date | None,
        due_date: date | None,
        days: int,
    ):
        self.reference_date = reference_date
        self.due_date = due_date
        self.days = days
        if reference_date is None or due_date is None:
            message = f"Days until due must be >= 0, got {days}"
        else:
            message = (
                f"Due date {due_date.isoformat()} is {-days} day(s) before "
                f"reference date {reference_date.isoformat()}"
            )
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"days": self.days}
        if self.reference_date is not None:
            fields["reference_date"] = self.reference_date
        if self.due_date is not None:
            fields["due_date"] = self.due_date
        return fields
