"""
Module: billing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    billing_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import billing_kernel (and sibling engine modules).
    MUST NOT import billing_services or billing_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Reference dates are passed in explicitly by the caller.
    - Integer minor units for money; Decimal for intermediates, never float.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from billing_engines import compute_charge, quote_first_invoice
"""

from billing_engines.proration import (
    COMMERCIAL_MONTH_DAYS,
    compute_charge,
    compute_discount,
    compute_gross_amount,
    days_until_due,
    prorate,
    quote_first_invoice,
    resolve_next_due_date,
    round_half_up,
)
from billing_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "COMMERCIAL_MONTH_DAYS",
    "compute_charge",
    "compute_discount",
    "compute_gross_amount",
    "compute_input_fingerprint",
    "days_until_due",
    "prorate",
    "quote_first_invoice",
    "resolve_next_due_date",
    "round_half_up",
    "traced_engine",
]
