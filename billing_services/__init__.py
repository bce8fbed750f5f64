"""
billing_services -- orchestration over the pure billing engines.

Usage:
    from billing_services import build_first_invoice_service

    service = build_first_invoice_service()
    terms = service.terms_from_record(enrollment_json)
    quote = service.quote(terms)
    payload = quote.issue_request("proportional")
"""

from __future__ import annotations

from pathlib import Path
from zoneinfo import ZoneInfo

from billing_config import get_active_settings
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.logging_config import configure_logging
from billing_services.first_invoice import (
    EnrollmentTerms,
    FirstInvoiceQuote,
    FirstInvoiceService,
    to_minor_units,
)


def build_first_invoice_service(
    clock: Clock | None = None,
    config_path: Path | None = None,
) -> FirstInvoiceService:
    """Wire a FirstInvoiceService from the active settings.

    Configures structured logging at the settings' level (a no-op if
    logging is already configured).  The default clock reads dates in the
    settings' business timezone.
    """
    settings = get_active_settings(config_path)
    configure_logging(level=settings.log_level)
    return FirstInvoiceService(clock or SystemClock(ZoneInfo(settings.timezone)), settings)


__all__ = [
    "EnrollmentTerms",
    "FirstInvoiceQuote",
    "FirstInvoiceService",
    "build_first_invoice_service",
    "to_minor_units",
]
