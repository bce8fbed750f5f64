"""
Configuration Schema (``billing_config.schema``).

Frozen dataclasses describing the parsed YAML settings.  No I/O here; the
loader fills these in and validates them.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BillingSettings:
    """
    Runtime billing settings.

    Attributes:
        settings_id: Identifier of the settings set
        version: Monotonic version of the set
        currency: ISO 4217 code amounts are denominated in
        minor_unit_exponent: Decimal places between major and minor units
        default_due_day: Due day pre-filled for enrollments without one
        log_level: Level name for ``configure_logging``
        timezone: IANA zone the business calendar date is read in
        checksum: SHA-256 of the parsed content, set by the loader
    """

    settings_id: str
    version: int
    currency: str = "BRL"
    minor_unit_exponent: int = 2
    default_due_day: int = 10
    log_level: str = "INFO"
    timezone: str = "UTC"
    checksum: str = ""
