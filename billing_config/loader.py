"""
Configuration Loader (``billing_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a ``BillingSettings``
instance.  Services never call this directly; the runtime entry point is
``billing_config.get_active_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``InvalidConfigurationError``.
* Unknown timezone name  -> ``InvalidConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from billing_config.schema import BillingSettings
from billing_kernel.domain.values import validate_due_day
from billing_kernel.exceptions import InvalidConfigurationError

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed settings content."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_settings(data: dict[str, Any]) -> BillingSettings:
    """Parse and validate a settings dict."""
    currency = str(data.get("currency", "BRL")).upper().strip()
    if len(currency) != 3 or not currency.isalpha():
        raise InvalidConfigurationError("currency", currency, "must be a 3-letter ISO 4217 code")

    exponent = data.get("minor_unit_exponent", 2)
    if isinstance(exponent, bool) or not isinstance(exponent, int) or exponent < 0:
        raise InvalidConfigurationError("minor_unit_exponent", exponent, "must be an integer >= 0")

    default_due_day = data.get("default_due_day", 10)
    validate_due_day(default_due_day)

    log_level = str(data.get("log_level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise InvalidConfigurationError("log_level", log_level, "unknown logging level")

    tz_name = str(data.get("timezone", "UTC"))
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidConfigurationError("timezone", tz_name, "unknown IANA timezone") from None

    return BillingSettings(
        settings_id=data["settings_id"],
        version=int(data["version"]),
        currency=currency,
        minor_unit_exponent=exponent,
        default_due_day=default_due_day,
        log_level=log_level,
        timezone=tz_name,
        checksum=compute_checksum(data),
    )
