"""
billing_config -- single public entrypoint for billing settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component reads configuration
    files or environment variables.

Architecture position:
    Configuration -- sits above ``billing_kernel`` and below
    ``billing_services``.  The kernel and engines MUST NEVER import from
    ``billing_config``.

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``BILLING_CONFIG_TRACE`` log entry with the settings id, version and
    checksum.
"""

from __future__ import annotations

from pathlib import Path

from billing_config.loader import load_yaml_file, parse_settings
from billing_config.schema import BillingSettings
from billing_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default settings file
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_settings(config_path: Path | None = None) -> BillingSettings:
    """The ONLY public settings entrypoint.

    Args:
        config_path: Override path to a settings YAML file.
            Defaults to billing_config/sets/default.yaml.

    Returns:
        Validated, frozen BillingSettings.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    settings = parse_settings(load_yaml_file(path))

    _logger.info(
        "BILLING_CONFIG_TRACE",
        extra={
            "trace_type": "BILLING_CONFIG_TRACE",
            "settings_id": settings.settings_id,
            "version": settings.version,
            "checksum": settings.checksum,
            "source": str(path),
        },
    )
    return settings


__all__ = ["BillingSettings", "get_active_settings"]
