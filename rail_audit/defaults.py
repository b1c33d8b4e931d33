"""
Default configuration for the rail-audit library.

Projects override any of these keys through the ``RAIL_AUDIT`` Django
setting; nested dictionaries are merged key by key.
"""

from __future__ import annotations

from typing import Any

LIBRARY_VERSION = "0.1.0"
LIBRARY_NAME = "rail-audit"


LIBRARY_DEFAULTS: dict[str, Any] = {
    "audit_settings": {
        "enabled": True,
        # "column" writes one entry per changed column, "row" one snapshot
        # entry per mutation.
        "mode": "column",
        "require_atomic": True,
        "cache_schema": False,
        "skip_columns": [],
        "models": {},
        "trusted_proxies": [],
        "report_failures_to_sentry": False,
    },
}


def merge_settings(*settings_dicts: dict[str, Any]) -> dict[str, Any]:
    """
    Merge multiple settings dictionaries with deep merging for nested dicts.
    Later dictionaries override earlier ones.
    """
    result: dict[str, Any] = {}
    for settings_dict in settings_dicts:
        for key, value in settings_dict.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = merge_settings(result[key], value)
            else:
                result[key] = value
    return result


__all__ = ["LIBRARY_DEFAULTS", "LIBRARY_NAME", "LIBRARY_VERSION", "merge_settings"]
