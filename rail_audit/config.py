"""Configuration helpers for change capture."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from django.conf import settings as django_settings

from .defaults import LIBRARY_DEFAULTS, merge_settings
from .types import AuditMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelAuditConfig:
    key_columns: list[str] = field(default_factory=list)
    skip_columns: list[str] = field(default_factory=list)
    mode: Optional[AuditMode] = None


@dataclass(frozen=True)
class AuditSettings:
    enabled: bool = True
    mode: AuditMode = AuditMode.COLUMN
    require_atomic: bool = True
    cache_schema: bool = False
    skip_columns: list[str] = field(default_factory=list)
    models: dict[str, ModelAuditConfig] = field(default_factory=dict)
    trusted_proxies: list[str] = field(default_factory=list)
    report_failures_to_sentry: bool = False


def get_audit_settings() -> AuditSettings:
    defaults = LIBRARY_DEFAULTS.get("audit_settings", {})
    external = getattr(django_settings, "RAIL_AUDIT", None)
    merged = merge_settings(defaults, external) if isinstance(external, dict) else dict(defaults)
    return _build_settings(merged)


def _build_settings(config: dict[str, Any]) -> AuditSettings:
    return AuditSettings(
        enabled=bool(config.get("enabled", True)),
        mode=AuditMode.coerce(config.get("mode") or AuditMode.COLUMN),
        require_atomic=bool(config.get("require_atomic", True)),
        cache_schema=bool(config.get("cache_schema", False)),
        skip_columns=_normalize_list(config.get("skip_columns")),
        models=_normalize_models(config.get("models")),
        trusted_proxies=_normalize_list(config.get("trusted_proxies")),
        report_failures_to_sentry=bool(config.get("report_failures_to_sentry", False)),
    )


def _normalize_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple, set)):
        items = value
    elif isinstance(value, str):
        items = value.split(",")
    else:
        items = [value]
    normalized: list[str] = []
    for item in items:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            normalized.append(text)
    return normalized


def _normalize_models(value: Any) -> dict[str, ModelAuditConfig]:
    if isinstance(value, (list, tuple, set)):
        value = {item: {} for item in value}
    if not isinstance(value, dict):
        return {}

    normalized: dict[str, ModelAuditConfig] = {}
    for label, options in value.items():
        label_text = str(label or "").strip().lower()
        if not label_text:
            continue
        if options is None or options is True:
            options = {}
        if not isinstance(options, dict):
            logger.warning("Ignoring audit options for %s: expected a dict", label_text)
            options = {}
        mode = options.get("mode")
        normalized[label_text] = ModelAuditConfig(
            key_columns=_normalize_list(options.get("key_columns")),
            skip_columns=_normalize_list(options.get("skip_columns")),
            mode=AuditMode.coerce(mode) if mode else None,
        )
    return normalized


__all__ = ["AuditSettings", "ModelAuditConfig", "get_audit_settings"]
