"""
Django app configuration for rail-audit.

This module configures:
- Registration of audited models listed in settings and their proxies
- Schema cache invalidation after migrations
"""

import logging

from django.apps import AppConfig as BaseAppConfig
from django.db.models.signals import post_migrate

logger = logging.getLogger(__name__)


class AppConfig(BaseAppConfig):
    """Django app configuration for rail-audit."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "rail_audit"
    verbose_name = "Rail Audit"
    label = "rail_audit"

    def ready(self):
        """Initialize change capture after Django has loaded."""
        self._setup_schema_invalidation()
        self._register_configured_models()

    def _setup_schema_invalidation(self):
        post_migrate.connect(
            _invalidate_schema_cache,
            dispatch_uid="rail_audit_post_migrate_invalidate",
        )

    def _register_configured_models(self):
        """Register models listed in ``RAIL_AUDIT["models"]`` and connect proxies."""
        from .config import get_audit_settings
        from .registry import register_from_settings
        from .signals import connect_proxy_signals

        settings = get_audit_settings()
        if settings.models:
            registrations = register_from_settings(settings.models)
            logger.info("Registered %s audited model(s) from settings", len(registrations))
        connect_proxy_signals()


def _invalidate_schema_cache(sender, **kwargs):
    from .schema.cached import invalidate_all

    invalidate_all()
