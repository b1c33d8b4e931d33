"""
Failure reporting for aborted audited mutations.

Sentry reporting is optional and only active when
``RAIL_AUDIT["report_failures_to_sentry"]`` is enabled.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .exceptions import ChangeCaptureError

logger = logging.getLogger(__name__)


class SentryFailureReporter:
    """Capture change capture errors in Sentry."""

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self._sdk = None
        if not self.enabled:
            return
        try:
            import sentry_sdk  # type: ignore

            self._sdk = sentry_sdk
        except Exception as exc:
            self.enabled = False
            logger.warning("Sentry SDK unavailable: %s", exc)

    def report(self, error: ChangeCaptureError, context: Optional[dict[str, Any]] = None) -> None:
        if not self._sdk:
            return
        context = context or {}
        try:
            with self._sdk.new_scope() as scope:
                scope.set_tag("rail_audit.error", type(error).__name__)
                if error.table:
                    scope.set_tag("rail_audit.table", error.table)
                if context.get("operation"):
                    scope.set_tag("rail_audit.operation", context["operation"])
                scope.set_context("rail_audit", context)
                self._sdk.capture_exception(error)
        except Exception as exc:
            logger.warning("Could not report audit failure to Sentry: %s", exc)


def report_capture_failure(
    error: ChangeCaptureError,
    *,
    enabled: bool,
    context: Optional[dict[str, Any]] = None,
) -> None:
    """Log an aborted mutation and forward it to Sentry when enabled."""
    logger.error(
        "Audited mutation aborted (%s): %s",
        type(error).__name__,
        error,
        extra={"rail_audit": context or {}},
    )
    if enabled:
        SentryFailureReporter(enabled=True).report(error, context)


__all__ = ["SentryFailureReporter", "report_capture_failure"]
