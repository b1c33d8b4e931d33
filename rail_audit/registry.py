"""
Registry of audited models.

A registration pins what the change capture engine needs to know about a
model beyond its live schema: an optional key column override, extra columns
to leave out of the audit trail and an optional audit mode.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from django.core.exceptions import FieldDoesNotExist

from .exceptions import NoIdentityColumns
from .types import AuditMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditRegistration:
    model: type
    key_columns: tuple[str, ...] = ()
    skip_columns: tuple[str, ...] = ()
    mode: Optional[AuditMode] = None

    @property
    def label(self) -> str:
        return self.model._meta.label_lower

    @property
    def db_table(self) -> str:
        return self.model._meta.db_table


class AuditRegistry:
    """Thread-safe mapping of model classes to their audit registration."""

    def __init__(self):
        self._lock = threading.RLock()
        self._registrations: dict[type, AuditRegistration] = {}

    def register(
        self,
        model: type,
        *,
        key_columns: Optional[Iterable[str]] = None,
        skip_columns: Iterable[str] = (),
        mode: Union[AuditMode, str, None] = None,
    ) -> AuditRegistration:
        """
        Register ``model`` for change capture.

        Key and skip columns may be given as field names or database column
        names; they are stored as column names.

        Raises:
            NoIdentityColumns: if an explicit key column matches no concrete column
        """
        registration = AuditRegistration(
            model=model,
            key_columns=tuple(
                _key_column(model, name) for name in _unique(key_columns or ())
            ),
            skip_columns=tuple(_skip_column(model, name) for name in _unique(skip_columns)),
            mode=AuditMode.coerce(mode) if mode else None,
        )
        with self._lock:
            replaced = model in self._registrations
            self._registrations[model] = registration
        logger.debug(
            "%s audited model %s (key=%s, skip=%s, mode=%s)",
            "Re-registered" if replaced else "Registered",
            registration.label,
            list(registration.key_columns) or "primary key",
            list(registration.skip_columns),
            registration.mode.value if registration.mode else "default",
        )
        return registration

    def unregister(self, model: type) -> Optional[AuditRegistration]:
        with self._lock:
            return self._registrations.pop(model, None)

    def get_for_model(self, model: type) -> Optional[AuditRegistration]:
        with self._lock:
            registration = self._registrations.get(model)
            if registration is None:
                concrete = getattr(model._meta, "concrete_model", None)
                if concrete is not None and concrete is not model:
                    registration = self._registrations.get(concrete)
        return registration

    def is_registered(self, model: type) -> bool:
        return self.get_for_model(model) is not None

    def all(self) -> list[AuditRegistration]:
        with self._lock:
            registrations = list(self._registrations.values())
        return sorted(registrations, key=lambda registration: registration.label)

    def clear(self) -> None:
        with self._lock:
            self._registrations.clear()


def _unique(names: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for name in names:
        text = str(name).strip()
        if text and text not in seen:
            seen.append(text)
    return seen


def _find_column(model: type, name: str) -> Optional[str]:
    try:
        field = model._meta.get_field(name)
    except FieldDoesNotExist:
        field = None
    if field is not None and getattr(field, "concrete", False) and field.column:
        return field.column
    for field in model._meta.concrete_fields:
        if name in (field.column, field.attname):
            return field.column
    return None


def _key_column(model: type, name: str) -> str:
    column = _find_column(model, name)
    if column is None:
        raise NoIdentityColumns(
            f"Key column {name!r} is not a concrete column of {model._meta.label}",
            table=model._meta.db_table,
            key_columns=[name],
        )
    return column


def _skip_column(model: type, name: str) -> str:
    # Unknown names are kept as-is: the table may carry columns the model
    # does not map.
    return _find_column(model, name) or name


audit_registry = AuditRegistry()


def register(
    model: type,
    *,
    key_columns: Optional[Iterable[str]] = None,
    skip_columns: Iterable[str] = (),
    mode: Union[AuditMode, str, None] = None,
) -> AuditRegistration:
    """Register ``model`` and connect its change capture signal handlers."""
    from .signals import connect_model_signals

    registration = audit_registry.register(
        model, key_columns=key_columns, skip_columns=skip_columns, mode=mode
    )
    connect_model_signals(model)
    return registration


def unregister(model: type) -> Optional[AuditRegistration]:
    from .signals import disconnect_model_signals

    disconnect_model_signals(model)
    return audit_registry.unregister(model)


def audited(
    model: Optional[type] = None,
    *,
    key_columns: Optional[Iterable[str]] = None,
    skip_columns: Iterable[str] = (),
    mode: Union[AuditMode, str, None] = None,
):
    """
    Class decorator registering a model for change capture.

    Example:
        @audited(skip_columns=["updated_at"])
        class Invoice(models.Model):
            ...
    """

    def decorator(cls: type) -> type:
        register(cls, key_columns=key_columns, skip_columns=skip_columns, mode=mode)
        return cls

    if model is not None:
        return decorator(model)
    return decorator


def register_from_settings(models_config: dict) -> list[AuditRegistration]:
    """Register every model listed in ``RAIL_AUDIT["models"]``."""
    from django.apps import apps

    registrations: list[AuditRegistration] = []
    for label, options in models_config.items():
        try:
            model = apps.get_model(label)
        except (LookupError, ValueError) as exc:
            logger.error("Cannot register audited model %s: %s", label, exc)
            raise
        registrations.append(
            register(
                model,
                key_columns=options.key_columns,
                skip_columns=options.skip_columns,
                mode=options.mode,
            )
        )
    return registrations


__all__ = [
    "AuditRegistration",
    "AuditRegistry",
    "audit_registry",
    "audited",
    "register",
    "register_from_settings",
    "unregister",
]
