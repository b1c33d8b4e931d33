"""Signal bindings for change capture on registered models."""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Optional, Union

from django.core.exceptions import ValidationError
from django.db import DEFAULT_DB_ALIAS
from django.db.models.signals import post_delete, post_save, pre_delete, pre_save

from .config import AuditSettings, get_audit_settings
from .context import get_actor_context
from .core.engine import ChangeCaptureEngine
from .exceptions import ChangeCaptureError
from .observability import report_capture_failure
from .registry import AuditRegistration, audit_registry
from .schema import CachedSchemaProvider, DatabaseSchemaProvider
from .transaction_context import ensure_atomic, in_transaction
from .types import ActorContext, AuditMode, Operation, TransactionContext

logger = logging.getLogger(__name__)

_PRIOR_IMAGES_ATTR = "_rail_audit_prior_images"
_MISSING = object()

_ENGINES: dict[tuple[str, bool, str], ChangeCaptureEngine] = {}
_ENGINES_LOCK = threading.Lock()


def get_engine(
    using: str = DEFAULT_DB_ALIAS, settings: Optional[AuditSettings] = None
) -> ChangeCaptureEngine:
    """Return the change capture engine bound to database ``using``."""
    settings = settings or get_audit_settings()
    key = (using, settings.cache_schema, settings.mode.value)
    with _ENGINES_LOCK:
        engine = _ENGINES.get(key)
        if engine is None:
            provider = DatabaseSchemaProvider(using)
            if settings.cache_schema:
                provider = CachedSchemaProvider(provider)
            engine = ChangeCaptureEngine(provider, mode=settings.mode)
            _ENGINES[key] = engine
    return engine


def reset_engines() -> None:
    with _ENGINES_LOCK:
        _ENGINES.clear()


def connect_model_signals(model: type) -> None:
    uid = _dispatch_uid(model)
    pre_save.connect(_handle_pre_save, sender=model, dispatch_uid=f"{uid}_pre_save")
    post_save.connect(_handle_post_save, sender=model, dispatch_uid=f"{uid}_post_save")
    pre_delete.connect(_handle_pre_delete, sender=model, dispatch_uid=f"{uid}_pre_delete")
    post_delete.connect(
        _handle_post_delete, sender=model, dispatch_uid=f"{uid}_post_delete"
    )


def disconnect_model_signals(model: type) -> None:
    uid = _dispatch_uid(model)
    pre_save.disconnect(sender=model, dispatch_uid=f"{uid}_pre_save")
    post_save.disconnect(sender=model, dispatch_uid=f"{uid}_post_save")
    pre_delete.disconnect(sender=model, dispatch_uid=f"{uid}_pre_delete")
    post_delete.disconnect(sender=model, dispatch_uid=f"{uid}_post_delete")


def connect_proxy_signals() -> int:
    """Connect handlers for proxy models whose concrete model is registered."""
    from django.apps import apps

    connected = 0
    for model in apps.get_models():
        if not model._meta.proxy:
            continue
        if audit_registry.get_for_model(model) is None:
            continue
        connect_model_signals(model)
        connected += 1
    return connected


def _dispatch_uid(model: type) -> str:
    return f"rail_audit_{model._meta.label_lower}"


def build_row_image(instance: Any, fields: Optional[Iterable[Any]] = None) -> dict[str, Any]:
    """Column-keyed image of ``instance`` for ``fields`` (all concrete fields by default)."""
    if fields is None:
        fields = instance._meta.concrete_fields
    return {
        field.column: _normalize_value(field, field.value_from_object(instance))
        for field in fields
    }


def fetch_row_image(model: type, pk: Any, using: str) -> Optional[dict[str, Any]]:
    """Read the stored row of ``model`` with primary key ``pk``, or None if absent."""
    fields = list(model._meta.concrete_fields)
    queryset = model._base_manager.using(using).filter(pk=pk)
    if in_transaction(using):
        queryset = queryset.select_for_update()
    row = queryset.values(*[field.attname for field in fields]).first()
    if row is None:
        return None
    return {field.column: _normalize_value(field, row[field.attname]) for field in fields}


def _normalize_value(field: Any, value: Any) -> Any:
    if value is None:
        return None
    try:
        return field.to_python(value)
    except (ValidationError, TypeError, ValueError):
        return value


def capture_mutation(
    registration: AuditRegistration,
    operation: Union[Operation, str],
    prior_image: Optional[dict[str, Any]],
    new_image: Optional[dict[str, Any]],
    using: str = DEFAULT_DB_ALIAS,
    actor: Optional[ActorContext] = None,
    settings: Optional[AuditSettings] = None,
) -> list:
    """
    Run the change capture engine for one mutation of a registered model.

    Errors are reported and re-raised so the mutation's transaction aborts.
    """
    settings = settings or get_audit_settings()
    engine = get_engine(using, settings)
    table = engine.schema_provider.table_identity(registration.db_table)
    mode: AuditMode = registration.mode or settings.mode
    try:
        return engine.on_mutate(
            operation,
            table,
            prior_image=prior_image,
            new_image=new_image,
            explicit_key_columns=registration.key_columns,
            skip_columns_extra=registration.skip_columns + tuple(settings.skip_columns),
            actor=actor or get_actor_context(),
            transaction=TransactionContext(using=using),
            mode=mode,
        )
    except ChangeCaptureError as exc:
        report_capture_failure(
            exc,
            enabled=settings.report_failures_to_sentry,
            context={
                "model": registration.label,
                "table": str(table),
                "operation": Operation.coerce(operation).value,
                "using": using,
            },
        )
        raise


def _active_registration(sender: type, raw: bool) -> Optional[AuditRegistration]:
    if raw:
        return None
    registration = audit_registry.get_for_model(sender)
    if registration is None:
        return None
    if not get_audit_settings().enabled:
        return None
    return registration


def _push_prior_image(instance: Any, image: Optional[dict[str, Any]]) -> None:
    # One entry per pending save; a nested save of the same instance pushes its own.
    instance.__dict__.setdefault(_PRIOR_IMAGES_ATTR, []).append(image)


def _pop_prior_image(instance: Any) -> Any:
    stack = instance.__dict__.get(_PRIOR_IMAGES_ATTR)
    if not stack:
        return _MISSING
    image = stack.pop()
    if not stack:
        del instance.__dict__[_PRIOR_IMAGES_ATTR]
    return image


def _stored_row_image(
    registration: AuditRegistration, instance: Any, using: str
) -> dict[str, Any]:
    """Image of the row as the database stored it, after its own conversions."""
    image = fetch_row_image(registration.model, instance.pk, using)
    if image is None:
        logger.warning(
            "Saved row of %s pk=%s not found; auditing in-memory values",
            registration.label,
            instance.pk,
        )
        image = build_row_image(instance)
    return image


def _handle_pre_save(
    sender, instance, raw: bool = False, using: Optional[str] = None, **kwargs
) -> None:
    registration = _active_registration(sender, raw)
    if registration is None:
        return
    using = using or DEFAULT_DB_ALIAS
    settings = get_audit_settings()
    if settings.require_atomic:
        try:
            ensure_atomic(using, label=registration.label)
        except ChangeCaptureError as exc:
            report_capture_failure(
                exc,
                enabled=settings.report_failures_to_sentry,
                context={"model": registration.label, "using": using},
            )
            raise

    prior_image = None
    if instance.pk is not None:
        prior_image = fetch_row_image(registration.model, instance.pk, using)
    _push_prior_image(instance, prior_image)


def _handle_post_save(
    sender,
    instance,
    created: bool,
    raw: bool = False,
    using: Optional[str] = None,
    **kwargs,
) -> None:
    registration = _active_registration(sender, raw)
    prior_image = _pop_prior_image(instance)
    if registration is None:
        return
    using = using or DEFAULT_DB_ALIAS
    new_image = _stored_row_image(registration, instance, using)

    if created:
        capture_mutation(registration, Operation.INSERT, None, new_image, using)
        return

    if prior_image is _MISSING or prior_image is None:
        settings = get_audit_settings()
        error = ChangeCaptureError(
            f"No prior row captured for update of {registration.label} "
            f"pk={instance.pk}",
            table=registration.db_table,
        )
        report_capture_failure(
            error,
            enabled=settings.report_failures_to_sentry,
            context={"model": registration.label, "operation": "UPDATE", "using": using},
        )
        raise error

    capture_mutation(registration, Operation.UPDATE, prior_image, new_image, using)


def _handle_pre_delete(sender, instance, using: Optional[str] = None, **kwargs) -> None:
    registration = _active_registration(sender, False)
    if registration is None:
        return
    using = using or DEFAULT_DB_ALIAS
    prior_image = None
    if instance.pk is not None:
        prior_image = fetch_row_image(registration.model, instance.pk, using)
    if prior_image is None:
        prior_image = build_row_image(instance)
    _push_prior_image(instance, prior_image)


def _handle_post_delete(sender, instance, using: Optional[str] = None, **kwargs) -> None:
    registration = _active_registration(sender, False)
    prior_image = _pop_prior_image(instance)
    if registration is None:
        return
    using = using or DEFAULT_DB_ALIAS
    if prior_image is _MISSING or prior_image is None:
        prior_image = build_row_image(instance)
    capture_mutation(registration, Operation.DELETE, prior_image, None, using)


__all__ = [
    "build_row_image",
    "capture_mutation",
    "connect_model_signals",
    "connect_proxy_signals",
    "disconnect_model_signals",
    "fetch_row_image",
    "get_engine",
    "reset_engines",
]
