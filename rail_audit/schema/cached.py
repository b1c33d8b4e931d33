"""
Caching wrapper around a schema provider.

Cached metadata survives until it is explicitly invalidated, either directly
or by sending ``schema_changed`` (``post_migrate`` is wired to it when the
app starts).
"""

import logging
import threading
import weakref
from typing import Optional

from django.dispatch import Signal

from ..types import TableIdentity
from .base import SchemaProvider

logger = logging.getLogger(__name__)

# Sent with an optional ``table`` (TableIdentity) keyword argument.
schema_changed = Signal()

_PROVIDERS: "weakref.WeakSet[CachedSchemaProvider]" = weakref.WeakSet()


class CachedSchemaProvider(SchemaProvider):
    """Memoize primary key and column lookups of another provider."""

    def __init__(self, inner: SchemaProvider):
        self.inner = inner
        self._lock = threading.Lock()
        self._primary_keys: dict[TableIdentity, tuple[str, ...]] = {}
        self._columns: dict[TableIdentity, tuple[str, ...]] = {}
        self._namespace: Optional[str] = None
        _PROVIDERS.add(self)

    def primary_key_columns(self, table: TableIdentity) -> tuple[str, ...]:
        with self._lock:
            cached = self._primary_keys.get(table)
        if cached is not None:
            return cached
        columns = self.inner.primary_key_columns(table)
        with self._lock:
            self._primary_keys[table] = columns
        return columns

    def declared_columns(self, table: TableIdentity) -> tuple[str, ...]:
        with self._lock:
            cached = self._columns.get(table)
        if cached is not None:
            return cached
        columns = self.inner.declared_columns(table)
        with self._lock:
            self._columns[table] = columns
        return columns

    def default_namespace(self) -> str:
        if self._namespace is None:
            self._namespace = self.inner.default_namespace()
        return self._namespace

    def invalidate(self, table: Optional[TableIdentity] = None) -> None:
        with self._lock:
            if table is None:
                self._primary_keys.clear()
                self._columns.clear()
                self._namespace = None
            else:
                self._primary_keys.pop(table, None)
                self._columns.pop(table, None)
        self.inner.invalidate(table)


def invalidate_all(table: Optional[TableIdentity] = None) -> int:
    """Invalidate every live cached provider. Returns how many were touched."""
    providers = list(_PROVIDERS)
    for provider in providers:
        provider.invalidate(table)
    logger.debug("Invalidated %s cached schema provider(s)", len(providers))
    return len(providers)


def _handle_schema_changed(sender, table: Optional[TableIdentity] = None, **kwargs) -> None:
    invalidate_all(table)


schema_changed.connect(
    _handle_schema_changed,
    dispatch_uid="rail_audit_schema_changed_invalidate",
)
