"""
Schema providers used to introspect audited tables.
"""

from .base import SchemaProvider
from .cached import CachedSchemaProvider, invalidate_all, schema_changed
from .database import DatabaseSchemaProvider
from .static import StaticSchemaProvider

__all__ = [
    "CachedSchemaProvider",
    "DatabaseSchemaProvider",
    "SchemaProvider",
    "StaticSchemaProvider",
    "invalidate_all",
    "schema_changed",
]
