"""
Change capture core: identity, column enumeration, diff and audit writing.

``writer`` and ``engine`` depend on the ``rail_audit`` models and are only
importable once Django apps are loaded.
"""

from .columns import eligible_columns
from .diff import diff, filter_image, values_differ
from .identity import (
    DELIMITER,
    ESCAPE,
    NULL_SENTINEL,
    escape_key_value,
    resolve_key_columns,
    resolve_record_identity,
    serialize_key,
)

__all__ = [
    "DELIMITER",
    "ESCAPE",
    "NULL_SENTINEL",
    "diff",
    "eligible_columns",
    "escape_key_value",
    "filter_image",
    "resolve_key_columns",
    "resolve_record_identity",
    "serialize_key",
    "values_differ",
]
