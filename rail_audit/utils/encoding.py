"""
Value encoding helpers for audit entries.

Column-grained entries and record identities store values as text, the same
way a database ``CAST(value AS TEXT)`` would render them. Row-grained entries
store JSON-compatible images.
"""

import datetime
import json
from typing import Any, Mapping, Optional

from django.core.serializers.json import DjangoJSONEncoder


def to_text(value: Any) -> Optional[str]:
    """
    Render a column value as canonical text.

    Examples:
        >>> to_text(True)
        'true'
        >>> to_text(b"\\x01\\xff")
        '\\\\x01ff'
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        return "\\x" + bytes(value).hex()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, cls=DjangoJSONEncoder, sort_keys=True)
    return str(value)


def to_json_value(value: Any) -> Any:
    """Coerce a column value into something ``json.dumps`` accepts."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        return "\\x" + bytes(value).hex()
    if isinstance(value, Mapping):
        return {str(key): to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_value(item) for item in value]
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


def image_to_json(image: Optional[Mapping[str, Any]]) -> Optional[dict[str, Any]]:
    if image is None:
        return None
    return {column: to_json_value(value) for column, value in image.items()}


__all__ = ["image_to_json", "to_json_value", "to_text"]
