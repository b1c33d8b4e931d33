"""
Utility helpers for rail-audit.
"""

from .encoding import image_to_json, to_json_value, to_text
from .network import get_client_ip, is_trusted_proxy, normalize_ip

__all__ = [
    "get_client_ip",
    "image_to_json",
    "is_trusted_proxy",
    "normalize_ip",
    "to_json_value",
    "to_text",
]
