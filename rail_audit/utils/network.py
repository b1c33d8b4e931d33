"""
Network utilities for rail-audit.

This module provides helpers for resolving the client address of a request.
"""

import ipaddress
from typing import Iterable, Optional


def is_trusted_proxy(remote_addr: str, trusted_proxies: Iterable[str]) -> bool:
    """Check if the remote address is in the trusted proxy list."""
    if not remote_addr:
        return False
    for proxy in trusted_proxies:
        proxy = str(proxy).strip()
        if not proxy:
            continue
        if "/" in proxy:
            try:
                if ipaddress.ip_address(remote_addr) in ipaddress.ip_network(
                    proxy, strict=False
                ):
                    return True
            except ValueError:
                continue
        if remote_addr == proxy:
            return True
    return False


def normalize_ip(value: Optional[str]) -> Optional[str]:
    """Return ``value`` as a canonical IP address string, or None if invalid."""
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(str(value).strip()))
    except ValueError:
        return None


def get_client_ip(request, trusted_proxies: Iterable[str] = ()) -> Optional[str]:
    """
    Resolve the originating address of a request.

    ``X-Forwarded-For`` and ``X-Real-IP`` are only honoured when the direct
    peer is a trusted proxy.
    """
    remote_addr = request.META.get("REMOTE_ADDR", "")
    if is_trusted_proxy(remote_addr, trusted_proxies):
        forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR", "")
        if forwarded_for:
            return normalize_ip(forwarded_for.split(",")[0].strip())

        real_ip = request.META.get("HTTP_X_REAL_IP")
        if real_ip:
            return normalize_ip(real_ip)

    return normalize_ip(remote_addr)


__all__ = ["get_client_ip", "is_trusted_proxy", "normalize_ip"]
