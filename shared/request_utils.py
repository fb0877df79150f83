"""
Request metadata helpers for FastAPI requests.

Takes an explicit ``Request`` parameter so the functions are testable
without a running app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

UNKNOWN_IP = "unknown"
DEFAULT_SITE_URL = "http://localhost:3000"


def get_client_ip(request: Request) -> str:
    """Extract the real client IP from a FastAPI ``Request``.

    Checks proxy headers in priority order before falling back to the
    direct connection address:

    1. ``CF-Connecting-IP`` — Cloudflare
    2. ``X-Forwarded-For`` — standard proxy header (first IP in list)
    3. ``X-Real-IP`` — nginx / other reverse proxies

    Returns:
        The resolved client IP string, or ``"unknown"`` so rate-limit keys
        are never blank.
    """
    for header in ("CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"):
        ip_value: str | None = request.headers.get(header)
        if ip_value:
            client_ip: str = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_IP


def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent", "")


def _normalise_base_url(url: str) -> str:
    return url.strip().rstrip("/")


def get_site_base_url(configured: Optional[str], request: Optional[Request]) -> str:
    """Resolve an absolute site base URL for links in emails.

    Precedence: the configured ``APP_URL``, then ``X-Forwarded-Host`` /
    ``Host`` (with ``X-Forwarded-Proto``, defaulting to https), then
    ``http://localhost:3000``.
    """
    if configured and configured.strip():
        return _normalise_base_url(configured)

    if request is not None:
        host = request.headers.get("x-forwarded-host") or request.headers.get("host")
        if host:
            proto = (request.headers.get("x-forwarded-proto") or "").split(",")[0]
            proto = proto.strip()
            if proto not in ("http", "https"):
                proto = "https"
            return _normalise_base_url(f"{proto}://{host}")

    return DEFAULT_SITE_URL
