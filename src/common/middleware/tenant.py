# src/common/middleware/tenant.py

from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

IGNORED_SUBDOMAINS = {"api", "localhost", "www"}


def extract_subdomain(host: Optional[str]) -> Optional[str]:
    """
    ``clinica-a.app.com`` -> ``clinica-a``; bare domains, IPs, ``api.``,
    ``www.`` and ``localhost`` yield ``None``.
    """
    if not host:
        return None
    hostname = host.split(":")[0].lower()
    labels = hostname.split(".")
    if len(labels) < 3 or hostname.replace(".", "").isdigit():
        return None
    subdomain = labels[0]
    if subdomain in IGNORED_SUBDOMAINS:
        return None
    return subdomain


class TenantSubdomainMiddleware(BaseHTTPMiddleware):
    """Exposes the host's tenant subdomain as ``request.state.subdomain``."""

    async def dispatch(self, request: Request, call_next):
        request.state.subdomain = extract_subdomain(request.headers.get("host"))
        return await call_next(request)
