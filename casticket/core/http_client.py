from typing import Dict, Optional

import httpx

from .config import CASSettings


def build_async_client(
    settings: Optional[CASSettings] = None,
    *,
    extra_headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Create the httpx.AsyncClient validation requests go through.
    Timeouts and TLS policy belong here, not in the validator.
    """
    settings = settings or CASSettings()
    headers = {"User-Agent": settings.user_agent}
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        verify=settings.verify_tls,
        headers=headers,
        transport=transport,
    )
