import httpx
from contextlib import asynccontextmanager
from typing import Optional
from audit_engine.config import Settings, load_settings

DEFAULT_UA = "PageAuditEngine/0.1 (+https://example.local)"

HEADERS = {"User-Agent": DEFAULT_UA, "Accept": "application/json"}


def timeout_for(settings: Settings) -> httpx.Timeout:
    return httpx.Timeout(settings.bridge_timeout, connect=5.0)


@asynccontextmanager
async def client_for(settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
    """Client for talking to the page bridge; ``transport`` is for tests."""
    settings = settings or load_settings()
    async with httpx.AsyncClient(
        base_url=settings.bridge_url,
        timeout=timeout_for(settings),
        headers=HEADERS,
        follow_redirects=False,
        http2=transport is None,
        transport=transport,
    ) as client:
        yield client
