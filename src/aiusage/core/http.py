"""Shared HTTP client with connection pooling for aiusage."""

from contextlib import asynccontextmanager

import httpx

from aiusage.config.settings import get_config

USER_AGENT = "aiusage"

# Global HTTP client
_client: httpx.AsyncClient | None = None


def get_timeout_config() -> httpx.Timeout:
    """Get timeout configuration from settings.

    Provider clients own their timeouts; the usage store never imposes one.
    """
    config = get_config()
    return httpx.Timeout(config.fetch.timeout, connect=10.0)


@asynccontextmanager
async def get_http_client():
    """Get or create the shared HTTP client.

    Usage:
        async with get_http_client() as client:
            response = await client.get(...)
    """
    global _client

    if _client is None or _client.is_closed:
        limits = httpx.Limits(
            max_connections=20,
            max_keepalive_connections=5,
        )
        _client = httpx.AsyncClient(
            timeout=get_timeout_config(),
            limits=limits,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    # Not closed on exit; the client is reused until cleanup()
    yield _client


async def cleanup() -> None:
    """Close the HTTP client.

    Should be called on application shutdown.
    """
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
