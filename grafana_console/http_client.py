"""
Shared HTTP Client.

One httpx.AsyncClient per process, used by every GrafanaClient. The
lifespan opens it and stores it on ``app.state.http_client``; routes reach
it through the dependencies. Scripts open their own with
``create_standalone_http_client``.

Per-request timeouts come from ``GrafanaSettings.timeout_seconds``; the
pool timeout below only bounds requests that pass none.
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncGenerator

import httpx

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_CONNECTIONS = 20


def build_http_client(
    timeout: float = DEFAULT_TIMEOUT,
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
) -> httpx.AsyncClient:
    """Create the pooled client."""
    return httpx.AsyncClient(
        timeout=timeout,
        limits=httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max(1, max_connections // 2),
        ),
        follow_redirects=True,
    )


@asynccontextmanager
async def create_http_client_context(
    app: "FastAPI",
    timeout: float = DEFAULT_TIMEOUT,
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Bind the shared client to the application lifespan.

    The client is closed and removed from ``app.state`` on exit, also when
    startup fails halfway.
    """
    client = build_http_client(timeout=timeout, max_connections=max_connections)
    app.state.http_client = client
    logger.info(f"HTTP client started (timeout={timeout}s, max_connections={max_connections})")
    try:
        yield client
    finally:
        await client.aclose()
        app.state.http_client = None
        logger.info("HTTP client closed")


@asynccontextmanager
async def create_standalone_http_client(
    timeout: float = DEFAULT_TIMEOUT,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Client for use outside the web application, closed with the context."""
    client = build_http_client(timeout=timeout, max_connections=5)
    try:
        yield client
    finally:
        await client.aclose()


def get_http_client_from_app(app: "FastAPI") -> httpx.AsyncClient:
    """
    Get the shared client from app state.

    Raises:
        RuntimeError: The lifespan has not opened a client.
    """
    client = getattr(app.state, "http_client", None)
    if client is None or client.is_closed:
        raise RuntimeError(
            "HTTP client not available. Ensure lifespan context is properly configured."
        )
    return client
