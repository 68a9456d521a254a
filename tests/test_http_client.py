"""
Unit Tests for grafana_console.http_client module.
"""

import pytest
from fastapi import FastAPI

from grafana_console.http_client import (
    create_http_client_context,
    create_standalone_http_client,
    get_http_client_from_app,
)


class TestHttpClientContext:
    """Tests for the lifespan-bound client."""

    @pytest.mark.asyncio
    async def test_client_stored_and_closed(self):
        """Test that the client lives on app.state for the context only."""
        app = FastAPI()

        async with create_http_client_context(app, timeout=5.0) as client:
            assert get_http_client_from_app(app) is client
            assert client.is_closed is False

        assert client.is_closed is True
        with pytest.raises(RuntimeError, match="HTTP client not available"):
            get_http_client_from_app(app)

    def test_missing_client(self):
        """Test the error before any lifespan ran."""
        with pytest.raises(RuntimeError):
            get_http_client_from_app(FastAPI())

    @pytest.mark.asyncio
    async def test_standalone_client_closed(self):
        """Test the script helper closes its client."""
        async with create_standalone_http_client(timeout=1.0) as client:
            assert client.is_closed is False

        assert client.is_closed is True
