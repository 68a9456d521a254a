"""
Grafana User Console - Entry Point.

Headless ASGI application for uvicorn execution.

Usage:
    uvicorn main:app --host 0.0.0.0 --port 5000 --reload

Or run directly:
    python main.py

Set APP_USE_MOCK_SOURCES=true to run against the in-memory Opoppo
directory, Grafana and mirror (no databases or Grafana required).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI

from grafana_console.app_context import AppContext
from grafana_console.database import close_db_connections, get_session_factory, init_database
from grafana_console.directory.mock import MockDirectoryClient
from grafana_console.http_client import create_http_client_context
from grafana_console.logging_config import parse_log_level, setup_logging
from grafana_console.platform.mock import MockGrafanaClient
from grafana_console.repository import InMemoryRepository, SqlAlchemyRepository
from grafana_console.server import create_app
from grafana_console.sync.coordinator import SyncCoordinator


# -----------------------------------------------------------------------------
# Application Factory
# -----------------------------------------------------------------------------


def create_app_context() -> AppContext:
    """Create and configure the AppContext."""
    return AppContext()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Wires the repository, the sync coordinator and (in mock mode) the
    in-memory sources into app.state, and owns the shared HTTP client.
    """
    logger = logging.getLogger(__name__)
    context: AppContext = app.state.context

    logger.info("Starting Grafana User Console...")

    async with create_http_client_context(app, timeout=30.0, max_connections=20):
        logger.info("HTTP client initialized (stored in app.state for DI)")

        if context.use_mock_sources:
            app.state.repository = InMemoryRepository()
            app.state.directory = MockDirectoryClient()
            app.state.platform = MockGrafanaClient()
            context.log_event("Using in-memory Opoppo, Grafana and mirror", "WARNING")
        else:
            try:
                await init_database()
                logger.info("Database initialized")
            except Exception as e:
                logger.error(f"Database initialization failed: {e}")
                raise
            app.state.repository = SqlAlchemyRepository(get_session_factory())

        app.state.coordinator = SyncCoordinator()
        context.log_event("Application started successfully", "SUCCESS")

        yield

        logger.info("Shutting down Grafana User Console...")
        if not context.use_mock_sources:
            await close_db_connections()
        logger.info("Cleanup complete")


# -----------------------------------------------------------------------------
# Module-level Application Instance
# -----------------------------------------------------------------------------

_context = create_app_context()

# Setup logging first
setup_logging(parse_log_level(_context.config.get("app.log_level", "INFO")))

# Export for uvicorn
app = create_app(_context, lifespan=lifespan)


# -----------------------------------------------------------------------------
# Direct Execution
# -----------------------------------------------------------------------------


def main() -> None:
    """Run the application directly with uvicorn."""
    host = _context.config.get("server.host", "127.0.0.1")
    port = _context.config.get("server.port", 5000)
    debug = _context.config.get("app.debug", False)

    uvicorn_config = {
        "host": host,
        "port": port,
        "reload": debug,
        "log_level": "warning",
        "access_log": False,
    }

    if debug:
        uvicorn_config["reload_excludes"] = [
            "logs/*",
            "**/__pycache__/*",
            "**/*.pyc",
            ".venv/*",
            "*.log",
        ]

    uvicorn.run("main:app", **uvicorn_config)


if __name__ == "__main__":
    main()
