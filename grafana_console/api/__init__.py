"""
Console API routers.

All routers are mounted under ``/api`` by the application factory.
"""

from grafana_console.api.data import router as data_router
from grafana_console.api.settings import router as settings_router
from grafana_console.api.sync import router as sync_router
from grafana_console.api.users import router as users_router

__all__ = ["data_router", "settings_router", "sync_router", "users_router"]
