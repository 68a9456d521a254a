"""
AppContext - Dependency Injection Container.

Holds the process-wide configuration loader and a bounded in-memory event
feed that the dashboard shows as recent sync activity.
"""
from collections import deque
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
import os
import logging

from dotenv import load_dotenv

MAX_EVENTS = 500


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ConfigLoader:
    """
    Process configuration read from the environment (and ``.env``).

    Connection credentials are not kept here; ``grafana_console.settings``
    owns them so passwords stay ``SecretStr``.
    """

    _config: Dict[str, Any] = field(default_factory=dict)

    def load(self, env_path: Optional[str] = None) -> None:
        """Read the environment, loading ``env_path`` or the project ``.env`` first."""
        env_file = Path(env_path) if env_path else Path(__file__).parent.parent / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self._config = {
            "server": {
                "host": os.getenv("SERVER_HOST", "127.0.0.1"),
                "port": int(os.getenv("SERVER_PORT", "5000")),
                "base_url": os.getenv("BASE_URL", ""),
            },
            "app": {
                "debug": _env_flag("APP_DEBUG", "true"),
                "log_level": os.getenv("APP_LOG_LEVEL", "INFO"),
                "use_mock_sources": _env_flag("APP_USE_MOCK_SOURCES", "false"),
            },
            "database": {
                "url": os.getenv("DATABASE_URL", ""),
            },
            "grafana": {
                "url": os.getenv("GRAFANA_URL", ""),
                "admin_user": os.getenv("GRAFANA_ADMIN_USER", ""),
            },
            "opoppo": {
                "host": os.getenv("OPOPPO_DB_HOST", ""),
                "name": os.getenv("OPOPPO_DB_NAME", ""),
                "user": os.getenv("OPOPPO_DB_USER", ""),
            },
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``"server.port"``."""
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def is_grafana_configured(self) -> bool:
        """Check if the Grafana admin API location and account are set."""
        return bool(self.get("grafana.url") and self.get("grafana.admin_user"))

    def is_opoppo_configured(self) -> bool:
        """Check if the Opoppo directory database is set."""
        return bool(
            self.get("opoppo.host") and
            self.get("opoppo.name") and
            self.get("opoppo.user")
        )


class AppContext:
    """
    Application Context - Central Dependency Injection Container.

    Created once per process; the FastAPI app keeps it on ``app.state``.
    """

    def __init__(self, config_loader: Optional[ConfigLoader] = None) -> None:
        self._logger = logging.getLogger(__name__)
        if config_loader is None:
            config_loader = ConfigLoader()
            config_loader.load()
        self._config_loader = config_loader
        self._events: deque[str] = deque(maxlen=MAX_EVENTS)

    @property
    def config(self) -> ConfigLoader:
        return self._config_loader

    @property
    def use_mock_sources(self) -> bool:
        """Whether in-memory stand-ins replace Opoppo and Grafana."""
        return bool(self._config_loader.get("app.use_mock_sources", False))

    def log_event(self, message: str, level: str = "INFO") -> None:
        """
        Record a dashboard event and write it to the module logger.

        ``level`` may be a custom tag such as "SYNC"; the logger then uses INFO.
        """
        self._events.append(f"[{datetime.now():%H:%M:%S}] [{level}] {message}")

        log_level = logging.getLevelName(level.upper())
        self._logger.log(log_level if isinstance(log_level, int) else logging.INFO, message)

    def get_event_log(self) -> list[str]:
        """Events oldest first."""
        return list(self._events)
