"""
Connection Settings.

Grafana admin API and Opoppo directory database settings, loaded from
environment variables with pydantic-settings. Values saved from the
console's settings page (the ``settings`` table) take precedence over the
environment; ``resolve_grafana_settings`` / ``resolve_opoppo_settings``
build the effective objects.
"""

from functools import lru_cache
from typing import TYPE_CHECKING, Annotated
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from grafana_console.repository.base import Repository


# Keys of the stored settings overlay
GRAFANA_URL_KEY = "grafana_url"
GRAFANA_ADMIN_USER_KEY = "grafana_admin_user"
GRAFANA_ADMIN_PASSWORD_KEY = "grafana_admin_password"
OPOPPO_DB_HOST_KEY = "opoppo_db_host"
OPOPPO_DB_PORT_KEY = "opoppo_db_port"
OPOPPO_DB_NAME_KEY = "opoppo_db_name"
OPOPPO_DB_USER_KEY = "opoppo_db_user"
OPOPPO_DB_PASSWORD_KEY = "opoppo_db_password"
OPOPPO_DB_SSL_KEY = "opoppo_db_ssl"
AUTO_SYNC_KEY = "auto_sync"

_TRUE_VALUES = ("1", "true", "yes", "on")


class GrafanaSettings(BaseSettings):
    """
    Grafana admin API settings.

    The admin account must be a Grafana server admin: user management and
    the org-context switch both require it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    url: Annotated[
        str,
        Field(
            default="http://localhost:3000",
            description="Base URL of the Grafana instance",
            validation_alias="GRAFANA_URL",
        ),
    ] = "http://localhost:3000"

    admin_user: Annotated[
        str,
        Field(
            default="admin",
            description="Grafana server admin login used for Basic auth",
            validation_alias="GRAFANA_ADMIN_USER",
        ),
    ] = "admin"

    admin_password: Annotated[
        SecretStr,
        Field(
            default=SecretStr("admin"),
            description="Grafana server admin password",
            validation_alias="GRAFANA_ADMIN_PASSWORD",
        ),
    ] = SecretStr("admin")

    timeout_seconds: Annotated[
        float,
        Field(
            default=30.0,
            description="HTTP timeout for Grafana admin API requests",
            validation_alias="GRAFANA_TIMEOUT_SECONDS",
        ),
    ] = 30.0

    @property
    def base_url(self) -> str:
        """Grafana URL without a trailing slash."""
        return self.url.rstrip("/")


class OpoppoSettings(BaseSettings):
    """Opoppo directory (PostgreSQL) connection settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: Annotated[
        str,
        Field(default="muska01", validation_alias="OPOPPO_DB_HOST"),
    ] = "muska01"

    port: Annotated[
        int,
        Field(default=5432, validation_alias="OPOPPO_DB_PORT"),
    ] = 5432

    name: Annotated[
        str,
        Field(default="OPO_C", validation_alias="OPOPPO_DB_NAME"),
    ] = "OPO_C"

    user: Annotated[
        str,
        Field(default="", validation_alias="OPOPPO_DB_USER"),
    ] = ""

    password: Annotated[
        SecretStr,
        Field(default=SecretStr(""), validation_alias="OPOPPO_DB_PASSWORD"),
    ] = SecretStr("")

    ssl: Annotated[
        bool,
        Field(default=False, validation_alias="OPOPPO_DB_SSL"),
    ] = False

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for the directory database (asyncpg driver)."""
        credentials = quote_plus(self.user)
        password = self.password.get_secret_value()
        if password:
            credentials = f"{credentials}:{quote_plus(password)}"
        return f"postgresql+asyncpg://{credentials}@{self.host}:{self.port}/{self.name}"


@lru_cache
def get_grafana_settings() -> GrafanaSettings:
    """Get cached Grafana settings from the environment."""
    return GrafanaSettings()


@lru_cache
def get_opoppo_settings() -> OpoppoSettings:
    """Get cached Opoppo settings from the environment."""
    return OpoppoSettings()


def parse_bool(value: str | None) -> bool:
    """Interpret a stored setting string as a boolean."""
    return (value or "").strip().lower() in _TRUE_VALUES


async def resolve_grafana_settings(
    repo: "Repository",
    base: GrafanaSettings | None = None,
) -> GrafanaSettings:
    """
    Overlay stored settings on the environment Grafana settings.

    Empty stored values are ignored so a blank form field never wipes a
    configured credential.
    """
    base = base or get_grafana_settings()
    stored = await repo.get_settings_map()
    update: dict = {}

    if stored.get(GRAFANA_URL_KEY):
        update["url"] = stored[GRAFANA_URL_KEY]
    if stored.get(GRAFANA_ADMIN_USER_KEY):
        update["admin_user"] = stored[GRAFANA_ADMIN_USER_KEY]
    if stored.get(GRAFANA_ADMIN_PASSWORD_KEY):
        update["admin_password"] = SecretStr(stored[GRAFANA_ADMIN_PASSWORD_KEY])

    return base.model_copy(update=update) if update else base


async def resolve_opoppo_settings(
    repo: "Repository",
    base: OpoppoSettings | None = None,
) -> OpoppoSettings:
    """Overlay stored settings on the environment Opoppo settings."""
    base = base or get_opoppo_settings()
    stored = await repo.get_settings_map()
    update: dict = {}

    for key, field_name in (
        (OPOPPO_DB_HOST_KEY, "host"),
        (OPOPPO_DB_NAME_KEY, "name"),
        (OPOPPO_DB_USER_KEY, "user"),
    ):
        if stored.get(key):
            update[field_name] = stored[key]
    if stored.get(OPOPPO_DB_PORT_KEY):
        update["port"] = int(stored[OPOPPO_DB_PORT_KEY])
    if stored.get(OPOPPO_DB_PASSWORD_KEY):
        update["password"] = SecretStr(stored[OPOPPO_DB_PASSWORD_KEY])
    if stored.get(OPOPPO_DB_SSL_KEY):
        update["ssl"] = parse_bool(stored[OPOPPO_DB_SSL_KEY])

    return base.model_copy(update=update) if update else base
