"""Key/value connection settings saved from the settings page."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from grafana_console.database.base import Base, IntPrimaryKey, TimestampMixin


class Setting(Base, TimestampMixin):
    """A single stored setting, unique by key."""

    __tablename__ = "settings"

    id: Mapped[IntPrimaryKey]
    key: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Setting(key={self.key})>"
