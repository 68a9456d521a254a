"""
Mirrored User Model.

A user as known to the console. Rows are created either from the Opoppo
directory (``user_id`` = employee ID, status pending) or from Grafana
(``user_id`` = login, status active).
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from grafana_console.database.base import Base, IntPrimaryKey, TimestampMixin
from grafana_console.models.enums import UserStatus


class MirroredUser(Base, TimestampMixin):
    """
    Mirrored user record.

    Attributes:
        id: Local primary key.
        user_id: Natural key (employee ID or Grafana login), globally unique.
        name: Display name.
        email: Email address (placeholder for directory-origin users).
        login: Grafana login.
        company / department / position: Denormalized directory names.
        platform_id: Grafana numeric user ID once known.
        last_login: Last time Grafana saw the user.
        status: pending / active / disabled.
    """

    __tablename__ = "grafana_users"

    id: Mapped[IntPrimaryKey]

    user_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=False,
        comment="Employee ID or Grafana login",
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    login: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    position: Mapped[str | None] = mapped_column(String(255), nullable=True)

    platform_id: Mapped[int | None] = mapped_column(
        Integer,
        index=True,
        nullable=True,
        comment="Grafana user ID",
    )
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(16),
        default=UserStatus.PENDING.value,
        nullable=False,
        comment="pending / active / disabled",
    )

    def __repr__(self) -> str:
        return f"<MirroredUser(user_id={self.user_id}, status={self.status})>"
