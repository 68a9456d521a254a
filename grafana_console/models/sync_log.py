"""
Sync Log Model.

Append-only audit trail of reconciliation runs. Rows are never updated.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from grafana_console.database.base import Base, CreatedAt, IntPrimaryKey


class SyncLog(Base):
    """
    One reconciliation run.

    Attributes:
        type: Operation tag, e.g. "opoppo_to_db" or "grafana_full_sync".
        status: "success" or "error".
        details: Counts on success, ``{"error": message}`` on failure.
        created_at: Server-assigned timestamp.
    """

    __tablename__ = "sync_logs"

    id: Mapped[IntPrimaryKey]
    type: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[CreatedAt]

    def __repr__(self) -> str:
        return f"<SyncLog(type={self.type}, status={self.status}, created_at={self.created_at})>"
