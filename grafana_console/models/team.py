"""Mirrored Grafana team."""

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from grafana_console.database.base import Base, IntPrimaryKey, TimestampMixin


class MirroredTeam(Base, TimestampMixin):
    """
    Local copy of a Grafana team.

    Teams are scoped to a local organization; ``platform_id`` is unique
    within that organization.
    """

    __tablename__ = "grafana_teams"
    __table_args__ = (
        UniqueConstraint("org_id", "platform_id", name="uq_grafana_teams_org_platform"),
    )

    id: Mapped[IntPrimaryKey]
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    org_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("grafana_organizations.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    platform_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Grafana team ID",
    )

    def __repr__(self) -> str:
        return f"<MirroredTeam(id={self.id}, name={self.name}, org_id={self.org_id})>"
