"""Mirrored Grafana organization."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from grafana_console.database.base import Base, IntPrimaryKey, TimestampMixin


class MirroredOrganization(Base, TimestampMixin):
    """
    Local copy of a Grafana organization.

    ``platform_id`` stays NULL until the organization has been matched
    against Grafana; team sync skips such organizations.
    """

    __tablename__ = "grafana_organizations"

    id: Mapped[IntPrimaryKey]
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    platform_id: Mapped[int | None] = mapped_column(
        Integer,
        unique=True,
        index=True,
        nullable=True,
        comment="Grafana organization ID",
    )

    def __repr__(self) -> str:
        return f"<MirroredOrganization(id={self.id}, name={self.name}, platform_id={self.platform_id})>"
