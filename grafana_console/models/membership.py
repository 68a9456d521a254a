"""
Membership Models.

User to organization (with role and default flag) and user to team links.
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from grafana_console.database.base import Base, IntPrimaryKey, TimestampMixin
from grafana_console.models.enums import OrgRole


class UserOrgMembership(Base, TimestampMixin):
    """
    Membership of a user in an organization.

    At most one row per (user_id, org_id). Only one membership per user
    should carry ``is_default``; the membership service maintains that.
    """

    __tablename__ = "user_organization_memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "org_id", name="uq_user_org_membership"),
    )

    id: Mapped[IntPrimaryKey]
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("grafana_users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    org_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("grafana_organizations.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(16),
        default=OrgRole.VIEWER.value,
        nullable=False,
    )
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<UserOrgMembership(user_id={self.user_id}, org_id={self.org_id}, role={self.role})>"


class UserTeamMembership(Base, TimestampMixin):
    """Membership of a user in a team. At most one row per (user_id, team_id)."""

    __tablename__ = "user_team_memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "team_id", name="uq_user_team_membership"),
    )

    id: Mapped[IntPrimaryKey]
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("grafana_users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    team_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("grafana_teams.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<UserTeamMembership(user_id={self.user_id}, team_id={self.team_id})>"
