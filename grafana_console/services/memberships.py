"""
Membership Service.

Business rules around user/organization and user/team links in the local
mirror:

    - adding an existing link is a conflict, never a second row
    - a user has at most one default organization; flagging one unsets
      the flag on the user's other memberships
"""

import logging
from typing import List

from grafana_console.models import OrgRole, UserOrgMembership, UserTeamMembership
from grafana_console.repository.base import Repository
from grafana_console.repository.exceptions import MembershipConflictError, RecordNotFoundError

logger = logging.getLogger(__name__)


def _validate_role(role: str) -> str:
    try:
        return OrgRole(role).value
    except ValueError:
        allowed = ", ".join(r.value for r in OrgRole)
        raise ValueError(f"Invalid role '{role}'. Expected one of: {allowed}") from None


class MembershipService:
    """Membership operations on top of the repository."""

    def __init__(self, repository: Repository) -> None:
        self._repository = repository

    async def _require_user(self, user_id: int) -> None:
        if await self._repository.get_user(user_id) is None:
            raise RecordNotFoundError("MirroredUser", user_id)

    # =========================================================================
    # Organizations
    # =========================================================================

    async def list_user_organizations(self, user_id: int) -> List[UserOrgMembership]:
        await self._require_user(user_id)
        return await self._repository.list_org_memberships(user_id=user_id)

    async def add_user_to_organization(
        self,
        user_id: int,
        org_id: int,
        role: str = OrgRole.VIEWER.value,
        is_default: bool = False,
    ) -> UserOrgMembership:
        """
        Link a user to an organization.

        Raises:
            RecordNotFoundError: Unknown user or organization.
            MembershipConflictError: The user already belongs to the organization.
            ValueError: Unknown role.
        """
        role = _validate_role(role)
        await self._require_user(user_id)
        if await self._repository.get_organization(org_id) is None:
            raise RecordNotFoundError("MirroredOrganization", org_id)

        if await self._repository.get_org_membership(user_id, org_id) is not None:
            raise MembershipConflictError(
                f"User {user_id} is already a member of organization {org_id}",
                user_id=user_id,
                target_id=org_id,
            )

        membership = await self._repository.create_org_membership(
            user_id=user_id, org_id=org_id, role=role, is_default=is_default
        )
        if is_default:
            await self._clear_other_defaults(user_id, keep_id=membership.id)

        logger.info(f"User {user_id} added to organization {org_id} as {role}")
        return membership

    async def set_default_organization(self, user_id: int, org_id: int) -> UserOrgMembership:
        """Mark one membership as the user's default and unset the others."""
        membership = await self._repository.get_org_membership(user_id, org_id)
        if membership is None:
            raise RecordNotFoundError("UserOrgMembership", f"{user_id}/{org_id}")

        if not membership.is_default:
            membership = await self._repository.update_org_membership(membership.id, is_default=True)
        await self._clear_other_defaults(user_id, keep_id=membership.id)
        return membership

    async def update_role(self, user_id: int, org_id: int, role: str) -> UserOrgMembership:
        role = _validate_role(role)
        membership = await self._repository.get_org_membership(user_id, org_id)
        if membership is None:
            raise RecordNotFoundError("UserOrgMembership", f"{user_id}/{org_id}")
        return await self._repository.update_org_membership(membership.id, role=role)

    async def remove_user_from_organization(self, user_id: int, org_id: int) -> None:
        membership = await self._repository.get_org_membership(user_id, org_id)
        if membership is None:
            raise RecordNotFoundError("UserOrgMembership", f"{user_id}/{org_id}")
        await self._repository.delete_org_membership(membership.id)

    async def _clear_other_defaults(self, user_id: int, keep_id: int) -> None:
        for other in await self._repository.list_org_memberships(user_id=user_id):
            if other.id != keep_id and other.is_default:
                await self._repository.update_org_membership(other.id, is_default=False)

    # =========================================================================
    # Teams
    # =========================================================================

    async def list_user_teams(self, user_id: int) -> List[UserTeamMembership]:
        await self._require_user(user_id)
        return await self._repository.list_team_memberships(user_id=user_id)

    async def add_user_to_team(self, user_id: int, team_id: int) -> UserTeamMembership:
        """
        Link a user to a team.

        Raises:
            RecordNotFoundError: Unknown user or team.
            MembershipConflictError: The user already belongs to the team.
        """
        await self._require_user(user_id)
        if await self._repository.get_team(team_id) is None:
            raise RecordNotFoundError("MirroredTeam", team_id)

        if await self._repository.get_team_membership(user_id, team_id) is not None:
            raise MembershipConflictError(
                f"User {user_id} is already a member of team {team_id}",
                user_id=user_id,
                target_id=team_id,
            )

        membership = await self._repository.create_team_membership(user_id=user_id, team_id=team_id)
        logger.info(f"User {user_id} added to team {team_id}")
        return membership

    async def remove_user_from_team(self, user_id: int, team_id: int) -> None:
        membership = await self._repository.get_team_membership(user_id, team_id)
        if membership is None:
            raise RecordNotFoundError("UserTeamMembership", f"{user_id}/{team_id}")
        await self._repository.delete_team_membership(membership.id)
