"""
Mirror Records API.

CRUD over the local user mirror plus read access to mirrored organizations
and teams. Explicit deletion here is the only way a mirrored user is ever
removed; syncs never delete.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Response, status

from grafana_console.api.schemas import (
    OrganizationResponse,
    OrgMembershipRequest,
    OrgMembershipResponse,
    TeamMembershipRequest,
    TeamMembershipResponse,
    TeamResponse,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)
from grafana_console.dependencies import MembershipServiceDep, RepositoryDep
from grafana_console.models import MirroredUser, UserStatus
from grafana_console.repository.exceptions import RecordNotFoundError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/grafana", tags=["Mirror"])


# =============================================================================
# Users
# =============================================================================

@router.get("/users", response_model=list[UserResponse])
async def list_users(repository: RepositoryDep) -> list[MirroredUser]:
    return await repository.list_users()


@router.get("/users/{id}", response_model=UserResponse)
async def get_user(id: int, repository: RepositoryDep) -> MirroredUser:
    user = await repository.get_user(id)
    if user is None:
        raise RecordNotFoundError("MirroredUser", id)
    return user


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreateRequest, repository: RepositoryDep) -> MirroredUser:
    """Add a user by hand. New users start ``pending``."""
    fields = body.model_dump()
    fields["status"] = UserStatus.PENDING.value
    user = await repository.create_user(**fields)
    logger.info(f"User {user.user_id} created manually (id={user.id})")
    return user


@router.put("/users/{id}", response_model=UserResponse)
async def update_user(id: int, body: UserUpdateRequest, repository: RepositoryDep) -> MirroredUser:
    fields = body.model_dump(exclude_unset=True)
    if "status" in fields:
        try:
            fields["status"] = UserStatus(fields["status"]).value
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status '{fields['status']}'",
            )
    return await repository.update_user(id, **fields)


@router.delete("/users/{id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(id: int, repository: RepositoryDep) -> Response:
    await repository.delete_user(id)
    logger.info(f"User {id} deleted")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Memberships
# =============================================================================

@router.get("/users/{id}/organizations", response_model=list[OrgMembershipResponse])
async def list_user_organizations(id: int, memberships: MembershipServiceDep) -> list:
    return await memberships.list_user_organizations(id)


@router.post(
    "/users/{id}/organizations",
    response_model=OrgMembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_user_to_organization(
    id: int,
    body: OrgMembershipRequest,
    memberships: MembershipServiceDep,
):
    """Link the user to an organization. 409 when already a member."""
    return await memberships.add_user_to_organization(
        id, body.org_id, role=body.role.value, is_default=body.is_default
    )


@router.put("/users/{id}/organizations/{org_id}/default", response_model=OrgMembershipResponse)
async def set_default_organization(id: int, org_id: int, memberships: MembershipServiceDep):
    return await memberships.set_default_organization(id, org_id)


@router.delete("/users/{id}/organizations/{org_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user_from_organization(
    id: int, org_id: int, memberships: MembershipServiceDep
) -> Response:
    await memberships.remove_user_from_organization(id, org_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/{id}/teams", response_model=list[TeamMembershipResponse])
async def list_user_teams(id: int, memberships: MembershipServiceDep) -> list:
    return await memberships.list_user_teams(id)


@router.post(
    "/users/{id}/teams",
    response_model=TeamMembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_user_to_team(id: int, body: TeamMembershipRequest, memberships: MembershipServiceDep):
    """Link the user to a team. 409 when already a member."""
    return await memberships.add_user_to_team(id, body.team_id)


@router.delete("/users/{id}/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user_from_team(id: int, team_id: int, memberships: MembershipServiceDep) -> Response:
    await memberships.remove_user_from_team(id, team_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Organizations / Teams
# =============================================================================

@router.get("/organizations", response_model=list[OrganizationResponse])
async def list_organizations(repository: RepositoryDep) -> list:
    return await repository.list_organizations()


@router.get("/teams", response_model=list[TeamResponse])
async def list_teams(
    repository: RepositoryDep,
    org_id: Optional[int] = Query(None, description="Restrict to one organization"),
) -> list:
    return await repository.list_teams(org_id=org_id)
