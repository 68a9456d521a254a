"""
API Schemas.

Pydantic request/response models for the console routes. Responses use
camelCase keys; requests accept either spelling.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from grafana_console.models import OrgRole


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Mirror records
# =============================================================================


class UserResponse(BaseSchema):
    id: int
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    login: Optional[str] = None
    company: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    platform_id: Optional[int] = None
    last_login: Optional[datetime] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserCreateRequest(BaseSchema):
    """Manually add a user to the mirror."""

    user_id: str = Field(..., min_length=1, description="Employee or Grafana login ID")
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    login: Optional[str] = None
    company: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None


class UserUpdateRequest(BaseSchema):
    """Partial update; omitted fields are left unchanged."""

    user_id: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    login: Optional[str] = None
    company: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    status: Optional[str] = None

    @field_validator("user_id", "name")
    @classmethod
    def not_null(cls, value: Optional[str]) -> str:
        # Omitted means unchanged; explicit null is rejected.
        if value is None:
            raise ValueError("must not be null")
        return value


class OrganizationResponse(BaseSchema):
    id: int
    name: str
    platform_id: Optional[int] = None


class TeamResponse(BaseSchema):
    id: int
    name: str
    email: Optional[str] = None
    org_id: int
    platform_id: Optional[int] = None


class OrgMembershipRequest(BaseSchema):
    org_id: int
    role: OrgRole = OrgRole.VIEWER
    is_default: bool = False


class OrgMembershipResponse(BaseSchema):
    id: int
    user_id: int
    org_id: int
    role: str
    is_default: bool


class TeamMembershipRequest(BaseSchema):
    team_id: int


class TeamMembershipResponse(BaseSchema):
    id: int
    user_id: int
    team_id: int


class SyncLogResponse(BaseSchema):
    id: int
    type: str
    status: str
    details: Optional[dict[str, Any]] = None
    created_at: datetime


# =============================================================================
# Directory
# =============================================================================


class EmployeeResponse(BaseSchema):
    """Live employee record as shown on the sync page."""

    employee_id: str
    name: str
    company_name: Optional[str] = None
    org_unit_name: Optional[str] = None
    position_name: Optional[str] = None


# =============================================================================
# Settings
# =============================================================================


class GrafanaSettingsResponse(BaseSchema):
    """Effective Grafana connection settings. The password is never returned."""

    grafana_url: str
    grafana_admin_user: str
    has_admin_password: bool


class GrafanaSettingsUpdate(BaseSchema):
    grafana_url: Optional[str] = None
    grafana_admin_user: Optional[str] = None
    grafana_admin_password: Optional[str] = Field(
        None, description="Leave empty to keep the stored password"
    )


class OpoppoSettingsResponse(BaseSchema):
    """Effective directory connection settings. The password is never returned."""

    opoppo_db_host: str
    opoppo_db_port: int
    opoppo_db_name: str
    opoppo_db_user: str
    opoppo_db_ssl: bool
    has_password: bool


class OpoppoSettingsUpdate(BaseSchema):
    opoppo_db_host: Optional[str] = None
    opoppo_db_port: Optional[int] = Field(None, ge=1, le=65535)
    opoppo_db_name: Optional[str] = None
    opoppo_db_user: Optional[str] = None
    opoppo_db_password: Optional[str] = Field(
        None, description="Leave empty to keep the stored password"
    )
    opoppo_db_ssl: Optional[bool] = None
