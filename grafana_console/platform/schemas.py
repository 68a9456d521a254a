"""
Grafana API Schemas.

Typed views of the Grafana admin API payloads. Field aliases follow
Grafana's camelCase JSON; unknown keys are ignored.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _GrafanaModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GrafanaOrg(_GrafanaModel):
    id: int
    name: str


class GrafanaUser(_GrafanaModel):
    id: int
    login: str
    email: Optional[str] = None
    name: Optional[str] = None
    is_disabled: bool = Field(default=False, alias="isDisabled")
    last_seen_at: Optional[datetime] = Field(default=None, alias="lastSeenAt")


class GrafanaTeam(_GrafanaModel):
    id: int
    name: str
    email: Optional[str] = None
    org_id: Optional[int] = Field(default=None, alias="orgId")
    member_count: int = Field(default=0, alias="memberCount")


class GrafanaTeamMember(_GrafanaModel):
    user_id: int = Field(alias="userId")
    login: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
