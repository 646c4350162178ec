from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class OrganizationOut(BaseModel):
    # Extension fields (slug, contact info, ...) pass through.
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    active: bool


class LocationOut(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    org_id: str
    name: str
    active: bool


class ScopeContextOut(BaseModel):
    status: str
    ready: bool
    loading: bool
    servable: bool
    identity_id: str | None
    email: str | None
    is_master: bool
    organizations: list[OrganizationOut]
    locations: list[LocationOut]
    active_org_id: str | None
    active_location_id: str | None = Field(description='Location id, "ALL", or null')
    role: str | None
    role_for_active_org: str | None
    is_admin_for_active_org: bool
    can_pick_all_locations: bool
    capabilities: dict[str, bool]


class SetActiveOrgIn(BaseModel):
    org_id: str | None = None


class SetActiveLocationIn(BaseModel):
    location_id: str | None = Field(default=None, description='Location id, "ALL", or null')


class SaveResultOut(BaseModel):
    saved: bool
    error: str | None = None


class CapabilityCheckOut(BaseModel):
    capability: str
    allowed: bool
