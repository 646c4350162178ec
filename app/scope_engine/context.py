"""Read-only snapshot of a session, handed to the rest of the application."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .capabilities import NO_CAPABILITIES, CapabilitySet
from .models import NO_LOCATION, Location, LocationChoice, Organization, Role


class SessionStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    RESOLVING = "resolving"
    READY = "ready"


@dataclass(frozen=True)
class ScopeContext:
    """
    Active scope plus derived flags for one device session.

    ``locations`` is the full resolved list across organizations, already
    limited to what the identity may reach.
    """

    status: SessionStatus
    servable: bool = False
    """Ready, or resolving again while the last committed result is kept."""

    identity_id: str | None = None
    email: str | None = None
    is_master: bool = False

    organizations: tuple[Organization, ...] = ()
    locations: tuple[Location, ...] = ()

    active_organization: Organization | None = None
    active_location: LocationChoice = NO_LOCATION

    role: Role | None = None
    """Coarse badge: admin when admin in any organization."""

    role_for_active_org: Role | None = None
    can_pick_all_locations: bool = False
    capabilities: CapabilitySet = NO_CAPABILITIES

    @property
    def ready(self) -> bool:
        return self.status is SessionStatus.READY

    @property
    def loading(self) -> bool:
        return self.status is SessionStatus.RESOLVING

    @property
    def active_org_id(self) -> str | None:
        return self.active_organization.id if self.active_organization else None

    @property
    def is_admin_for_active_org(self) -> bool:
        return self.is_master or self.role_for_active_org is Role.ADMIN

    def has_capability(self, capability: str) -> bool:
        return self.capabilities.has(capability)

    def locations_for_active_org(self) -> tuple[Location, ...]:
        return tuple(loc for loc in self.locations if loc.org_id == self.active_org_id)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "status": self.status.value,
            "ready": self.ready,
            "loading": self.loading,
            "servable": self.servable,
            "identity_id": self.identity_id,
            "email": self.email,
            "is_master": self.is_master,
            "organizations": [o.to_dict() for o in self.organizations],
            "locations": [loc.to_dict() for loc in self.locations],
            "active_org_id": self.active_org_id,
            "active_location_id": self.active_location.to_wire(),
            "role": self.role.value if self.role else None,
            "role_for_active_org": self.role_for_active_org.value if self.role_for_active_org else None,
            "is_admin_for_active_org": self.is_admin_for_active_org,
            "can_pick_all_locations": self.can_pick_all_locations,
            "capabilities": self.capabilities.to_dict(),
        }


SIGNED_OUT = ScopeContext(status=SessionStatus.UNAUTHENTICATED)
