"""
Membership loader.

Turns an identity into the set of organizations and locations it can see,
together with the per-organization role, location allow-list and org-wide
access flag.

Two paths:

* Master identities see the whole catalog, act as admin everywhere and have
  org-wide access everywhere. No membership query is made.
* Everyone else is limited to organizations referenced by active,
  non-suspended membership rows. An admin row with an empty location list
  grants org-wide access; a volunteer row with an empty list grants no
  location at all.

Organization or location ids that no longer resolve are dropped. That is
ordinary staleness, not an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Mapping

from .models import Identity, Location, Organization, Role
from .ports import DirectoryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessMap:
    """Everything the resolver needs to know about what an identity can reach."""

    is_master: bool = False
    organizations: tuple[Organization, ...] = ()
    locations: tuple[Location, ...] = ()
    role_by_org: Mapping[str, Role] = field(default_factory=dict)
    allowed_locations_by_org: Mapping[str, frozenset[str]] = field(default_factory=dict)
    org_wide_by_org: Mapping[str, bool] = field(default_factory=dict)

    def has_org(self, org_id: str | None) -> bool:
        return bool(org_id) and any(o.id == org_id for o in self.organizations)

    def get_org(self, org_id: str | None) -> Organization | None:
        for org in self.organizations:
            if org.id == org_id:
                return org
        return None

    def get_location(self, location_id: str | None) -> Location | None:
        for loc in self.locations:
            if loc.id == location_id:
                return loc
        return None

    def locations_for(self, org_id: str | None) -> tuple[Location, ...]:
        return tuple(loc for loc in self.locations if loc.org_id == org_id)

    def role_for(self, org_id: str | None) -> Role | None:
        if not self.has_org(org_id):
            return None
        if self.is_master:
            return Role.ADMIN
        return self.role_by_org.get(org_id)

    def has_org_wide_access(self, org_id: str | None) -> bool:
        if not self.has_org(org_id):
            return False
        return self.is_master or self.org_wide_by_org.get(org_id, False)

    def is_location_allowed(self, org_id: str | None, location_id: str) -> bool:
        if self.has_org_wide_access(org_id):
            return True
        return location_id in self.allowed_locations_by_org.get(org_id, frozenset())

    @property
    def coarse_role(self) -> Role | None:
        """Admin when admin anywhere; volunteer when only volunteer memberships exist."""
        if self.is_master:
            return Role.ADMIN
        if not self.role_by_org:
            return None
        return Role.ADMIN if Role.ADMIN in self.role_by_org.values() else Role.VOLUNTEER


EMPTY_ACCESS = AccessMap()


class MembershipLoader:
    """Builds an ``AccessMap`` from the directory store."""

    def __init__(self, directory: DirectoryStore) -> None:
        self._directory = directory

    def load(self, identity: Identity) -> AccessMap:
        if identity.is_master:
            return self._load_master()
        return self._load_standard(identity)

    def _load_master(self) -> AccessMap:
        orgs = tuple(self._directory.list_organizations())
        org_ids = {o.id for o in orgs}
        locations = tuple(loc for loc in self._directory.list_all_locations() if loc.org_id in org_ids)
        logger.debug("Master access loaded orgs=%d locations=%d", len(orgs), len(locations))
        return AccessMap(
            is_master=True,
            organizations=orgs,
            locations=locations,
            role_by_org={o.id: Role.ADMIN for o in orgs},
            allowed_locations_by_org={},
            org_wide_by_org={o.id: True for o in orgs},
        )

    def _load_standard(self, identity: Identity) -> AccessMap:
        role_by_org: dict[str, Role] = {}
        allowed_by_org: dict[str, frozenset[str]] = {}
        org_wide_by_org: dict[str, bool] = {}

        for row in self._directory.list_memberships(identity.id):
            if not row.org_id:
                continue
            if not row.is_effective:
                logger.debug(
                    "Skipping membership org=%s active=%s suspended=%s", row.org_id, row.active, row.suspended
                )
                continue
            role_by_org[row.org_id] = row.role
            allowed_by_org[row.org_id] = frozenset(lid for lid in row.location_ids if lid)
            org_wide_by_org[row.org_id] = row.role is Role.ADMIN and not allowed_by_org[row.org_id]

        orgs: list[Organization] = []
        for org_id in role_by_org:
            org = self._directory.get_organization(org_id)
            if org is None:
                logger.debug("Dropping stale organization reference org=%s", org_id)
                continue
            orgs.append(org)

        locations: list[Location] = []
        for org in orgs:
            org_locations = self._directory.list_locations(org.id)
            if not org_wide_by_org[org.id]:
                allow = allowed_by_org[org.id]
                org_locations = [loc for loc in org_locations if loc.id in allow]
            locations.extend(loc for loc in org_locations if loc.org_id == org.id)

        visible = {o.id for o in orgs}
        logger.debug(
            "Membership access loaded identity=%s orgs=%d locations=%d", identity.id, len(orgs), len(locations)
        )
        return AccessMap(
            is_master=False,
            organizations=tuple(orgs),
            locations=tuple(locations),
            role_by_org={k: v for k, v in role_by_org.items() if k in visible},
            allowed_locations_by_org={k: v for k, v in allowed_by_org.items() if k in visible},
            org_wide_by_org={k: v for k, v in org_wide_by_org.items() if k in visible},
        )
