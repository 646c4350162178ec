"""
In-memory stand-ins for the store ports.

The default directory holds three organizations:

    ORG_A: A1, A2
    ORG_B: B1, B2
    ORG_C: C1

Tests add the memberships they need.
"""
from __future__ import annotations

import pytest

from app.scope_engine import (
    Identity,
    InMemoryDeviceCache,
    Location,
    Membership,
    Organization,
    Role,
    ScopeSelection,
    ScopeSession,
    StoredScope,
)
from app.scope_engine.errors import PersistenceFailure, TransientFetchError


class FakeDirectory:
    def __init__(self) -> None:
        self.organizations: list[Organization] = []
        self.locations: list[Location] = []
        self.memberships: list[Membership] = []
        self.calls: list[str] = []
        self.offline = False

    def add_org(self, org_id: str, *location_ids: str) -> None:
        self.organizations.append(Organization(id=org_id, name=f"Org {org_id}"))
        for loc_id in location_ids:
            self.locations.append(Location(id=loc_id, org_id=org_id, name=f"Location {loc_id}"))

    def remove_org(self, org_id: str) -> None:
        self.organizations = [o for o in self.organizations if o.id != org_id]
        self.locations = [loc for loc in self.locations if loc.org_id != org_id]

    def add_membership(
        self,
        identity_id: str,
        org_id: str,
        role: str = "volunteer",
        location_ids: tuple[str, ...] = (),
        *,
        active: bool = True,
        suspended: bool = False,
    ) -> None:
        self.memberships.append(
            Membership(
                org_id=org_id,
                identity_id=identity_id,
                role=Role.parse(role),
                location_ids=frozenset(location_ids),
                active=active,
                suspended=suspended,
            )
        )

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if self.offline:
            raise TransientFetchError("directory offline")

    def list_organizations(self):
        self._call("list_organizations")
        return list(self.organizations)

    def get_organization(self, org_id):
        self._call("get_organization")
        return next((o for o in self.organizations if o.id == org_id), None)

    def list_locations(self, org_id):
        self._call("list_locations")
        return [loc for loc in self.locations if loc.org_id == org_id]

    def list_all_locations(self):
        self._call("list_all_locations")
        return list(self.locations)

    def list_memberships(self, identity_id):
        self._call("list_memberships")
        return [m for m in self.memberships if m.identity_id == identity_id]


class FakeProfiles:
    def __init__(self) -> None:
        self.records: dict[str, StoredScope] = {}
        self.created: list[str] = []
        self.saves: list[tuple[str, ScopeSelection]] = []
        self.reads_fail = False
        self.writes_fail = False

    def store(self, identity_id: str, selection: ScopeSelection) -> None:
        self.records[identity_id] = StoredScope(identity_id=identity_id, selection=selection)

    def ensure_profile(self, identity: Identity) -> bool:
        if self.writes_fail:
            raise PersistenceFailure("profile store offline")
        if identity.id in self.records:
            return False
        self.records[identity.id] = StoredScope(identity_id=identity.id)
        self.created.append(identity.id)
        return True

    def get_scope(self, identity_id):
        if self.reads_fail:
            raise TransientFetchError("profile store offline")
        return self.records.get(identity_id)

    def save_scope(self, identity_id, selection):
        if self.writes_fail:
            raise PersistenceFailure("profile store offline")
        self.saves.append((identity_id, selection))
        self.store(identity_id, selection)


@pytest.fixture
def directory() -> FakeDirectory:
    d = FakeDirectory()
    d.add_org("ORG_A", "A1", "A2")
    d.add_org("ORG_B", "B1", "B2")
    d.add_org("ORG_C", "C1")
    return d


@pytest.fixture
def profiles() -> FakeProfiles:
    return FakeProfiles()


@pytest.fixture
def device() -> InMemoryDeviceCache:
    return InMemoryDeviceCache()


@pytest.fixture
def session(directory, profiles, device) -> ScopeSession:
    return ScopeSession(directory, profiles, device)


@pytest.fixture
def master() -> Identity:
    return Identity(id="u-master", email="master@example.org", trusted_attributes={"master": True})


@pytest.fixture
def user() -> Identity:
    return Identity(id="u-1", email="one@example.org")


class BrokenDeviceCache:
    """Device cache whose reads and writes always fail."""

    def __init__(self) -> None:
        self.writes = 0

    def get(self):
        raise OSError("device storage unavailable")

    def set(self, selection):
        self.writes += 1
        raise OSError("disk full")


@pytest.fixture
def broken_device() -> BrokenDeviceCache:
    return BrokenDeviceCache()
