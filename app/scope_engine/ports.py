"""
Interfaces the engine consumes.

Adapters raise ``TransientFetchError`` when a read cannot reach the store and
``PersistenceFailure`` when a write does not go through. Device caches never
raise.
"""

from __future__ import annotations

from typing import Callable, Protocol, Sequence

from .models import Identity, Location, Membership, Organization, ScopeSelection, StoredScope

IdentityListener = Callable[[Identity | None], None]


class IdentitySource(Protocol):
    """Stream of identity changes; ``None`` means signed out."""

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]: ...
    def sign_out(self) -> None: ...


class DirectoryStore(Protocol):
    """Read-only projections of organizations, locations and memberships."""

    def list_organizations(self) -> Sequence[Organization]: ...
    def get_organization(self, org_id: str) -> Organization | None: ...
    def list_locations(self, org_id: str) -> Sequence[Location]: ...
    def list_all_locations(self) -> Sequence[Location]: ...
    def list_memberships(self, identity_id: str) -> Sequence[Membership]: ...


class ProfileStore(Protocol):
    """One profile record per identity, durable across devices."""

    def ensure_profile(self, identity: Identity) -> bool: ...
    def get_scope(self, identity_id: str) -> StoredScope | None: ...
    def save_scope(self, identity_id: str, selection: ScopeSelection) -> None: ...


class DeviceScopeCache(Protocol):
    """Last-used scope on this device."""

    def get(self) -> ScopeSelection: ...
    def set(self, selection: ScopeSelection) -> None: ...
