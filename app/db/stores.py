"""
SQLAlchemy adapters for the scope engine's store ports.

Each call opens its own short-lived session, so one store instance can be
shared by every device session and request thread. ``SQLAlchemyError`` is
translated at this boundary: reads raise ``TransientFetchError``, writes raise
``PersistenceFailure``.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.models import profile as profile_models
from app.models import tenancy as tenancy_models
from app.scope_engine.errors import PersistenceFailure, TransientFetchError
from app.scope_engine.models import (
    Identity,
    Location,
    LocationChoice,
    Membership,
    Organization,
    Role,
    ScopeSelection,
    StoredScope,
)

logger = logging.getLogger(__name__)


def _to_organization(row: tenancy_models.Organization) -> Organization:
    extra = dict(row.attributes or {})
    if row.slug:
        extra["slug"] = row.slug
    return Organization(id=row.id, name=row.name or "", active=bool(row.active), extra=extra)


def _to_location(row: tenancy_models.Location) -> Location:
    extra = dict(row.attributes or {})
    if row.address:
        extra["address"] = row.address
    return Location(id=row.id, org_id=row.org_id, name=row.name or "", active=bool(row.active), extra=extra)


def _to_membership(row: tenancy_models.OrgMembership) -> Membership:
    raw_ids = row.location_ids if isinstance(row.location_ids, list) else []
    return Membership(
        org_id=row.org_id,
        identity_id=row.user_id,
        role=Role.parse(row.role),
        location_ids=frozenset(str(x) for x in raw_ids if x),
        active=row.active is not False,
        suspended=row.suspended is True,
    )


class SqlDirectoryStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def list_organizations(self) -> list[Organization]:
        stmt = select(tenancy_models.Organization).order_by(tenancy_models.Organization.id)
        return [_to_organization(r) for r in self._read(stmt)]

    def get_organization(self, org_id: str) -> Organization | None:
        try:
            with self._session_factory() as db:
                row = db.get(tenancy_models.Organization, org_id)
                return _to_organization(row) if row is not None else None
        except SQLAlchemyError as e:
            raise TransientFetchError(f"organization lookup failed: {type(e).__name__}") from e

    def list_locations(self, org_id: str) -> list[Location]:
        stmt = (
            select(tenancy_models.Location)
            .where(tenancy_models.Location.org_id == org_id)
            .order_by(tenancy_models.Location.id)
        )
        return [_to_location(r) for r in self._read(stmt)]

    def list_all_locations(self) -> list[Location]:
        stmt = select(tenancy_models.Location).order_by(tenancy_models.Location.org_id, tenancy_models.Location.id)
        return [_to_location(r) for r in self._read(stmt)]

    def list_memberships(self, identity_id: str) -> list[Membership]:
        stmt = (
            select(tenancy_models.OrgMembership)
            .where(tenancy_models.OrgMembership.user_id == identity_id)
            .order_by(tenancy_models.OrgMembership.id)
        )
        return [_to_membership(r) for r in self._read(stmt)]

    def _read(self, stmt) -> list:
        try:
            with self._session_factory() as db:
                return list(db.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise TransientFetchError(f"directory query failed: {type(e).__name__}") from e


class SqlProfileStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def ensure_profile(self, identity: Identity) -> bool:
        """Create the profile row if missing. Scope fields are left empty. Returns True if created."""
        try:
            with self._session_factory() as db:
                if db.get(profile_models.UserProfile, identity.id) is not None:
                    return False
                db.add(profile_models.UserProfile(user_id=identity.id, email=identity.email or ""))
                try:
                    db.commit()
                except IntegrityError:
                    # Created concurrently by another request.
                    db.rollback()
                    return False
                return True
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"profile create failed: {type(e).__name__}") from e

    def get_scope(self, identity_id: str) -> StoredScope | None:
        try:
            with self._session_factory() as db:
                row = db.get(profile_models.UserProfile, identity_id)
        except SQLAlchemyError as e:
            raise TransientFetchError(f"profile read failed: {type(e).__name__}") from e
        if row is None:
            return None
        selection = ScopeSelection(
            org_id=row.preferred_org_id or None,
            location=LocationChoice.from_wire(row.preferred_location_id),
        )
        return StoredScope(identity_id=row.user_id, selection=selection, updated_at=row.updated_at)

    def save_scope(self, identity_id: str, selection: ScopeSelection) -> None:
        try:
            with self._session_factory() as db:
                row = db.get(profile_models.UserProfile, identity_id)
                if row is None:
                    row = profile_models.UserProfile(user_id=identity_id, email="")
                    db.add(row)
                row.preferred_org_id = selection.org_id
                row.preferred_location_id = selection.location.to_wire()
                row.updated_at = datetime.now(timezone.utc)
                db.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"profile write failed: {type(e).__name__}") from e
        logger.debug("Stored scope identity=%s org=%s", identity_id, selection.org_id)
