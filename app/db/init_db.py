from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.db.base import Base
from app.models.profile import UserProfile  # noqa: F401  (register table)
from app.models.tenancy import Location, Organization, OrgMembership


def init_db(engine: Engine, session_factory: sessionmaker[Session], *, seed: bool = True) -> None:
    """
    Create tables and, when asked, seed demo tenants.

    The seed is small and deterministic so the scope rules can be tried
    without additional setup:

    - ``u-admin``: admin of NORTHSIDE with org-wide access.
    - ``u-site-admin``: admin of NORTHSIDE restricted to one location.
    - ``u-volunteer``: volunteer at one NORTHSIDE location, plus a suspended
      membership in RIVERBEND (which must stay invisible).
    - ``u-idle``: volunteer in RIVERBEND with no locations assigned.
    """

    Base.metadata.create_all(bind=engine)

    if not seed:
        return
    with session_factory() as db:
        if _has_seed_data(db):
            return
        _seed(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(Organization.id).limit(1)).first() is not None


def _seed(db: Session) -> None:
    northside = Organization(id="NORTHSIDE", name="Northside Community Pantry", slug="northside", active=True)
    riverbend = Organization(id="RIVERBEND", name="Riverbend Outreach", slug="riverbend", active=True)
    db.add_all([northside, riverbend])
    db.flush()

    db.add_all(
        [
            Location(id="NORTHSIDE_MAIN", org_id=northside.id, name="Main Street Hall", address="12 Main St"),
            Location(id="NORTHSIDE_EAST", org_id=northside.id, name="East Chapel", address="88 East Ave"),
            Location(id="RIVERBEND_DOCK", org_id=riverbend.id, name="Dockside Center", address="3 Harbor Rd"),
        ]
    )
    db.flush()

    db.add_all(
        [
            OrgMembership(user_id="u-admin", org_id=northside.id, email="admin@example.org", role="admin", location_ids=[]),
            OrgMembership(
                user_id="u-site-admin",
                org_id=northside.id,
                email="site.admin@example.org",
                role="admin",
                location_ids=["NORTHSIDE_EAST"],
            ),
            OrgMembership(
                user_id="u-volunteer",
                org_id=northside.id,
                email="volunteer@example.org",
                role="volunteer",
                location_ids=["NORTHSIDE_MAIN"],
            ),
            OrgMembership(
                user_id="u-volunteer",
                org_id=riverbend.id,
                email="volunteer@example.org",
                role="volunteer",
                location_ids=["RIVERBEND_DOCK"],
                suspended=True,
            ),
            OrgMembership(user_id="u-idle", org_id=riverbend.id, email="idle@example.org", role="volunteer", location_ids=[]),
        ]
    )

    db.commit()
