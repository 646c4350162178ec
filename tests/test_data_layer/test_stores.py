"""
Tests for the SQLAlchemy directory and profile stores.

Uses the session_factory fixture: in-memory SQLite with every table created.
"""
from __future__ import annotations

import pytest

from app.db.session import create_session_factory
from app.db.stores import SqlDirectoryStore, SqlProfileStore
from app.models.profile import UserProfile
from app.models.tenancy import Location, Organization, OrgMembership
from app.scope_engine import ALL_LOCATIONS, Identity, LocationChoice, Role, ScopeSelection
from app.scope_engine.errors import PersistenceFailure, TransientFetchError


@pytest.fixture
def tenants(db_session):
    db_session.add_all(
        [
            Organization(id="ORG_B", name="Bravo", slug="bravo", attributes={"phone": "555-0100"}),
            Organization(id="ORG_A", name="Alpha"),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            Location(id="A2", org_id="ORG_A", name="Annex"),
            Location(id="A1", org_id="ORG_A", name="Hall", address="1 Main St"),
            Location(id="B1", org_id="ORG_B", name="Depot"),
        ]
    )
    db_session.add_all(
        [
            OrgMembership(user_id="u-1", org_id="ORG_A", role="admin", location_ids=[]),
            OrgMembership(user_id="u-1", org_id="ORG_B", role="volunteer", location_ids=["B1", ""], suspended=True),
            OrgMembership(user_id="u-2", org_id="ORG_A", role="Manager", location_ids=["A1"]),
        ]
    )
    db_session.commit()


def test_list_organizations_ordered_with_extras(session_factory, tenants):
    orgs = SqlDirectoryStore(session_factory).list_organizations()
    assert [o.id for o in orgs] == ["ORG_A", "ORG_B"]
    bravo = orgs[1]
    assert bravo.name == "Bravo"
    assert bravo.extra == {"phone": "555-0100", "slug": "bravo"}
    assert bravo.to_dict()["slug"] == "bravo"


def test_get_organization(session_factory, tenants):
    store = SqlDirectoryStore(session_factory)
    assert store.get_organization("ORG_A").name == "Alpha"
    assert store.get_organization("ORG_GONE") is None


def test_list_locations(session_factory, tenants):
    store = SqlDirectoryStore(session_factory)
    locations = store.list_locations("ORG_A")
    assert [loc.id for loc in locations] == ["A1", "A2"]
    assert locations[0].extra == {"address": "1 Main St"}
    assert [loc.id for loc in store.list_all_locations()] == ["A1", "A2", "B1"]


def test_list_memberships(session_factory, tenants):
    store = SqlDirectoryStore(session_factory)
    rows = store.list_memberships("u-1")
    assert [(m.org_id, m.role) for m in rows] == [("ORG_A", Role.ADMIN), ("ORG_B", Role.VOLUNTEER)]
    assert rows[0].location_ids == frozenset()
    assert rows[0].is_effective
    assert rows[1].location_ids == frozenset({"B1"})
    assert not rows[1].is_effective

    other = store.list_memberships("u-2")
    assert other[0].role is Role.VOLUNTEER


def test_directory_errors_are_transient(engine):
    # no tables created
    store = SqlDirectoryStore(create_session_factory(engine))
    with pytest.raises(TransientFetchError):
        store.list_organizations()
    with pytest.raises(TransientFetchError):
        store.get_organization("ORG_A")


def test_ensure_profile_creates_once(session_factory, db_session):
    store = SqlProfileStore(session_factory)
    ident = Identity(id="u-1", email="one@example.org")
    assert store.ensure_profile(ident) is True
    assert store.ensure_profile(ident) is False

    row = db_session.get(UserProfile, "u-1")
    assert row.email == "one@example.org"
    assert row.preferred_org_id is None
    assert row.preferred_location_id is None


def test_get_scope_missing_profile(session_factory):
    assert SqlProfileStore(session_factory).get_scope("u-404") is None


def test_save_and_get_scope(session_factory):
    store = SqlProfileStore(session_factory)
    store.save_scope("u-1", ScopeSelection(org_id="ORG_A", location=LocationChoice.single("A1")))
    stored = store.get_scope("u-1")
    assert stored.selection == ScopeSelection(org_id="ORG_A", location=LocationChoice.single("A1"))
    assert stored.updated_at is not None

    store.save_scope("u-1", ScopeSelection(org_id="ORG_A", location=ALL_LOCATIONS))
    assert store.get_scope("u-1").selection.location.is_all

    store.save_scope("u-1", ScopeSelection())
    assert store.get_scope("u-1").selection == ScopeSelection()


def test_save_scope_keeps_profile_email(session_factory):
    store = SqlProfileStore(session_factory)
    store.ensure_profile(Identity(id="u-1", email="one@example.org"))
    store.save_scope("u-1", ScopeSelection(org_id="ORG_A"))
    with session_factory() as db:
        assert db.get(UserProfile, "u-1").email == "one@example.org"


def test_profile_errors(engine):
    store = SqlProfileStore(create_session_factory(engine))
    with pytest.raises(TransientFetchError):
        store.get_scope("u-1")
    with pytest.raises(PersistenceFailure):
        store.save_scope("u-1", ScopeSelection())
    with pytest.raises(PersistenceFailure):
        store.ensure_profile(Identity(id="u-1"))
