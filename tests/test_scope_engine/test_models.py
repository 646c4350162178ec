"""Tests for scope records and the location choice wire format."""

import pytest

from app.scope_engine.models import (
    ALL_LOCATIONS,
    NO_LOCATION,
    Identity,
    LocationChoice,
    Role,
    ScopeSelection,
)


def test_location_choice_wire_values():
    assert LocationChoice.from_wire(None) is NO_LOCATION
    assert LocationChoice.from_wire("ALL") == ALL_LOCATIONS
    assert LocationChoice.from_wire("L1") == LocationChoice.single("L1")
    assert ALL_LOCATIONS.to_wire() == "ALL"
    assert NO_LOCATION.to_wire() is None
    assert LocationChoice.single("L1").to_wire() == "L1"


def test_legacy_empty_string_reads_as_all_locations():
    assert LocationChoice.from_wire("").is_all


def test_all_and_none_are_distinct():
    assert ALL_LOCATIONS != NO_LOCATION
    assert not ALL_LOCATIONS.is_none
    assert not NO_LOCATION.is_all


def test_single_requires_location_id():
    with pytest.raises(ValueError):
        LocationChoice.single("")


def test_scope_selection_from_wire():
    sel = ScopeSelection.from_wire({"activeOrgId": "ORG_A", "activeLocationId": "ALL"})
    assert sel.org_id == "ORG_A"
    assert sel.location.is_all
    assert sel.to_wire() == {"activeOrgId": "ORG_A", "activeLocationId": "ALL"}

    empty = ScopeSelection.from_wire(None)
    assert empty.org_id is None
    assert empty.location.is_none


def test_master_flag_requires_literal_true():
    assert Identity(id="u", trusted_attributes={"master": True}).is_master
    assert not Identity(id="u", trusted_attributes={"master": "true"}).is_master
    assert not Identity(id="u", trusted_attributes={"master": 1}).is_master
    assert not Identity(id="u").is_master


def test_role_parse_defaults_to_volunteer():
    assert Role.parse("admin") is Role.ADMIN
    assert Role.parse(" Admin ") is Role.ADMIN
    assert Role.parse("volunteer") is Role.VOLUNTEER
    assert Role.parse("manager") is Role.VOLUNTEER
    assert Role.parse(None) is Role.VOLUNTEER
