"""Tests for the JSON file device cache."""

import json

import pytest

from app.scope_engine import ALL_LOCATIONS, JsonFileDeviceCache, LocationChoice, ScopeSelection


def test_missing_file_reads_empty(tmp_path):
    cache = JsonFileDeviceCache(tmp_path, "dev-1")
    assert cache.get() == ScopeSelection()


def test_set_then_get(tmp_path):
    cache = JsonFileDeviceCache(tmp_path / "nested", "dev-1")
    cache.set(ScopeSelection(org_id="ORG_A", location=ALL_LOCATIONS))
    assert json.loads(cache.path.read_text(encoding="utf-8")) == {
        "activeOrgId": "ORG_A",
        "activeLocationId": "ALL",
    }
    assert cache.get() == ScopeSelection(org_id="ORG_A", location=ALL_LOCATIONS)


def test_legacy_empty_location_reads_as_all(tmp_path):
    cache = JsonFileDeviceCache(tmp_path, "dev-1")
    cache.path.write_text('{"activeOrgId": "ORG_A", "activeLocationId": ""}', encoding="utf-8")
    assert cache.get().location.is_all


@pytest.mark.parametrize("content", ["not json", "[1, 2]", ""])
def test_corrupt_file_reads_empty(tmp_path, content):
    cache = JsonFileDeviceCache(tmp_path, "dev-1")
    cache.path.write_text(content, encoding="utf-8")
    assert cache.get() == ScopeSelection()


def test_device_id_is_sanitized(tmp_path):
    cache = JsonFileDeviceCache(tmp_path, "../../etc/passwd")
    assert cache.path.parent == tmp_path
    cache.set(ScopeSelection(org_id="ORG_A", location=LocationChoice.single("A1")))
    assert cache.path.exists()


def test_device_id_without_safe_characters_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        JsonFileDeviceCache(tmp_path, "///")


def test_write_failure_is_dropped(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    cache = JsonFileDeviceCache(blocker / "sub", "dev-1")
    cache.set(ScopeSelection(org_id="ORG_A"))
    assert cache.get() == ScopeSelection()
