"""Tests for the identity event hub and watcher."""

from app.scope_engine import (
    Identity,
    IdentityEventHub,
    IdentityWatcher,
    ScopeSelection,
    SessionStatus,
)


def _watch(session, profiles):
    hub = IdentityEventHub()
    watcher = IdentityWatcher(hub, session, profiles)
    watcher.start()
    return hub, watcher


def test_publish_resolves_and_creates_profile(session, directory, profiles, user):
    directory.add_membership(user.id, "ORG_A", "admin")
    hub, _ = _watch(session, profiles)
    hub.publish(user)
    assert profiles.created == [user.id]
    assert session.status is SessionStatus.READY
    assert session.selection.org_id == "ORG_A"


def test_existing_profile_is_not_recreated(session, directory, profiles, user):
    profiles.store(user.id, ScopeSelection(org_id="ORG_A"))
    directory.add_membership(user.id, "ORG_A", "admin")
    hub, _ = _watch(session, profiles)
    hub.publish(user)
    assert profiles.created == []


def test_profile_failure_does_not_block_resolution(session, directory, profiles, user):
    directory.add_membership(user.id, "ORG_A", "admin")
    profiles.writes_fail = True
    hub, _ = _watch(session, profiles)
    hub.publish(user)
    assert session.status is SessionStatus.READY


def test_sign_out_resets_session(session, directory, profiles, device, user):
    directory.add_membership(user.id, "ORG_A", "admin")
    hub, watcher = _watch(session, profiles)
    hub.publish(user)
    watcher.sign_out()
    assert hub.current is None
    assert session.status is SessionStatus.UNAUTHENTICATED
    assert session.identity is None
    # the device keeps its last scope for the next sign-in
    assert device.get().org_id == "ORG_A"


def test_observe_only_fires_on_change(session, directory, profiles, user):
    directory.add_membership(user.id, "ORG_A", "admin")
    hub, _ = _watch(session, profiles)
    assert hub.observe(user) is True
    calls = len(directory.calls)
    assert hub.observe(Identity(id=user.id, email=user.email)) is False
    assert len(directory.calls) == calls
    assert hub.observe(Identity(id=user.id, email="changed@example.org")) is True
    assert len(directory.calls) > calls


def test_stop_unsubscribes(session, profiles, user):
    hub, watcher = _watch(session, profiles)
    watcher.stop()
    hub.publish(user)
    assert session.identity is None


def test_start_twice_subscribes_once(session, directory, profiles, user):
    directory.add_membership(user.id, "ORG_A", "admin")
    hub, watcher = _watch(session, profiles)
    watcher.start()
    hub.publish(user)
    assert directory.calls.count("list_memberships") == 1


def test_refresh_picks_up_membership_changes(session, directory, profiles, user):
    directory.add_membership(user.id, "ORG_A", "volunteer", ("A1",))
    hub, watcher = _watch(session, profiles)
    hub.publish(user)
    assert not session.context().capabilities.can_delete_clients

    directory.memberships.clear()
    directory.add_membership(user.id, "ORG_A", "admin")
    assert watcher.refresh() is True
    assert session.context().capabilities.can_delete_clients


def test_refresh_without_identity(session, profiles):
    _, watcher = _watch(session, profiles)
    assert watcher.refresh() is False
