"""
Scope resolver.

Picks the active organization and location from an ``AccessMap`` plus the
device-cached and server-stored selections.

Precedence is an ordered list of candidate producers. Each producer is only
called when every earlier candidate was missing or invalid, and the first
valid candidate wins:

    organization: device cache -> server store -> first visible organization
    location:     device cache -> server store -> default location rule

The default location rule: with org-wide access, the first location of the
organization; otherwise the first allowed location of the organization;
otherwise no location. A cached ALL that the identity may not use for the
organization is not valid, so it falls through to the default rule.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, TypeVar

from .membership import AccessMap
from .models import (
    EMPTY_SELECTION,
    NO_LOCATION,
    LocationChoice,
    ScopeSelection,
    StoredScope,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Producer = Callable[[], T]


def first_valid(producers: Iterable[tuple[str, Producer]], is_valid: Callable[[T], bool]) -> tuple[str, T] | None:
    """Return ``(source, value)`` for the first produced value that passes ``is_valid``."""
    for source, produce in producers:
        value = produce()
        if value is not None and is_valid(value):
            return source, value
    return None


def is_location_valid(access: AccessMap, org_id: str | None, choice: LocationChoice) -> bool:
    """Whether ``choice`` may be the active location while ``org_id`` is active."""
    if not access.has_org(org_id):
        return False
    if choice.is_all:
        return access.has_org_wide_access(org_id)
    if choice.is_single:
        # ``locations_for`` is already limited to the allow-list.
        return any(loc.id == choice.location_id for loc in access.locations_for(org_id))
    return False


def default_location(access: AccessMap, org_id: str | None) -> LocationChoice:
    """Fresh location pick for an organization, ignoring cache and server."""
    if not access.has_org(org_id):
        return NO_LOCATION
    org_locations = access.locations_for(org_id)
    if access.has_org_wide_access(org_id):
        return LocationChoice.single(org_locations[0].id) if org_locations else NO_LOCATION
    for loc in org_locations:
        if access.is_location_allowed(org_id, loc.id):
            return LocationChoice.single(loc.id)
    return NO_LOCATION


class ScopeResolver:
    """Stateless; one instance can serve every session."""

    def resolve(
        self,
        access: AccessMap,
        device: ScopeSelection | None = None,
        stored: StoredScope | None = None,
    ) -> ScopeSelection:
        device = device or EMPTY_SELECTION
        server = stored.selection if stored is not None else EMPTY_SELECTION

        org_pick = first_valid(
            [
                ("device", lambda: device.org_id),
                ("server", lambda: server.org_id),
                ("first", lambda: access.organizations[0].id if access.organizations else None),
            ],
            access.has_org,
        )
        if org_pick is None:
            logger.debug("No visible organization; resolving to empty selection")
            return EMPTY_SELECTION
        org_source, org_id = org_pick

        location_pick = first_valid(
            [
                ("device", lambda: device.location),
                ("server", lambda: server.location),
                ("default", lambda: default_location(access, org_id)),
            ],
            lambda choice: is_location_valid(access, org_id, choice),
        )
        if location_pick is None:
            location_source, location = "default", NO_LOCATION
        else:
            location_source, location = location_pick

        logger.debug(
            "Resolved scope org=%s (%s) location=%s (%s)",
            org_id,
            org_source,
            location.to_wire(),
            location_source,
        )
        return ScopeSelection(org_id=org_id, location=location)

    def default_location(self, access: AccessMap, org_id: str | None) -> LocationChoice:
        return default_location(access, org_id)

    def is_valid(self, access: AccessMap, selection: ScopeSelection) -> bool:
        """Check a complete selection against the invariants."""
        if selection.org_id is None:
            return selection.location.is_none
        if not access.has_org(selection.org_id):
            return False
        if selection.location.is_none:
            return True
        return is_location_valid(access, selection.org_id, selection.location)
