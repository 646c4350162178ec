"""
Per-device scope session.

Holds the resolved access map and active selection for the identity signed in
on one device, runs resolution passes and applies the user-facing scope
actions.

Write rules:
- The device cache mirrors every change of the active selection.
- The server store is written once at the end of each resolution pass
  (best-effort) and by ``save_device_default_scope``. Switching organization
  or location never writes it, so navigating on one device does not override
  the default saved from another.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import threading

from .capabilities import CapabilityEvaluator
from .context import SIGNED_OUT, ScopeContext, SessionStatus
from .errors import PersistenceFailure, TransientFetchError
from .membership import EMPTY_ACCESS, AccessMap, MembershipLoader
from .models import (
    ALL_LOCATIONS,
    EMPTY_SELECTION,
    NO_LOCATION,
    Identity,
    LocationChoice,
    ScopeSelection,
)
from .ports import DeviceScopeCache, DirectoryStore, ProfileStore
from .resolver import ScopeResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveResult:
    """Outcome of an explicit save; ``error`` is set only on failure."""

    saved: bool
    error: str | None = None

    @property
    def ok(self) -> bool:
        """False only on a failed write. Nothing to save (no identity) is not a failure."""
        return self.error is None


class ScopeSession:
    def __init__(
        self,
        directory: DirectoryStore,
        profiles: ProfileStore,
        device_cache: DeviceScopeCache,
        *,
        evaluator: CapabilityEvaluator | None = None,
        resolver: ScopeResolver | None = None,
    ) -> None:
        self._loader = MembershipLoader(directory)
        self._profiles = profiles
        self._device = device_cache
        self._evaluator = evaluator or CapabilityEvaluator()
        self._resolver = resolver or ScopeResolver()

        self._lock = threading.RLock()
        self._generation = 0
        self._status = SessionStatus.UNAUTHENTICATED
        self._identity: Identity | None = None
        self._access: AccessMap = EMPTY_ACCESS
        self._selection: ScopeSelection = EMPTY_SELECTION
        # True once a pass for the current identity has committed.
        self._servable = False

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def selection(self) -> ScopeSelection:
        return self._selection

    @property
    def access(self) -> AccessMap:
        return self._access

    # ---- Identity transitions -------------------------------------------------------

    def resolve(self, identity: Identity) -> bool:
        """
        Run a full resolution pass for ``identity``.

        Returns True when the pass committed. A pass that hits a transient
        store failure leaves the session resolving (and any earlier result
        for the same identity in place). A pass overtaken by a newer
        identity event is discarded.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._identity is None or self._identity.id != identity.id:
                self._access = EMPTY_ACCESS
                self._selection = EMPTY_SELECTION
                self._servable = False
            self._identity = identity
            self._status = SessionStatus.RESOLVING

        logger.info("Resolving scope identity=%s master=%s", identity.id, identity.is_master)
        try:
            access = self._loader.load(identity)
            stored = self._profiles.get_scope(identity.id)
        except TransientFetchError as e:
            logger.warning("Scope resolution deferred identity=%s error=%s", identity.id, e)
            return False

        selection = self._resolver.resolve(access, device=self._read_device(), stored=stored)

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding superseded resolution identity=%s", identity.id)
                return False
            self._access = access
            self._status = SessionStatus.READY
            self._servable = True
            self._commit(selection, force_mirror=True)

        try:
            self._profiles.save_scope(identity.id, selection)
        except PersistenceFailure as e:
            logger.warning("Could not store resolved scope identity=%s error=%s", identity.id, e)

        logger.info(
            "Scope ready identity=%s org=%s location=%s orgs=%d",
            identity.id,
            selection.org_id,
            selection.location.to_wire(),
            len(access.organizations),
        )
        return True

    def reset(self) -> None:
        """Forget everything derived from the previous identity."""
        with self._lock:
            self._generation += 1
            self._identity = None
            self._access = EMPTY_ACCESS
            self._selection = EMPTY_SELECTION
            self._servable = False
            self._status = SessionStatus.UNAUTHENTICATED

    # ---- Scope actions --------------------------------------------------------------

    def set_active_org(self, org_id: str | None) -> None:
        with self._lock:
            if self._identity is None:
                return
            access = self._access
            target = org_id if access.has_org(org_id) else None
            if org_id and target is None:
                logger.debug("Unknown organization treated as none org=%s", org_id)

            current = self._selection
            if target is not None and target == current.org_id and self._resolver.is_valid(access, current):
                return

            location = self._resolver.default_location(access, target)
            self._commit(ScopeSelection(org_id=target, location=location))

    def set_active_location(self, choice: LocationChoice | None) -> None:
        if choice is None:
            choice = NO_LOCATION
        with self._lock:
            if self._identity is None:
                return
            org_id = self._selection.org_id
            if org_id is None:
                return
            access = self._access

            if choice.is_all:
                if not access.has_org_wide_access(org_id):
                    logger.debug("Rejected all-locations for org=%s without org-wide access", org_id)
                    return
                location = ALL_LOCATIONS
            elif choice.is_none:
                location = NO_LOCATION
            else:
                loc = access.get_location(choice.location_id)
                if loc is None or loc.org_id != org_id or not access.is_location_allowed(org_id, loc.id):
                    logger.debug("Rejected location=%s for org=%s; using default", choice.location_id, org_id)
                    location = self._resolver.default_location(access, org_id)
                else:
                    location = choice

            self._commit(ScopeSelection(org_id=org_id, location=location))

    def save_device_default_scope(self) -> SaveResult:
        """Copy the device cache, as is, into the identity's server profile."""
        identity = self._identity
        if identity is None:
            return SaveResult(saved=False)
        scope = self._read_device()
        if scope is None:
            return SaveResult(saved=False, error="device scope unreadable")
        try:
            self._profiles.save_scope(identity.id, scope)
        except PersistenceFailure as e:
            logger.warning("Saving default scope failed identity=%s error=%s", identity.id, e)
            return SaveResult(saved=False, error=str(e) or type(e).__name__)
        logger.info(
            "Saved default scope identity=%s org=%s location=%s",
            identity.id,
            scope.org_id,
            scope.location.to_wire(),
        )
        return SaveResult(saved=True)

    # ---- Snapshot -------------------------------------------------------------------

    def context(self) -> ScopeContext:
        with self._lock:
            identity = self._identity
            access = self._access
            selection = self._selection
            status = self._status
            servable = self._servable

        if identity is None:
            return SIGNED_OUT

        org = access.get_org(selection.org_id)
        role = access.role_for(org.id) if org else None
        return ScopeContext(
            status=status,
            servable=servable,
            identity_id=identity.id,
            email=identity.email,
            is_master=identity.is_master,
            organizations=access.organizations,
            locations=access.locations,
            active_organization=org,
            active_location=selection.location if org else NO_LOCATION,
            role=access.coarse_role,
            role_for_active_org=role,
            can_pick_all_locations=access.has_org_wide_access(selection.org_id),
            capabilities=self._evaluator.evaluate(role, identity.is_master),
        )

    # ---- Internals ------------------------------------------------------------------

    def _commit(self, selection: ScopeSelection, *, force_mirror: bool = False) -> None:
        """Set the active selection and mirror it to the device. Caller holds the lock."""
        if selection == self._selection and not force_mirror:
            return
        self._selection = selection
        try:
            self._device.set(selection)
        except Exception as e:
            logger.debug("Device cache write dropped error=%s", type(e).__name__)

    def _read_device(self) -> ScopeSelection | None:
        """The device-cached selection, or None when the cache cannot be read."""
        try:
            return self._device.get()
        except Exception as e:
            logger.debug("Device cache unreadable error=%s", type(e).__name__)
            return None
