"""
Scope and capability resolution for multi-tenant identities.

This package has no dependency on other app packages (app.db, app.routers,
etc.). Stores are injected through the protocols in ``ports``.

Typical wiring:

    session = ScopeSession(directory, profiles, device_cache)
    hub = IdentityEventHub()
    IdentityWatcher(hub, session, profiles).start()
    hub.publish(identity)
    session.context().capabilities.can_view_reports
"""

from .capabilities import Capability, CapabilityEvaluator, CapabilitySet
from .context import ScopeContext, SessionStatus
from .device_cache import InMemoryDeviceCache, JsonFileDeviceCache
from .errors import PersistenceFailure, ScopeEngineError, TransientFetchError
from .membership import AccessMap, MembershipLoader
from .models import (
    ALL_LOCATIONS,
    NO_LOCATION,
    Identity,
    Location,
    LocationChoice,
    Membership,
    Organization,
    Role,
    ScopeSelection,
    StoredScope,
)
from .resolver import ScopeResolver
from .session import SaveResult, ScopeSession
from .watcher import IdentityEventHub, IdentityWatcher

__all__ = [
    "ALL_LOCATIONS",
    "NO_LOCATION",
    "AccessMap",
    "Capability",
    "CapabilityEvaluator",
    "CapabilitySet",
    "Identity",
    "IdentityEventHub",
    "IdentityWatcher",
    "InMemoryDeviceCache",
    "JsonFileDeviceCache",
    "Location",
    "LocationChoice",
    "Membership",
    "MembershipLoader",
    "Organization",
    "PersistenceFailure",
    "Role",
    "SaveResult",
    "ScopeContext",
    "ScopeEngineError",
    "ScopeResolver",
    "ScopeSelection",
    "ScopeSession",
    "SessionStatus",
    "StoredScope",
    "TransientFetchError",
]
