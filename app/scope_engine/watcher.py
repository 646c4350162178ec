"""
Identity watcher.

Listens to an identity source and drives the session: a new identity triggers
a full resolution pass, sign-out triggers a hard reset.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .errors import PersistenceFailure, TransientFetchError
from .models import Identity
from .ports import IdentityListener, IdentitySource, ProfileStore
from .session import ScopeSession

logger = logging.getLogger(__name__)


class IdentityEventHub:
    """
    In-process identity source.

    ``publish`` always notifies listeners. ``observe`` notifies only when the
    identity differs from the last one seen, which suits callers that learn
    the identity again on every request.
    """

    def __init__(self) -> None:
        self._listeners: list[IdentityListener] = []
        self._current: Identity | None = None
        self._lock = threading.Lock()

    @property
    def current(self) -> Identity | None:
        return self._current

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, identity: Identity | None) -> None:
        with self._lock:
            self._current = identity
            listeners = list(self._listeners)
        for listener in listeners:
            listener(identity)

    def observe(self, identity: Identity | None) -> bool:
        with self._lock:
            changed = _key(identity) != _key(self._current)
        if changed:
            self.publish(identity)
        return changed

    def sign_out(self) -> None:
        self.publish(None)


def _key(identity: Identity | None) -> tuple[str, str | None, bool] | None:
    if identity is None:
        return None
    return identity.id, identity.email, identity.is_master


class IdentityWatcher:
    def __init__(self, source: IdentitySource, session: ScopeSession, profiles: ProfileStore) -> None:
        self._source = source
        self._session = session
        self._profiles = profiles
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def session(self) -> ScopeSession:
        return self._session

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._source.subscribe(self.on_identity)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_identity(self, identity: Identity | None) -> None:
        if identity is None:
            logger.info("Identity signed out; resetting scope")
            self._session.reset()
            return
        self._ensure_profile(identity)
        self._session.resolve(identity)

    def refresh(self) -> bool:
        """Re-run resolution for the current identity, e.g. after membership edits."""
        identity = self._session.identity
        if identity is None:
            return False
        return self._session.resolve(identity)

    def sign_out(self) -> None:
        self._source.sign_out()

    def _ensure_profile(self, identity: Identity) -> None:
        try:
            created = self._profiles.ensure_profile(identity)
        except (PersistenceFailure, TransientFetchError) as e:
            logger.warning("Could not ensure profile identity=%s error=%s", identity.id, e)
            return
        if created:
            logger.info("Created profile record identity=%s", identity.id)
