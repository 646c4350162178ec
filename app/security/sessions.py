from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import threading

from app.scope_engine import (
    CapabilityEvaluator,
    IdentityEventHub,
    IdentityWatcher,
    InMemoryDeviceCache,
    JsonFileDeviceCache,
    ScopeSession,
)
from app.scope_engine.ports import DeviceScopeCache, DirectoryStore, ProfileStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceSession:
    """Everything kept for one device: its identity feed, watcher and scope session."""

    device_id: str
    hub: IdentityEventHub
    watcher: IdentityWatcher
    session: ScopeSession


class SessionRegistry:
    """
    Lazily creates one ``DeviceSession`` per device id.

    The device cache is per device, not per identity: a second identity
    signing in on the same device starts from what the first one left.
    """

    def __init__(
        self,
        directory: DirectoryStore,
        profiles: ProfileStore,
        evaluator: CapabilityEvaluator,
        device_cache_dir: Path | None = None,
    ) -> None:
        self._directory = directory
        self._profiles = profiles
        self._evaluator = evaluator
        self._device_cache_dir = device_cache_dir
        self._sessions: dict[str, DeviceSession] = {}
        self._lock = threading.Lock()

    def get(self, device_id: str) -> DeviceSession:
        with self._lock:
            existing = self._sessions.get(device_id)
            if existing is not None:
                return existing
            created = self._create(device_id)
            self._sessions[device_id] = created
        logger.debug("Created device session device=%s", device_id)
        return created

    def __len__(self) -> int:
        return len(self._sessions)

    def _create(self, device_id: str) -> DeviceSession:
        session = ScopeSession(
            self._directory,
            self._profiles,
            self._device_cache(device_id),
            evaluator=self._evaluator,
        )
        hub = IdentityEventHub()
        watcher = IdentityWatcher(hub, session, self._profiles)
        watcher.start()
        return DeviceSession(device_id=device_id, hub=hub, watcher=watcher, session=session)

    def _device_cache(self, device_id: str) -> DeviceScopeCache:
        if self._device_cache_dir is None:
            return InMemoryDeviceCache()
        return JsonFileDeviceCache(self._device_cache_dir, device_id)
