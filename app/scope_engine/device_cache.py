"""
Device scope cache adapters.

The cache mirrors the active scope of one device. Reads and writes are
failure-tolerant: a broken or missing entry reads as the empty selection and a
failed write is dropped, since the next resolution pass rewrites it anyway.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from .models import EMPTY_SELECTION, ScopeSelection

logger = logging.getLogger(__name__)


class InMemoryDeviceCache:
    """Process-local cache; one instance per device."""

    def __init__(self, initial: ScopeSelection = EMPTY_SELECTION) -> None:
        self._value = initial
        self._lock = threading.Lock()

    def get(self) -> ScopeSelection:
        with self._lock:
            return self._value

    def set(self, selection: ScopeSelection) -> None:
        with self._lock:
            self._value = selection


class JsonFileDeviceCache:
    """
    Cache stored as ``<directory>/<device_id>.json``.

    File contents: ``{"activeOrgId": ..., "activeLocationId": ...}`` where the
    location is an id, ``"ALL"`` or ``null``.
    """

    def __init__(self, directory: Path, device_id: str) -> None:
        safe_id = "".join(ch for ch in device_id if ch.isalnum() or ch in "-_.")
        if not safe_id:
            raise ValueError("device_id must contain at least one safe character")
        self._path = Path(directory) / f"{safe_id}.json"

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> ScopeSelection:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return EMPTY_SELECTION
        except (OSError, ValueError) as e:
            logger.debug("Device cache unreadable path=%s error=%s", self._path, type(e).__name__)
            return EMPTY_SELECTION
        if not isinstance(raw, dict):
            return EMPTY_SELECTION
        return ScopeSelection.from_wire(raw)

    def set(self, selection: ScopeSelection) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(selection.to_wire()), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as e:
            logger.debug("Device cache write dropped path=%s error=%s", self._path, type(e).__name__)
