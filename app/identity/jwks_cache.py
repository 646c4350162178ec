"""
JWKS fetch and cache with TTL. No per-request fetches.

The identity provider signs tokens with a rotating set of RSA keys and
publishes the public halves at its JWKS endpoint. A token whose ``kid`` is not
in the cached set triggers one forced refresh before it is rejected.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from jwt import PyJWK

logger = logging.getLogger(__name__)


class JWKSCache:
    """In-memory JWKS with a TTL and one refresh on unknown ``kid``."""

    def __init__(self, jwks_uri: str, ttl_seconds: int, timeout_seconds: float = 10) -> None:
        self._uri = jwks_uri
        self._ttl = ttl_seconds
        self._timeout = timeout_seconds
        self._keys: dict[str, dict[str, Any]] = {}
        self._fetched_at: float | None = None

    def _refresh(self) -> None:
        resp = requests.get(self._uri, timeout=self._timeout)
        resp.raise_for_status()
        body = resp.json()
        self._keys = {k["kid"]: k for k in body.get("keys") or [] if isinstance(k, dict) and k.get("kid")}
        self._fetched_at = time.monotonic()
        logger.debug("JWKS refreshed uri=%s keys=%d", self._uri, len(self._keys))

    def _is_stale(self) -> bool:
        return self._fetched_at is None or (time.monotonic() - self._fetched_at) >= self._ttl

    def get_signing_key(self, kid: str) -> PyJWK | None:
        """Return the key for ``kid``, refreshing once if it is unknown."""
        if self._is_stale():
            self._refresh()
        key = self._keys.get(kid)
        if key is None:
            logger.info("kid not in cached JWKS; refreshing for possible key rotation")
            self._refresh()
            key = self._keys.get(kid)
        return PyJWK.from_dict(key) if key is not None else None
