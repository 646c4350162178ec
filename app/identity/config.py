"""Identity token configuration from environment variables. No hardcoded secrets."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _getenv(key: str, default: str | None = None) -> str | None:
    return os.environ.get(key, default)


def _getenv_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class IdentityConfig:
    """
    Identity provider token settings.

    Required:
        IDENTITY_ISSUER: Expected ``iss`` claim.
        IDENTITY_AUDIENCE: Expected ``aud`` claim (the project / client id).

    One of:
        IDENTITY_JWKS_URI: JWKS endpoint for RS256 tokens.
        IDENTITY_SHARED_SECRET: HS256 secret, for local development and emulators.

    Optional:
        CLOCK_SKEW_SECONDS: Seconds of tolerance for exp/nbf (default 120).
        JWKS_CACHE_TTL_SECONDS: How long to cache JWKS (default 3600).
    """

    issuer: str
    audience: str
    jwks_uri: str | None
    shared_secret: str | None
    clock_skew_seconds: int = 120
    jwks_cache_ttl_seconds: int = 3600

    @property
    def uses_shared_secret(self) -> bool:
        return bool(self.shared_secret)

    @property
    def algorithms(self) -> list[str]:
        return ["HS256"] if self.uses_shared_secret else ["RS256"]

    @classmethod
    def from_environ(cls) -> IdentityConfig:
        issuer = _strip_or_none(_getenv("IDENTITY_ISSUER"))
        audience = _strip_or_none(_getenv("IDENTITY_AUDIENCE"))
        if not issuer or not audience:
            raise _config_error("IDENTITY_ISSUER and IDENTITY_AUDIENCE must be set")
        jwks_uri = _strip_or_none(_getenv("IDENTITY_JWKS_URI"))
        secret = _strip_or_none(_getenv("IDENTITY_SHARED_SECRET"))
        if not jwks_uri and not secret:
            raise _config_error("IDENTITY_JWKS_URI or IDENTITY_SHARED_SECRET must be set")
        return cls(
            issuer=issuer,
            audience=audience,
            jwks_uri=jwks_uri,
            shared_secret=secret,
            clock_skew_seconds=_getenv_int("CLOCK_SKEW_SECONDS", 120),
            jwks_cache_ttl_seconds=_getenv_int("JWKS_CACHE_TTL_SECONDS", 3600),
        )


def _strip_or_none(s: str | None) -> str | None:
    if s is None:
        return None
    t = s.strip()
    return t if t else None


def _config_error(msg: str) -> Exception:
    return ValueError(msg)
